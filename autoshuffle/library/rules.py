# autoshuffle/library/rules.py
"""Exclusion rules: drop songs whose tags match user supplied patterns."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

# tag names MPD understands (lower-case, as python-mpd2 reports them)
MPD_TAGS = frozenset([
    "artist", "artistsort", "album", "albumsort", "albumartist", "albumartistsort",
    "title", "titlesort", "track", "name", "genre", "mood", "date", "originaldate",
    "composer", "composersort", "performer", "conductor", "work", "ensemble",
    "movement", "movementnumber", "location", "grouping", "comment", "disc",
    "label", "musicbrainz_artistid", "musicbrainz_albumid",
    "musicbrainz_albumartistid", "musicbrainz_trackid", "musicbrainz_releasetrackid",
    "musicbrainz_workid", "musicbrainz_releasegroupid",
])


class TagParser:
    """Maps user typed tag names onto MPD tag names."""

    def __init__(self, known: Iterable[str] = MPD_TAGS):
        self.known = frozenset(t.lower() for t in known)

    def parse(self, name: str) -> Optional[str]:
        tag = name.strip().lower()
        if tag in self.known:
            return tag
        return None


@dataclass
class Rule:
    """
    Exclusion rule. Every (tag, value) pattern has to match for a song to be
    excluded; a pattern matches when the song's tag contains the value,
    ignoring case.
    """
    patterns: List[Tuple[str, str]] = field(default_factory=list)

    def add_pattern(self, tag: str, value: str) -> None:
        self.patterns.append((tag.lower(), value.lower()))

    def matches(self, song) -> bool:
        if not self.patterns:
            return False
        for tag, value in self.patterns:
            if not any(value in v.lower() for v in song.tag_values(tag)):
                return False
        return True

    def accepts(self, song) -> bool:
        return not self.matches(song)


def ruleset_accepts(rules: Iterable[Rule], song) -> bool:
    return all(r.accepts(song) for r in rules)
