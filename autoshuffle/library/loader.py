# autoshuffle/library/loader.py
"""
Catalog loaders: fill a ShuffleChain from MPD's database or from a URI list.

- MPDLoader reads the whole library, FileLoader reads one URI per line
- both drop songs rejected by the exclusion rules
- with group_by, songs sharing the same tag values become one ItemGroup, so a
  pick enqueues e.g. a whole album
"""

from __future__ import annotations
import abc
import logging
from typing import Dict, Iterable, List, Optional, Sequence, TextIO, Tuple

from autoshuffle.library.rules import Rule, ruleset_accepts
from autoshuffle.mpd_player.service import SongSource
from autoshuffle.shuffle.chain import ShuffleChain
from autoshuffle.shuffle.models import Song

logger = logging.getLogger(__name__)


class LoadError(RuntimeError):
    """The catalog could not be (re)loaded."""


class Loader(abc.ABC):

    @abc.abstractmethod
    def load(self, chain: ShuffleChain) -> None:
        """Add every selectable group to `chain`."""


def _group_songs(songs: Iterable[Song], group_by: Sequence[str]) -> List[List[str]]:
    """
    Bucket songs by the tuple of their group_by tag values, in first-seen order.
    A missing tag counts as "". Songs with none of the tags stay on their own.
    """
    groups: Dict[Tuple[str, ...], List[str]] = {}
    out: List[List[str]] = []
    for song in songs:
        values = tuple(song.tag(t) or "" for t in group_by)
        if not any(values):
            out.append([song.uri])
            continue
        bucket = groups.get(values)
        if bucket is None:
            bucket = []
            groups[values] = bucket
            out.append(bucket)
        bucket.append(song.uri)
    return out


def _fill(chain: ShuffleChain, songs: Iterable[Song], ruleset: Sequence[Rule], group_by: Sequence[str]) -> None:
    accepted = (s for s in songs if ruleset_accepts(ruleset, s))
    if group_by:
        for uris in _group_songs(accepted, group_by):
            chain.add(uris)
    else:
        for song in accepted:
            chain.add([song.uri])


class MPDLoader(Loader):
    """Loads the live MPD database. Also used as the reloader on database changes."""

    def __init__(self, source: SongSource, ruleset: Sequence[Rule] = (), group_by: Sequence[str] = ()):
        self.source = source
        self.ruleset = list(ruleset)
        self.group_by = list(group_by)

    def load(self, chain: ShuffleChain) -> None:
        # tags are only needed to evaluate rules or grouping
        metadata = bool(self.ruleset or self.group_by)
        try:
            songs = list(self.source.list_all(metadata=metadata))
        except Exception as e:
            raise LoadError(f"could not list songs from mpd: {e}") from e
        logger.debug("mpd reported %d songs", len(songs))
        _fill(chain, songs, self.ruleset, self.group_by)


class FileLoader(Loader):
    """
    Loads URIs from a text stream, one per line.
    With check_uris every URI is looked up in MPD first: unknown ones are
    skipped and rules/grouping apply to what was found.
    """

    def __init__(self, stream: TextIO, source: Optional[SongSource] = None,
                 ruleset: Sequence[Rule] = (), group_by: Sequence[str] = (),
                 check_uris: bool = True):
        if check_uris and source is None:
            raise ValueError("check_uris needs a song source to look URIs up in")
        self.stream = stream
        self.source = source
        self.ruleset = list(ruleset)
        self.group_by = list(group_by)
        self.check_uris = check_uris

    def _uris(self) -> List[str]:
        return [line.strip() for line in self.stream if line.strip()]

    def load(self, chain: ShuffleChain) -> None:
        try:
            uris = self._uris()
        except OSError as e:
            raise LoadError(f"could not read song list: {e}") from e

        if not self.check_uris:
            for uri in uris:
                chain.add([uri])
            return

        songs: List[Song] = []
        try:
            for uri in uris:
                song = self.source.search(uri)
                if song is None:
                    logger.debug("skipping %s, not in the mpd database", uri)
                    continue
                songs.append(song)
        except Exception as e:
            raise LoadError(f"could not check song list against mpd: {e}") from e
        _fill(chain, songs, self.ruleset, self.group_by)
