# autoshuffle/shuffle/models.py
"""
Small models used by the shuffle chain and the loaders.

MPD (through python-mpd2) hands songs back as plain dicts:
- listallinfo / find return {"file": "...", "artist": "...", "album": [...], ...}
- tag names are lower-case, multi-value tags come back as lists
- directory and playlist entries show up in the same listing without a "file" key

Song normalizes what the loaders need (uri + tags). ItemGroup is the unit the
shuffle chain picks from: one or more URIs, weighted by how many there are.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple


@dataclass
class Song:
    """
    Minimal representation of an MPD song.
    Tags map lower-case MPD tag names to every value MPD reported for them.
    """
    uri: str
    tags: Dict[str, List[str]] = field(default_factory=dict)

    # ----------------------
    # convenience accessors
    # ----------------------
    def tag(self, name: str) -> Optional[str]:
        values = self.tags.get(name.lower())
        if not values:
            return None
        return values[0]

    def tag_values(self, name: str) -> List[str]:
        return list(self.tags.get(name.lower(), []))

    # factory methods -----------------------------------------------------
    @classmethod
    def from_mpd_item(cls, item: Dict[str, Any]) -> "Song":
        """
        Accepts one entry of a listallinfo/listall/find result.
        Raises ValueError for entries that are not songs (directories, playlists).
        """
        uri = item.get("file")
        if not uri:
            raise ValueError("MPD entry has no 'file' key, not a song")

        tags: Dict[str, List[str]] = {}
        for key, value in item.items():
            if key == "file":
                continue
            if isinstance(value, (list, tuple)):
                tags[key.lower()] = [str(v) for v in value]
            else:
                tags[key.lower()] = [str(value)]
        return cls(uri=uri, tags=tags)


@dataclass(frozen=True)
class ItemGroup:
    """
    One pick worth of URIs (a song, or e.g. every song of an album).
    Frozen: the weight is always the number of URIs it was built with.
    """
    uris: Tuple[str, ...]

    def __post_init__(self):
        if not self.uris:
            raise ValueError("an ItemGroup needs at least one URI")

    @property
    def weight(self) -> int:
        return len(self.uris)

    @classmethod
    def of(cls, uris: Iterable[str]) -> "ItemGroup":
        if isinstance(uris, str):
            raise TypeError("ItemGroup.of takes a sequence of URIs, not a single string")
        return cls(uris=tuple(uris))

    def __len__(self) -> int:
        return len(self.uris)
