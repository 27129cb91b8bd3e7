# autoshuffle/mpd_player/service.py
"""
Capability interfaces the shuffle core talks to.

The maintainer and the loaders only ever see these. MPDPlayer (client.py) is the
real implementation, tests use small fakes.
"""

from __future__ import annotations
import abc
import enum
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Iterator, Optional

from autoshuffle.shuffle.models import Song


class IdleEvent(enum.Enum):
    # values are the MPD idle subsystem names
    DATABASE = "database"
    QUEUE = "playlist"
    PLAYER = "player"


@dataclass(frozen=True)
class Status:
    queue_length: int
    # None when there is no current song (queue empty, or played past the end)
    song_position: Optional[int]
    is_playing: bool
    single_mode: bool


class PlayerService(abc.ABC):

    @abc.abstractmethod
    def current_status(self) -> Status:
        ...

    @abc.abstractmethod
    def add(self, uri: str) -> None:
        """Append one URI to the end of the queue."""

    def add_all(self, uris: Iterable[str]) -> None:
        for uri in uris:
            self.add(uri)

    @abc.abstractmethod
    def play_at(self, position: int) -> None:
        ...

    @abc.abstractmethod
    def pause(self) -> None:
        ...

    @abc.abstractmethod
    def idle(self, events: Iterable[IdleEvent]) -> FrozenSet[IdleEvent]:
        """Block until one of `events` happens, return everything that happened."""


class SongSource(abc.ABC):

    @abc.abstractmethod
    def list_all(self, metadata: bool = True) -> Iterator[Song]:
        """
        Every song in the database. With metadata=False songs only carry their URI,
        which is much cheaper on big libraries.
        """

    @abc.abstractmethod
    def search(self, uri: str) -> Optional[Song]:
        """Look a URI up in the database, None if MPD doesn't know it."""
