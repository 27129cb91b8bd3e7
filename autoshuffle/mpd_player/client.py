import logging
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional

from mpd import CommandError, MPDClient

from autoshuffle.mpd_player.service import IdleEvent, PlayerService, SongSource, Status
from autoshuffle.shuffle.models import Song

logger = logging.getLogger(__name__)


class MPDPlayer(PlayerService, SongSource):
    """
    Wrapper around a connected python-mpd2 MPDClient.
    Only the handful of commands the shuffler needs, errors from the client are
    left to propagate (a dead connection is fatal for us anyway).
    """

    def __init__(self, client: MPDClient):
        self.client = client

    # Player ---------------------------------------------------------

    def current_status(self) -> Status:
        raw: Dict[str, str] = self.client.status()
        song = raw.get("song")
        return Status(
            queue_length=int(raw.get("playlistlength", 0)),
            song_position=int(song) if song is not None else None,
            is_playing=raw.get("state") == "play",
            # single can be "0", "1" or "oneshot"
            single_mode=raw.get("single", "0") != "0",
        )

    def add(self, uri: str) -> None:
        self.client.add(uri)

    def play_at(self, position: int) -> None:
        self.client.play(position)

    def pause(self) -> None:
        self.client.pause(1)

    def idle(self, events: Iterable[IdleEvent]) -> FrozenSet[IdleEvent]:
        changed = self.client.idle(*[e.value for e in events])
        out = set()
        for name in changed:
            try:
                out.add(IdleEvent(name))
            except ValueError:
                # MPD may report subsystems we did not ask for
                logger.debug("ignoring idle event %r", name)
        return frozenset(out)

    # Songs ----------------------------------------------------------

    def list_all(self, metadata: bool = True) -> Iterator[Song]:
        entries = self.client.listallinfo() if metadata else self.client.listall()
        for entry in entries:
            # directories and playlists are listed alongside songs
            if "file" not in entry:
                continue
            yield Song.from_mpd_item(entry)

    def search(self, uri: str) -> Optional[Song]:
        found = self.client.find("file", uri)
        if not found:
            return None
        return Song.from_mpd_item(found[0])

    # Auth -----------------------------------------------------------

    def apply_password(self, password: str) -> bool:
        """Returns True if MPD accepted the password."""
        try:
            self.client.password(password)
        except CommandError:
            return False
        return True

    def missing_commands(self, required: Iterable[str]) -> List[str]:
        allowed = set(self.client.commands())
        return [cmd for cmd in required if cmd not in allowed]

    def close(self) -> None:
        self.client.disconnect()
