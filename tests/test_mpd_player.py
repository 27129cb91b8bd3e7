# tests/test_mpd_player.py
import pytest
from mpd import CommandError

from autoshuffle.mpd_player.auth import (
    REQUIRED_COMMANDS, Address, AuthorizationError, MPDHost, authorize, resolve_address,
)
from autoshuffle.mpd_player.client import MPDPlayer
from autoshuffle.mpd_player.service import IdleEvent
from autoshuffle.settings import Settings


class StubClient:
    """Just enough of mpd.MPDClient for MPDPlayer."""

    def __init__(self, status=None, entries=(), passwords=(), locked=()):
        self._status = status or {}
        self.entries = list(entries)
        self.passwords = set(passwords)
        self.locked = set(locked)
        self.calls = []
        self.idle_result = []

    def status(self):
        return dict(self._status)

    def add(self, uri):
        self.calls.append(("add", uri))

    def play(self, pos):
        self.calls.append(("play", pos))

    def pause(self, state):
        self.calls.append(("pause", state))

    def idle(self, *subsystems):
        self.calls.append(("idle",) + subsystems)
        return list(self.idle_result)

    def listallinfo(self):
        return list(self.entries)

    def listall(self):
        return [{k: v} for e in self.entries for k, v in e.items() if k in ("file", "directory")]

    def find(self, tag, value):
        return [e for e in self.entries if e.get(tag) == value]

    def password(self, pw):
        if pw not in self.passwords:
            raise CommandError("[3@0] {password} incorrect password")
        self.locked = set()

    def commands(self):
        return [c for c in REQUIRED_COMMANDS + ("listall", "find") if c not in self.locked]


ENTRIES = [
    {"directory": "Artist"},
    {"file": "Artist/one.flac", "artist": "Artist", "album": "LP"},
    {"playlist": "favourites.m3u"},
    {"file": "Artist/two.flac", "artist": "Artist"},
]


# -------------------------
# MPDPlayer
# -------------------------

def test_status_while_playing():
    p = MPDPlayer(StubClient(status={"playlistlength": "5", "song": "2", "state": "play", "single": "0"}))
    s = p.current_status()
    assert s.queue_length == 5
    assert s.song_position == 2
    assert s.is_playing is True
    assert s.single_mode is False


def test_status_past_the_end():
    p = MPDPlayer(StubClient(status={"playlistlength": "0", "state": "stop", "single": "oneshot"}))
    s = p.current_status()
    assert s.queue_length == 0
    assert s.song_position is None
    assert s.is_playing is False
    assert s.single_mode is True


def test_commands_are_forwarded():
    client = StubClient()
    p = MPDPlayer(client)
    p.add_all(["a", "b"])
    p.play_at(3)
    p.pause()
    assert client.calls == [("add", "a"), ("add", "b"), ("play", 3), ("pause", 1)]


def test_idle_maps_subsystems():
    client = StubClient()
    client.idle_result = ["playlist", "mixer", "database"]
    p = MPDPlayer(client)
    events = p.idle([IdleEvent.DATABASE, IdleEvent.QUEUE, IdleEvent.PLAYER])
    assert events == {IdleEvent.QUEUE, IdleEvent.DATABASE}
    assert sorted(client.calls[0][1:]) == ["database", "player", "playlist"]


def test_list_all_skips_non_songs():
    p = MPDPlayer(StubClient(entries=ENTRIES))
    songs = list(p.list_all())
    assert [s.uri for s in songs] == ["Artist/one.flac", "Artist/two.flac"]
    assert songs[0].tag("album") == "LP"
    bare = list(p.list_all(metadata=False))
    assert [s.uri for s in bare] == ["Artist/one.flac", "Artist/two.flac"]
    assert bare[0].tags == {}


def test_search():
    p = MPDPlayer(StubClient(entries=ENTRIES))
    assert p.search("Artist/two.flac").tag("artist") == "Artist"
    assert p.search("nope.flac") is None


# -------------------------
# auth
# -------------------------

def test_host_parsing():
    assert MPDHost.parse("localhost") == MPDHost(host="localhost")
    assert MPDHost.parse("pw@example.org") == MPDHost(host="example.org", password="pw")
    assert MPDHost.parse("p@ss@host") == MPDHost(host="ss@host", password="p")


def test_resolve_address_prefers_options():
    settings = Settings(mpd_host="envpw@envhost", mpd_port=6601)
    assert resolve_address("cli", 7000, settings) == (Address("cli", 7000), None)
    assert resolve_address(None, None, settings) == (Address("envhost", 6601), "envpw")


def test_authorize_without_password_when_allowed():
    p = MPDPlayer(StubClient())
    authorize(p, None, getpass_f=lambda: pytest.fail("should not prompt"))


def test_authorize_applies_given_password():
    client = StubClient(passwords={"pw"}, locked={"add"})
    authorize(MPDPlayer(client), "pw", getpass_f=lambda: pytest.fail("should not prompt"))
    assert client.locked == set()


def test_authorize_prompts_until_accepted(capsys):
    client = StubClient(passwords={"right"}, locked={"add", "idle"})
    answers = iter(["wrong", "also wrong", "right"])
    authorize(MPDPlayer(client), None, getpass_f=lambda: next(answers))
    assert capsys.readouterr().err.count("incorrect password.") == 2


def test_authorize_fails_with_missing_commands():
    client = StubClient(passwords=set(), locked={"idle", "pause"})
    with pytest.raises(AuthorizationError) as exc:
        authorize(MPDPlayer(client), "bad", getpass_f=lambda: pytest.fail("should not prompt"))
    assert exc.value.missing == ["pause", "idle"]
