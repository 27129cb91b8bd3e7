# tests/test_cli.py
import io
import sys

import pytest

from autoshuffle.settings import OptionsError, Settings, Tweaks
from autoshuffle.shuffle.chain import ShuffleChain
from autoshuffle.ui.cli import load_catalog, parse_options
from fakes import song


@pytest.fixture
def uri_file(tmp_path):
    p = tmp_path / "songs.txt"
    p.write_text("a.mp3\nb.mp3\n")
    return str(p)


def test_defaults():
    opts = parse_options([])
    assert opts.ruleset == []
    assert opts.queue_only == 0
    assert opts.file_in is None
    assert opts.check_uris is True
    assert opts.queue_buffer == 0
    assert opts.host is None
    assert opts.port is None
    assert opts.group_by == []
    assert opts.tweak.window_size == 7
    assert opts.tweak.play_on_startup is True
    assert opts.tweak.suspend_timeout == 0
    assert opts.tweak.exit_on_db_update is False
    assert opts.live_catalog is True


def test_short_options(uri_file):
    opts = parse_options([
        "-o", "5",
        "-q", "10",
        "-e", "artist", "test artist", "artist", "another one",
        "-f", uri_file,
        "-p", "1234",
        "-g", "artist",
        "-t", "window-size=3",
    ])
    assert len(opts.ruleset) == 1
    assert len(opts.ruleset[0].patterns) == 2
    assert opts.queue_only == 5
    assert opts.file_in is not None
    assert opts.live_catalog is False
    assert opts.queue_buffer == 10
    assert opts.port == 1234
    assert opts.group_by == ["artist"]
    assert opts.tweak.window_size == 3
    opts.file_in.close()


def test_long_options(uri_file):
    opts = parse_options([
        "--only", "5",
        "--file", uri_file,
        "--exclude", "artist", "test artist",
        "--exclude", "album", "another one",
        "--queue-buffer", "10",
        "--host", "secret@foo",
        "--port", "1234",
        "--group-by", "Artist", "album",
        "--tweak", "window-size=5",
        "--tweak", "suspend-timeout=1500ms",
        "--tweak", "play-on-startup=no",
        "--tweak", "exit-on-db-update=yes",
    ])
    assert len(opts.ruleset) == 2
    assert opts.host == "secret@foo"
    assert opts.group_by == ["artist", "album"]
    assert opts.tweak.window_size == 5
    assert opts.tweak.suspend_timeout == pytest.approx(1.5)
    assert opts.tweak.play_on_startup is False
    assert opts.tweak.exit_on_db_update is True
    policy = opts.policy()
    assert policy.queue_buffer == 10
    assert policy.suspend_timeout == pytest.approx(1.5)
    assert policy.exit_on_db_update is True
    opts.file_in.close()


def test_exclude_rule_is_parsed():
    opts = parse_options(["-e", "artist", "__artist__"])
    rule = opts.ruleset[0]
    assert not rule.accepts(song("x", artist="__artist__"))
    assert rule.accepts(song("y", artist="not artist"))


def test_by_album():
    assert parse_options(["--by-album"]).group_by == ["album", "date"]


def test_stdin_file():
    assert parse_options(["-f", "-"]).file_in is sys.stdin


@pytest.mark.parametrize("argv", [["-o"], ["--only"], ["-q"], ["-f"], ["-e"], ["--host"], ["-g"], ["--tweak"]])
def test_missing_argument(argv):
    with pytest.raises(SystemExit):
        parse_options(argv)


@pytest.mark.parametrize("argv,message", [
    (["-e", "artist"], "no value supplied for match 'artist'"),
    (["-e", "artist", "whatever", "artist"], "no value supplied for match 'artist'"),
    (["-e", "bogus", "x"], "unknown tag 'bogus'"),
    (["-g", "artist", "--by-album"], "'-g' can only be provided once"),
    (["-g", "artist", "-g", "album"], "'-g' can only be provided once"),
    (["--by-album", "--by-album"], "'--by-album' can only be provided once"),
    (["--tweak", "window-size"], "tweak must be of the form <name>=<value>"),
    (["--tweak", "window-size="], "tweak must be of the form <name>=<value>"),
    (["--tweak", "window-size=0"], "window-size must be >= 1 (0 given)"),
    (["--tweak", "window-size=-2"], "window-size must be >= 1 (-2 given)"),
    (["--tweak", "window-size=20=x"], "couldn't convert window-size '20=x'"),
    (["--tweak", "colour=blue"], "unknown tweak 'colour'"),
    (["--tweak", "suspend-timeout=soon"], "couldn't convert suspend-timeout 'soon'"),
    (["--tweak", "play-on-startup=maybe"], "couldn't convert play-on-startup 'maybe'"),
    (["--only", "0x5.0"], "couldn't convert --only '0x5.0'"),
    (["--queue-buffer", "20U"], "couldn't convert --queue-buffer '20U'"),
])
def test_bad_options(argv, message):
    with pytest.raises(OptionsError) as exc:
        parse_options(argv)
    assert message in str(exc.value)


def test_rules_need_metadata_with_file(uri_file):
    with pytest.raises(OptionsError):
        parse_options(["-f", uri_file, "-n", "-e", "artist", "x"])


@pytest.mark.parametrize("raw,seconds", [("0", 0.0), ("500ms", 0.5), ("5s", 5.0), ("2m", 120.0), ("1h", 3600.0)])
def test_suspend_timeout_units(raw, seconds):
    t = Tweaks()
    t.apply(f"suspend-timeout={raw}")
    assert t.suspend_timeout == pytest.approx(seconds)


def test_settings_from_env():
    s = Settings.from_env({"MPD_HOST": "pw@music.lan", "MPD_PORT": "6601"})
    assert s.mpd_host == "pw@music.lan"
    assert s.mpd_port == 6601
    s = Settings.from_env({})
    assert (s.mpd_host, s.mpd_port) == ("localhost", 6600)


def test_load_catalog_closes_file(uri_file):
    opts = parse_options(["-f", uri_file, "-n"])
    chain = ShuffleChain()
    load_catalog(opts, None, chain)
    assert opts.file_in.closed
    assert len(chain) == 2


def test_load_catalog_leaves_stdin_open(monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("a.mp3\n"))
    opts = parse_options(["-f", "-", "-n"])
    chain = ShuffleChain()
    load_catalog(opts, None, chain)
    assert not sys.stdin.closed
    assert len(chain) == 1
