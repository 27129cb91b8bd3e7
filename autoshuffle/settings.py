# autoshuffle/settings.py
"""
Option and environment settings.

Options is what the command line produces (see ui/cli.py), Tweaks holds the
less common knobs passed as --tweak name=value, Settings reads the MPD
connection defaults from the environment.
"""

from __future__ import annotations
import os
import re
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, TextIO

from autoshuffle.library.rules import Rule
from autoshuffle.player.maintainer import MaintainerPolicy
from autoshuffle.shuffle.chain import DEFAULT_WINDOW_SIZE

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6600

_TRUE = ("1", "true", "on", "yes")
_FALSE = ("0", "false", "off", "no")

_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}
_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h)$")


class OptionsError(ValueError):
    pass


@dataclass
class Settings:
    mpd_host: str = DEFAULT_HOST
    mpd_port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        port_raw = env.get("MPD_PORT")
        try:
            port = int(port_raw) if port_raw else DEFAULT_PORT
        except ValueError:
            raise OptionsError(f"couldn't convert MPD_PORT '{port_raw}'")
        return cls(mpd_host=env.get("MPD_HOST") or DEFAULT_HOST, mpd_port=port)


@dataclass
class Tweaks:
    window_size: int = DEFAULT_WINDOW_SIZE
    play_on_startup: bool = True
    suspend_timeout: float = 0.0  # seconds, 0 disables
    exit_on_db_update: bool = False

    def apply(self, raw: str) -> None:
        """Apply one 'name=value' tweak string."""
        name, sep, value = raw.partition("=")
        if not sep or not name or not value:
            raise OptionsError("tweak must be of the form <name>=<value>")
        name = name.strip().lower()

        if name == "window-size":
            try:
                size = int(value)
            except ValueError:
                raise OptionsError(f"couldn't convert window-size '{value}'")
            if size < 1:
                raise OptionsError(f"window-size must be >= 1 ({size} given)")
            self.window_size = size
        elif name == "play-on-startup":
            self.play_on_startup = parse_bool(name, value)
        elif name == "suspend-timeout":
            self.suspend_timeout = parse_duration(name, value)
        elif name == "exit-on-db-update":
            self.exit_on_db_update = parse_bool(name, value)
        else:
            raise OptionsError(f"unknown tweak '{name}'")


@dataclass
class Options:
    ruleset: List[Rule] = field(default_factory=list)
    queue_only: int = 0
    file_in: Optional[TextIO] = None
    check_uris: bool = True
    queue_buffer: int = 0
    host: Optional[str] = None
    port: Optional[int] = None
    group_by: List[str] = field(default_factory=list)
    tweak: Tweaks = field(default_factory=Tweaks)
    verbose: bool = False

    @property
    def live_catalog(self) -> bool:
        # a --file catalog can't be reloaded when the database changes
        return self.file_in is None

    def policy(self) -> MaintainerPolicy:
        return MaintainerPolicy(
            queue_buffer=self.queue_buffer,
            suspend_timeout=self.tweak.suspend_timeout,
            play_on_startup=self.tweak.play_on_startup,
            exit_on_db_update=self.tweak.exit_on_db_update,
        )


# -------------------------
# value parsers
# -------------------------
def parse_bool(name: str, value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise OptionsError(f"couldn't convert {name} '{value}'")


def parse_duration(name: str, value: str) -> float:
    """'500ms', '5s', '1.5m', '1h' or plain '0'. Returns seconds."""
    v = value.strip().lower()
    if v == "0":
        return 0.0
    m = _DURATION_RE.match(v)
    if not m:
        raise OptionsError(f"couldn't convert {name} '{value}'")
    return float(m.group(1)) * _DURATION_UNITS[m.group(2)]


def parse_count(name: str, value: str) -> int:
    """Unsigned integer option values (decimal only)."""
    if not value.isdigit():
        raise OptionsError(f"couldn't convert {name} '{value}'")
    return int(value)
