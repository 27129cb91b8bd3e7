# autoshuffle/mpd_player/auth.py
"""
Connecting to MPD and getting permission to run the commands we need.

Features:
- MPD_HOST style "password@host" parsing
- host/port fallback: command line, then MPD_HOST / MPD_PORT, then localhost:6600
- applies a supplied password, or prompts for one when MPD refuses a required command
- fails with the list of missing commands if that still isn't enough
"""

from __future__ import annotations
import getpass
import logging
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional

from mpd import ConnectionError as MPDConnectionError, MPDClient

from autoshuffle.mpd_player.client import MPDPlayer
from autoshuffle.settings import Settings

logger = logging.getLogger(__name__)

# the shuffler can't do its job without these
REQUIRED_COMMANDS = ("add", "status", "play", "pause", "idle")

DEFAULT_TIMEOUT = 25.0  # seconds


class ConnectError(RuntimeError):
    pass


class AuthorizationError(RuntimeError):
    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(
            "password applied, but required command still not allowed. Missing MPD commands: "
            + ", ".join(self.missing)
        )


@dataclass
class MPDHost:
    host: str
    password: Optional[str] = None

    @classmethod
    def parse(cls, raw: str) -> "MPDHost":
        # MPD_HOST convention: [password@]host
        if "@" in raw:
            password, host = raw.split("@", 1)
            return cls(host=host, password=password)
        return cls(host=raw)


@dataclass
class Address:
    host: str
    port: int


def resolve_address(host: Optional[str], port: Optional[int], settings: Settings):
    """Returns (Address, password) from explicit options, falling back to the environment."""
    mpd_host = MPDHost.parse(host if host else settings.mpd_host)
    mpd_port = port if port else settings.mpd_port
    return Address(host=mpd_host.host, port=mpd_port), mpd_host.password


def dial(address: Address, timeout: float = DEFAULT_TIMEOUT) -> MPDPlayer:
    client = MPDClient()
    client.timeout = timeout
    # idle must be able to block for as long as the player stays quiet
    client.idletimeout = None
    try:
        client.connect(address.host, address.port)
    except (OSError, MPDConnectionError) as e:
        raise ConnectError(f"Failed to connect to mpd: {e}") from e
    logger.debug("connected to mpd at %s:%s", address.host, address.port)
    return MPDPlayer(client)


def _default_prompt() -> str:
    return getpass.getpass("mpd password: ")


def prompt_password(player: MPDPlayer, getpass_f: Callable[[], str]) -> None:
    """Keep asking until MPD accepts a password."""
    while True:
        if player.apply_password(getpass_f()):
            return
        print("incorrect password.", file=sys.stderr)


def authorize(player: MPDPlayer, password: Optional[str], getpass_f: Optional[Callable[[], str]] = None) -> None:
    """
    Password workflow:
    1. a supplied password is always applied (a rejection alone is not fatal)
    2. if required commands are missing and no password was supplied, prompt
    3. anything still missing after that raises AuthorizationError
    """
    if password:
        if not player.apply_password(password):
            logger.debug("supplied password was rejected")

    missing = player.missing_commands(REQUIRED_COMMANDS)
    if missing and not password:
        prompt_password(player, getpass_f or _default_prompt)
        missing = player.missing_commands(REQUIRED_COMMANDS)

    if missing:
        raise AuthorizationError(missing)


def connect(host: Optional[str], port: Optional[int], settings: Settings,
            getpass_f: Optional[Callable[[], str]] = None) -> MPDPlayer:
    address, password = resolve_address(host, port, settings)
    player = dial(address)
    authorize(player, password, getpass_f)
    return player
