# autoshuffle/player/maintainer.py
"""
Queue maintainer: keeps MPD's queue topped up with shuffled picks.

Design goals:
- react to MPD idle notifications only, no polling
- never let the player run dry, keep `queue_buffer` songs queued past the current one
- restart playback when it ran past the end of the queue, but leave it paused
  when single mode is on (single mode would stop after one track anyway)
- don't fight a listener who deliberately emptied the queue (suspend-timeout)
- reload the song pool when MPD's database changes, or exit if asked to

Everything runs on one thread: wait for idle, handle the events, wait again.
"""

from __future__ import annotations
import logging
import sys
import time
from dataclasses import dataclass
from typing import Callable, Optional

from autoshuffle.library.loader import Loader
from autoshuffle.mpd_player.service import IdleEvent, PlayerService
from autoshuffle.shuffle.chain import ShuffleChain

logger = logging.getLogger(__name__)

WATCHED_EVENTS = frozenset([IdleEvent.DATABASE, IdleEvent.QUEUE, IdleEvent.PLAYER])


@dataclass
class MaintainerPolicy:
    queue_buffer: int = 0
    suspend_timeout: float = 0.0  # seconds, 0 disables the suspend check
    play_on_startup: bool = True
    exit_on_db_update: bool = False


def describe_pool(chain: ShuffleChain) -> str:
    """Human readable pool size, accounting for grouping."""
    groups = len(chain)
    if groups == 0:
        return "Song pool is empty."
    songs = chain.len_uris()
    if groups != songs:
        return f"Picking from {groups} groups ({songs} songs)."
    return f"Picking random songs out of a pool of {groups}."


def enqueue_only(player: PlayerService, chain: ShuffleChain, count: int) -> int:
    """Add picks until at least `count` songs were queued. Returns how many were added."""
    added = 0
    while added < count:
        uris = chain.pick()
        player.add_all(uris)
        added += len(uris)
    return added


class QueueMaintainer:
    """
    Drives the queue from MPD idle events.

    Usage:
      m = QueueMaintainer(player, chain, MaintainerPolicy(queue_buffer=2), reloader=MPDLoader(player))
      m.start()
      m.run()  # blocks, only returns when `until` says so
    """

    def __init__(self, player: PlayerService, chain: ShuffleChain, policy: MaintainerPolicy,
                 reloader: Optional[Loader] = None, sleep: Callable[[float], None] = time.sleep):
        self.player = player
        self.chain = chain
        self.policy = policy
        # None for a static (file) catalog, nothing to reload from
        self.reloader = reloader
        self._sleep = sleep
        # False while the listener deliberately keeps the queue empty
        self.active = True

    # -------------------------
    # public control API
    # -------------------------
    def start(self) -> None:
        """Startup pass: make sure something is playing, then fill the buffer once."""
        if not self.policy.play_on_startup:
            return
        self.try_first()
        self.try_enqueue()

    def run(self, until: Optional[Callable[[], bool]] = None) -> None:
        """
        Main loop. Runs forever unless `until` is given, in which case it is asked
        before every wait whether to keep going (test hook).
        """
        while until is None or until():
            events = self.player.idle(WATCHED_EVENTS)
            self.handle(events)

    def handle(self, events) -> None:
        """Handle one idle result. Database first: a reload replaces the chain enqueue reads."""
        if IdleEvent.DATABASE in events and self.policy.exit_on_db_update:
            logger.info("Database updated, exiting.")
            sys.exit(0)

        if IdleEvent.DATABASE in events and self.reloader is not None:
            self.reload()
        elif IdleEvent.QUEUE in events or IdleEvent.PLAYER in events:
            self._check_suspend()
            if not self.active:
                logger.debug("suspended, not enqueuing")
                return
            self.try_enqueue()

    def reload(self) -> None:
        # load into a fresh chain so a failing load leaves the current pool alone
        fresh = ShuffleChain(window_size=self.chain.window_size)
        self.reloader.load(fresh)
        self.chain.replace(fresh)
        logger.info(describe_pool(self.chain))

    # -------------------------
    # enqueue decisions
    # -------------------------
    def try_first(self) -> None:
        status = self.player.current_status()
        if status.is_playing:
            return
        self.player.add_all(self.chain.pick())
        # old queue length == position of the song just added
        self.player.play_at(status.queue_length)
        logger.info("Started playback at position %d", status.queue_length)

    def try_enqueue(self) -> None:
        status = self.player.current_status()

        past_last = status.song_position is None
        queue_empty = status.queue_length == 0

        remaining = 0
        if not past_last:
            # song_position is zero-indexed
            remaining = status.queue_length - (status.song_position + 1)

        should_add = False
        if past_last:
            # always add once playback ran off the end
            should_add = True
        elif remaining < self.policy.queue_buffer:
            should_add = True
        elif queue_empty:
            should_add = True

        logger.debug("queue=%d pos=%s remaining=%d add=%s",
                     status.queue_length, status.song_position, remaining, should_add)
        if not should_add:
            return

        if self.policy.queue_buffer == 0:
            self.player.add_all(self.chain.pick())
        else:
            needed = self.policy.queue_buffer - remaining
            # nothing is "current", so the song we're about to start counts too
            if past_last or queue_empty:
                needed += 1
            while needed > 0:
                uris = self.chain.pick()
                self.player.add_all(uris)
                needed -= len(uris)

        if past_last or queue_empty:
            # status is from before the add, so its length is our first new song
            self.player.play_at(status.queue_length)
            logger.info("Restarted playback at position %d", status.queue_length)
            if status.single_mode:
                self.player.pause()

    # -------------------------
    # internals
    # -------------------------
    def _check_suspend(self) -> None:
        if self.policy.suspend_timeout <= 0:
            return
        status = self.player.current_status()
        if status.queue_length != 0:
            self.active = True
            return
        self._sleep(self.policy.suspend_timeout)
        status = self.player.current_status()
        self.active = status.queue_length != 0
        if not self.active:
            logger.debug("queue still empty after %.1fs, suspending", self.policy.suspend_timeout)
