# autoshuffle/shuffle/chain.py
"""
Shuffle chain: weighted random picks with a no-repeat window.

Design notes:
- every ItemGroup is weighted by its URI count, so with grouping (e.g. by album)
  each individual song still has the same chance of coming up
- the last `window_size` picks are excluded from sampling; once a pick falls
  out of the window it becomes eligible again
- sampling runs over a Fenwick tree of group weights. Excluded groups sit in the
  tree with weight 0, so exclude/restore/pick are all O(log n), no rebuilds
- when every group is excluded (window_size >= number of groups) the oldest
  exclusions are released first until something is pickable again
"""

from __future__ import annotations
import logging
import random
import threading
from collections import deque
from typing import Deque, Iterable, List, Optional, Set

from autoshuffle.shuffle.models import ItemGroup

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 7


class EmptyChainError(RuntimeError):
    """Raised when picking from a chain that has no groups at all."""


class _WeightIndex:
    """
    Fenwick (binary indexed) tree over non-negative integer weights.
    Positions are 0-based for callers, 1-based internally.
    """

    def __init__(self):
        self._tree: List[int] = [0]
        self._weights: List[int] = []
        self.total = 0

    def __len__(self) -> int:
        return len(self._weights)

    def append(self, weight: int) -> None:
        self._weights.append(weight)
        i = len(self._weights)
        node = weight
        # node i covers (i - lowbit(i), i], sum the already-built children
        j = i - 1
        stop = i - (i & -i)
        while j > stop:
            node += self._tree[j]
            j -= j & -j
        self._tree.append(node)
        self.total += weight

    def set(self, pos: int, weight: int) -> None:
        delta = weight - self._weights[pos]
        if delta == 0:
            return
        self._weights[pos] = weight
        self.total += delta
        i = pos + 1
        n = len(self._weights)
        while i <= n:
            self._tree[i] += delta
            i += i & -i

    def find(self, target: int) -> int:
        """Return the position whose cumulative weight range contains target (0 <= target < total)."""
        n = len(self._weights)
        pos = 0
        step = 1 << (n.bit_length() - 1) if n else 0
        while step:
            nxt = pos + step
            if nxt <= n and self._tree[nxt] <= target:
                pos = nxt
                target -= self._tree[nxt]
            step >>= 1
        return pos


class ShuffleChain:
    """
    Holds every ItemGroup and hands out weighted random picks.

    Usage:
      chain = ShuffleChain(window_size=7)
      chain.add(["song_a.mp3"])
      chain.add(["album/1.flac", "album/2.flac"])
      uris = chain.pick()

    pick/add/clear/replace share one lock, so a reload on another thread can swap
    the contents out from under a running maintainer safely.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE, rng: Optional[random.Random] = None):
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self.window_size = int(window_size)
        self._rng = rng if rng is not None else random.Random()
        self._lock = threading.Lock()
        self._groups: List[ItemGroup] = []
        self._index = _WeightIndex()
        self._window: Deque[int] = deque()
        self._excluded: Set[int] = set()
        self._uri_count = 0

    # -------------------------
    # registration
    # -------------------------
    def add(self, uris: Iterable[str]) -> None:
        """Register a new group built from the given URIs. It is pickable right away."""
        self.add_group(ItemGroup.of(uris))

    def add_group(self, group: ItemGroup) -> None:
        with self._lock:
            self._append_locked(group)

    def clear(self) -> None:
        """Drop every group and forget the exclusion window."""
        with self._lock:
            self._reset_locked([])

    def replace(self, other: "ShuffleChain") -> None:
        """
        Take over the groups of `other` (typically a freshly loaded chain).
        The exclusion window starts over; group ids of the old contents are gone.
        """
        groups = other.groups()
        with self._lock:
            self._reset_locked(groups)

    def groups(self) -> List[ItemGroup]:
        with self._lock:
            return list(self._groups)

    # -------------------------
    # sizes
    # -------------------------
    def __len__(self) -> int:
        with self._lock:
            return len(self._groups)

    def len_uris(self) -> int:
        with self._lock:
            return self._uri_count

    # -------------------------
    # picking
    # -------------------------
    def pick(self) -> List[str]:
        """
        Pick one group (weighted by URI count, recent picks excluded) and return its URIs.
        Raises EmptyChainError if no groups are registered.
        """
        with self._lock:
            if not self._groups:
                raise EmptyChainError("cannot pick from an empty shuffle chain")

            # window covers every group: release the oldest picks until one is free
            while self._index.total == 0:
                self._restore_oldest()

            target = self._rng.randrange(self._index.total)
            gid = self._index.find(target)

            if len(self._window) >= self.window_size:
                self._restore_oldest()
            self._exclude(gid)

            group = self._groups[gid]
            logger.debug("picked group %d (%d uris)", gid, group.weight)
            return list(group.uris)

    # -------------------------
    # internals
    # -------------------------
    def _append_locked(self, group: ItemGroup) -> None:
        self._groups.append(group)
        self._index.append(group.weight)
        self._uri_count += group.weight

    def _reset_locked(self, groups: List[ItemGroup]) -> None:
        self._groups = []
        self._index = _WeightIndex()
        self._window.clear()
        self._excluded.clear()
        self._uri_count = 0
        for g in groups:
            self._append_locked(g)

    def _exclude(self, gid: int) -> None:
        # weight-0 groups are never drawn, so a pick can't already be in the window
        if gid in self._excluded:
            raise RuntimeError(f"group {gid} is already excluded")
        self._window.append(gid)
        self._excluded.add(gid)
        self._index.set(gid, 0)

    def _restore_oldest(self) -> None:
        gid = self._window.popleft()
        self._excluded.discard(gid)
        self._index.set(gid, self._groups[gid].weight)
