"""Coalescing, per-key serialized work queue feeding the reconcile workers."""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from collections import deque
from typing import Callable, Hashable

from .. import metrics


class WorkQueue:
    """Work queue with the semantics reconcilers rely on.

    - A key waiting in the queue is never queued twice; later adds coalesce.
    - A key handed to a worker is not handed out again until done() is
      called. Adds arriving meanwhile are replayed after done().
    - add_after() schedules a key for later; add_rate_limited() does the same
      with a per-key exponential backoff that forget() resets.
    """

    def __init__(
        self,
        min_delay: float = 1.0,
        max_delay: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._clock = clock
        self._cond = threading.Condition()
        self._queue: deque[Hashable] = deque()
        self._dirty: set[Hashable] = set()
        self._processing: set[Hashable] = set()
        self._delayed: list[tuple[float, int, Hashable]] = []
        self._seq = itertools.count()
        self._failures: dict[Hashable, int] = {}
        self._shutdown = False

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def _update_depth(self) -> None:
        metrics.workqueue_depth.set(len(self._queue))

    def _add_locked(self, key: Hashable) -> None:
        if self._shutdown or key in self._dirty:
            return
        self._dirty.add(key)
        if key not in self._processing:
            self._queue.append(key)
            self._update_depth()
            self._cond.notify()

    def add(self, key: Hashable) -> None:
        """Queue a key for processing."""
        with self._cond:
            self._add_locked(key)

    def add_after(self, key: Hashable, delay: float) -> None:
        """Queue a key once delay seconds have passed."""
        if delay <= 0:
            self.add(key)
            return
        with self._cond:
            if self._shutdown:
                return
            heapq.heappush(self._delayed, (self._clock() + delay, next(self._seq), key))
            self._cond.notify()

    def add_rate_limited(self, key: Hashable) -> float:
        """Queue a key after its backoff delay. Returns the delay used."""
        with self._cond:
            failures = self._failures.get(key, 0)
            self._failures[key] = failures + 1
        delay = min(self.min_delay * (2 ** failures), self.max_delay)
        self.add_after(key, delay)
        return delay

    def forget(self, key: Hashable) -> None:
        """Reset the backoff of a key after a successful pass."""
        with self._cond:
            self._failures.pop(key, None)

    def _promote_due_locked(self) -> float | None:
        """Move due delayed keys to the queue. Returns seconds until the next one."""
        now = self._clock()
        while self._delayed and self._delayed[0][0] <= now:
            _, _, key = heapq.heappop(self._delayed)
            self._add_locked(key)
        if self._delayed:
            return self._delayed[0][0] - now
        return None

    def get(self, timeout: float | None = None) -> Hashable | None:
        """Block until a key is available and mark it as processing.

        Returns:
            The key, or None on shutdown or when timeout expires first
        """
        deadline = None if timeout is None else self._clock() + timeout
        with self._cond:
            while True:
                if self._shutdown:
                    return None
                wait = self._promote_due_locked()
                if self._queue:
                    key = self._queue.popleft()
                    self._dirty.discard(key)
                    self._processing.add(key)
                    self._update_depth()
                    return key
                if deadline is not None:
                    remaining = deadline - self._clock()
                    if remaining <= 0:
                        return None
                    wait = remaining if wait is None else min(wait, remaining)
                self._cond.wait(wait)

    def done(self, key: Hashable) -> None:
        """Mark a key as finished; replays it if it was added meanwhile."""
        with self._cond:
            self._processing.discard(key)
            if key in self._dirty:
                self._queue.append(key)
                self._update_depth()
                self._cond.notify()

    def shutdown(self) -> None:
        with self._cond:
            self._shutdown = True
            self._cond.notify_all()

    @property
    def shutting_down(self) -> bool:
        return self._shutdown
