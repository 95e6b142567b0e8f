from __future__ import annotations

import heapq
from typing import Any, Callable, List, Optional, Protocol, Set, Tuple


TICK_INTERVAL_MS = 1500


class Scheduler(Protocol):
    """Anything that can run a callback later and cancel it (Tk ``after``, asyncio, ...)."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class ManualScheduler:
    """Virtual-clock scheduler advanced explicitly by the caller.

    Nothing runs until :meth:`advance` or :meth:`run_pending` is called, which
    makes full animation sequences deterministic and instant in tests and in
    the command-line shell.
    """

    def __init__(self):
        self.now_ms = 0
        self._seq = 0
        self._queue: List[Tuple[int, int, Callable[[], None]]] = []
        self._cancelled: Set[int] = set()

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> int:
        self._seq += 1
        heapq.heappush(self._queue, (self.now_ms + max(0, int(delay_ms)), self._seq, callback))
        return self._seq

    def cancel(self, handle: Optional[int]) -> None:
        if handle is not None:
            self._cancelled.add(handle)

    def pending(self) -> int:
        return sum(1 for _due, seq, _cb in self._queue if seq not in self._cancelled)

    def _pop_due(self, until_ms: Optional[int]):
        while self._queue:
            due, seq, cb = self._queue[0]
            if until_ms is not None and due > until_ms:
                return None
            heapq.heappop(self._queue)
            if seq in self._cancelled:
                self._cancelled.discard(seq)
                continue
            self.now_ms = max(self.now_ms, due)
            return cb
        return None

    def advance(self, ms: int) -> int:
        """Move the clock forward by ``ms`` and run everything that falls due."""
        target = self.now_ms + ms
        ran = 0
        while True:
            cb = self._pop_due(target)
            if cb is None:
                break
            cb()
            ran += 1
        self.now_ms = target
        return ran

    def run_pending(self, limit: int = 10000) -> int:
        """Run callbacks (including ones they schedule) until the queue drains."""
        ran = 0
        while ran < limit:
            cb = self._pop_due(None)
            if cb is None:
                break
            cb()
            ran += 1
        return ran
