"""Single cooperative timeline for review-session state changes.

All cache, visibility, and selection mutations run as discrete callbacks on
this timeline. Background workers never mutate shared state directly; they
``post`` completions into a thread-safe inbox that the next ``tick`` drains.
"""

from __future__ import annotations

import heapq
import itertools
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from queue import Empty, Queue

Callback = Callable[[], None]


@dataclass(order=True)
class _Timer:
    due: float
    seq: int
    callback: Callback = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class TimerHandle:
    """Cancellation handle returned by ``Timeline.call_later``."""

    def __init__(self, timer: _Timer) -> None:
        self._timer = timer

    @property
    def due(self) -> float:
        return self._timer.due

    @property
    def cancelled(self) -> bool:
        return self._timer.cancelled

    def cancel(self) -> None:
        self._timer.cancelled = True


class Timeline:
    """Timers, next-tick callbacks, a low-priority idle queue, and an inbox.

    Each ``tick`` runs, in order: posted completions, due timers, next-tick
    callbacks, then idle callbacks. The next-tick and idle queues are
    snapshotted when their phase begins, so work they schedule onto themselves
    runs on a later tick.
    """

    def __init__(
        self,
        *,
        monotonic: Callable[[], float] = time.monotonic,
        idle_supported: bool = True,
    ) -> None:
        self._monotonic = monotonic
        self.idle_supported = idle_supported
        self._timers: list[_Timer] = []
        self._soon: deque[Callback] = deque()
        self._idle: deque[Callback] = deque()
        self._inbox: Queue[Callback] = Queue()
        self._seq = itertools.count()

    def now(self) -> float:
        return self._monotonic()

    def call_later(self, delay_seconds: float, callback: Callback) -> TimerHandle:
        timer = _Timer(self._monotonic() + max(0.0, delay_seconds), next(self._seq), callback)
        heapq.heappush(self._timers, timer)
        return TimerHandle(timer)

    def call_soon(self, callback: Callback) -> None:
        self._soon.append(callback)

    def call_when_idle(self, callback: Callback) -> None:
        """Queue low-priority work; falls back to next tick without idle support."""
        if self.idle_supported:
            self._idle.append(callback)
        else:
            self._soon.append(callback)

    def post(self, callback: Callback) -> None:
        """Thread-safe: hand a callback from a worker thread to the timeline."""
        self._inbox.put(callback)

    def next_timer_delay(self) -> float | None:
        """Seconds until the earliest live timer, or ``None`` without timers."""
        while self._timers and self._timers[0].cancelled:
            heapq.heappop(self._timers)
        if not self._timers:
            return None
        return max(0.0, self._timers[0].due - self._monotonic())

    def has_ready_work(self) -> bool:
        return bool(self._soon or self._idle or not self._inbox.empty())

    def tick(self) -> int:
        """Run one timeline step and return how many callbacks ran."""
        ran = 0
        while True:
            try:
                posted = self._inbox.get_nowait()
            except Empty:
                break
            posted()
            ran += 1

        now = self._monotonic()
        while self._timers and self._timers[0].due <= now:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            timer.callback()
            ran += 1

        for _ in range(len(self._soon)):
            self._soon.popleft()()
            ran += 1

        for _ in range(len(self._idle)):
            self._idle.popleft()()
            ran += 1
        return ran

    def run_until(self, predicate: Callable[[], bool], timeout_seconds: float) -> bool:
        """Tick until ``predicate`` holds or ``timeout_seconds`` elapse.

        Between ticks the caller blocks on the inbox, waking early for the next
        timer, so a waiting CLI does not spin.
        """
        deadline = self._monotonic() + timeout_seconds
        while True:
            self.tick()
            if predicate():
                return True
            now = self._monotonic()
            if now >= deadline:
                return False
            if self._soon or self._idle:
                continue
            wait = deadline - now
            timer_delay = self.next_timer_delay()
            if timer_delay is not None:
                wait = min(wait, timer_delay)
            try:
                posted = self._inbox.get(timeout=max(0.001, wait))
            except Empty:
                continue
            posted()


__all__ = ["Timeline", "TimerHandle"]
