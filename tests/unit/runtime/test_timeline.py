"""Tests for the cooperative session timeline."""

from __future__ import annotations

import threading
import unittest

from lazyreview.runtime.timeline import Timeline


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TimelineTests(unittest.TestCase):
    def test_call_later_fires_only_when_due(self) -> None:
        clock = FakeClock()
        timeline = Timeline(monotonic=clock)
        fired: list[str] = []
        timeline.call_later(0.1, lambda: fired.append("t"))

        timeline.tick()
        self.assertEqual(fired, [])
        clock.advance(0.05)
        timeline.tick()
        self.assertEqual(fired, [])
        clock.advance(0.05)
        timeline.tick()
        self.assertEqual(fired, ["t"])

    def test_cancelled_timer_never_fires(self) -> None:
        clock = FakeClock()
        timeline = Timeline(monotonic=clock)
        fired: list[str] = []
        handle = timeline.call_later(0.1, lambda: fired.append("t"))
        handle.cancel()
        clock.advance(1.0)

        timeline.tick()

        self.assertTrue(handle.cancelled)
        self.assertEqual(fired, [])
        self.assertIsNone(timeline.next_timer_delay())

    def test_tick_runs_phases_in_order(self) -> None:
        clock = FakeClock()
        timeline = Timeline(monotonic=clock)
        order: list[str] = []
        timeline.call_when_idle(lambda: order.append("idle"))
        timeline.call_soon(lambda: order.append("soon"))
        timeline.call_later(0.0, lambda: order.append("timer"))
        timeline.post(lambda: order.append("posted"))

        ran = timeline.tick()

        self.assertEqual(order, ["posted", "timer", "soon", "idle"])
        self.assertEqual(ran, 4)

    def test_idle_work_scheduled_by_idle_work_waits_for_next_tick(self) -> None:
        timeline = Timeline(monotonic=FakeClock())
        order: list[str] = []

        def first() -> None:
            order.append("first")
            timeline.call_when_idle(lambda: order.append("second"))

        timeline.call_when_idle(first)
        timeline.tick()
        self.assertEqual(order, ["first"])
        timeline.tick()
        self.assertEqual(order, ["first", "second"])

    def test_idle_falls_back_to_next_tick_without_idle_support(self) -> None:
        timeline = Timeline(monotonic=FakeClock(), idle_supported=False)
        order: list[str] = []
        timeline.call_when_idle(lambda: order.append("idle"))
        timeline.call_soon(lambda: order.append("soon"))

        timeline.tick()

        self.assertEqual(order, ["idle", "soon"])

    def test_post_from_worker_thread_runs_on_next_tick(self) -> None:
        timeline = Timeline()
        results: list[str] = []
        worker = threading.Thread(target=lambda: timeline.post(lambda: results.append("done")))
        worker.start()
        worker.join()

        self.assertTrue(timeline.has_ready_work())
        timeline.tick()
        self.assertEqual(results, ["done"])

    def test_run_until_wakes_for_posted_work(self) -> None:
        timeline = Timeline()
        results: list[str] = []
        worker = threading.Timer(0.02, lambda: timeline.post(lambda: results.append("done")))
        worker.start()
        try:
            settled = timeline.run_until(lambda: bool(results), timeout_seconds=2.0)
        finally:
            worker.cancel()

        self.assertTrue(settled)
        self.assertEqual(results, ["done"])

    def test_run_until_times_out_when_predicate_never_holds(self) -> None:
        timeline = Timeline()
        self.assertFalse(timeline.run_until(lambda: False, timeout_seconds=0.05))


if __name__ == "__main__":
    unittest.main()
