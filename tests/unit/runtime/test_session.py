"""Tests for the review session controller.

Drives a session over an in-memory backend with a fake clock and
synchronous batch spawning.
"""

from __future__ import annotations

import unittest
from pathlib import Path

from lazyreview.diff_model.git_backend import GitReviewContext
from lazyreview.diff_model.types import ChangedFile, DiffContent, LineEntry
from lazyreview.errors import LoadError
from lazyreview.runtime.config import ReviewTuning
from lazyreview.runtime.session import ReviewSession
from lazyreview.runtime.timeline import Timeline
from lazyreview.runtime.visibility import FileBox


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeBackend:
    def __init__(self, files: list[str]) -> None:
        self.files = [ChangedFile(path) for path in files]
        self.loads: list[str] = []
        self.failures: dict[str, str] = {}

    def get_changed_files(self, _context: GitReviewContext) -> list[ChangedFile]:
        return list(self.files)

    def load_diff(self, _context: GitReviewContext, file_ref: str) -> DiffContent:
        self.loads.append(file_ref)
        if file_ref in self.failures:
            raise LoadError(file_ref, self.failures[file_ref])
        return DiffContent(file_ref=file_ref, lines=(LineEntry.added(1, file_ref),))


def _session(files: list[str], **tuning) -> tuple[ReviewSession, FakeBackend, FakeClock]:
    clock = FakeClock()
    backend = FakeBackend(files)
    session = ReviewSession(
        backend,
        GitReviewContext(repo_root=Path("/repo")),
        tuning=ReviewTuning(**tuning),
        timeline=Timeline(monotonic=clock),
        spawn=lambda work: work(),
    )
    session.refresh_files()
    return session, backend, clock


def _advance(session: ReviewSession, clock: FakeClock, seconds: float = 0.0, ticks: int = 10) -> None:
    clock.now += seconds
    for _ in range(ticks):
        session.tick()


class ReviewSessionLoadingTests(unittest.TestCase):
    def test_scroll_loads_visible_file_and_neighbours(self) -> None:
        session, backend, clock = _session(["a", "b", "c", "d", "e"])
        session.observe_intersection("c", True)

        _advance(session, clock)
        self.assertEqual(backend.loads, [])
        self.assertEqual(session.get_visibility_set(), frozenset())

        _advance(session, clock, 0.1)
        self.assertEqual(session.get_visibility_set(), frozenset({"c"}))
        self.assertEqual(sorted(backend.loads), ["b", "c", "d"])
        self.assertIsNotNone(session.get_cache_entry("c"))
        self.assertEqual(session.classify("b"), "buffered")
        self.assertEqual(session.classify("e"), "far")

    def test_observe_viewport_uses_margin(self) -> None:
        session, backend, clock = _session(["a", "b", "c"], visibility_margin=50.0)
        boxes = [FileBox("a", 0, 100), FileBox("b", 140, 100), FileBox("c", 400, 100)]

        session.observe_viewport(boxes, scroll_top=0, viewport_height=100)
        _advance(session, clock, 0.1)

        self.assertEqual(session.get_visibility_set(), frozenset({"a", "b"}))

    def test_selected_file_loads_without_visibility(self) -> None:
        session, backend, clock = _session(["a", "b", "c"])
        session.select_file("c")
        _advance(session, clock)

        self.assertEqual(backend.loads, ["c"])
        self.assertEqual(session.selected_file, "c")

    def test_selected_file_error_is_exposed(self) -> None:
        session, backend, clock = _session(["a", "b"])
        backend.failures["b"] = "cannot diff"

        with self.assertLogs("lazyreview.runtime.loader", level="WARNING"):
            session.select_file("b")
            _advance(session, clock)

        self.assertEqual(session.file_error("b"), "cannot diff")
        self.assertIsNone(session.get_cache_entry("b"))

        session.select_file("a")
        self.assertIsNone(session.file_error("b"))

    def test_reselecting_failed_file_loads_it_again(self) -> None:
        session, backend, clock = _session(["a", "b"])
        backend.failures["b"] = "index locked"

        with self.assertLogs("lazyreview.runtime.loader", level="WARNING"):
            session.select_file("b")
            _advance(session, clock)
        session.select_file("a")
        _advance(session, clock)

        del backend.failures["b"]
        session.select_file("b")
        _advance(session, clock)

        self.assertEqual(backend.loads.count("b"), 2)
        self.assertIsNotNone(session.get_cache_entry("b"))
        self.assertIsNone(session.file_error("b"))

    def test_reselecting_still_failing_file_shows_error_again(self) -> None:
        session, backend, clock = _session(["a", "b"])
        backend.failures["b"] = "cannot diff"

        with self.assertLogs("lazyreview.runtime.loader", level="WARNING"):
            session.select_file("b")
            _advance(session, clock)
        session.select_file("a")
        _advance(session, clock)
        self.assertIsNone(session.file_error("b"))

        with self.assertLogs("lazyreview.runtime.loader", level="WARNING"):
            session.select_file("b")
            _advance(session, clock)

        self.assertEqual(session.file_error("b"), "cannot diff")
        self.assertIsNone(session.get_cache_entry("b"))

    def test_wait_until_settled_drains_debounce_and_loads(self) -> None:
        session, backend, _clock = _session(["a", "b"], debounce_seconds=0.0)
        session.observe_intersection("a", True)

        self.assertTrue(session.wait_until_settled(1.0))
        self.assertEqual(set(session.cache.keys()), {"a", "b"})


class ReviewSessionEvictionTests(unittest.TestCase):
    def test_periodic_eviction_keeps_selected_and_visible(self) -> None:
        session, backend, clock = _session(["f1", "f2", "f3", "f4", "f5"], max_loaded_diffs=2)
        session.start()
        for file_ref in ("f1", "f2", "f3", "f4", "f5"):
            session.loader.load_now(file_ref)
        session.select_file("f1")
        session.observe_intersection("f5", True)
        _advance(session, clock, 0.1)

        _advance(session, clock, 2.0)

        self.assertEqual(set(session.cache.keys()), {"f1", "f4", "f5"})
        session.close()
        self.assertFalse(session.eviction.running)

    def test_expanded_sections_survive_eviction_by_default(self) -> None:
        session, _backend, _clock = _session(["f1", "f2", "f3"], max_loaded_diffs=1)
        session.loader.load_now("f1")
        session.loader.load_now("f2")
        session.on_toggle_collapse("f1", 4)

        session.eviction.run()

        self.assertIsNone(session.get_cache_entry("f1"))
        self.assertTrue(session.is_section_expanded("f1", 4))

    def test_forget_sections_on_evict_opt_in(self) -> None:
        session, _backend, _clock = _session(["f1", "f2", "f3"], max_loaded_diffs=1, forget_sections_on_evict=True)
        session.loader.load_now("f1")
        session.loader.load_now("f2")
        session.on_toggle_collapse("f1", 4)

        session.eviction.run()

        self.assertFalse(session.is_section_expanded("f1", 4))


class ReviewSessionInputTests(unittest.TestCase):
    def test_drag_select_backward(self) -> None:
        session, _backend, _clock = _session(["x"])
        session.on_line_mouse_down(10, "new", "x")
        self.assertTrue(session.dragging)
        for line in (8, 5, 3):
            session.on_line_mouse_enter(line, "new", "x")
        session.on_line_mouse_up()

        selection = session.line_selection
        assert selection is not None
        self.assertEqual(
            (selection.start_line, selection.end_line, selection.side, selection.file_path),
            (3, 10, "new", "x"),
        )
        self.assertFalse(session.dragging)
        self.assertTrue(session.is_selected("x", 5, "new"))
        self.assertTrue(session.is_in_range("x", 5))

    def test_mouse_enter_without_drag_does_nothing(self) -> None:
        session, _backend, _clock = _session(["x"])
        session.on_line_mouse_enter(4, "new", "x")
        self.assertIsNone(session.line_selection)

    def test_mouse_down_inside_selection_clears_and_does_not_drag(self) -> None:
        session, _backend, _clock = _session(["x"])
        session.on_line_mouse_down(3, "new", "x")
        session.on_line_mouse_enter(6, "new", "x")
        session.on_line_mouse_up()

        session.on_line_mouse_down(4, "new", "x")

        self.assertIsNone(session.line_selection)
        self.assertFalse(session.dragging)
        session.on_line_mouse_enter(9, "new", "x")
        self.assertIsNone(session.line_selection)

    def test_shift_mouse_down_extends_from_anchor(self) -> None:
        session, _backend, _clock = _session(["x"])
        session.on_line_mouse_down(5, "old", "x")
        session.on_line_mouse_up()
        session.on_line_mouse_down(12, "old", "x", shift=True)

        selection = session.line_selection
        assert selection is not None
        self.assertEqual((selection.start_line, selection.end_line), (5, 12))

    def test_toggle_collapse_twice_round_trips(self) -> None:
        session, _backend, _clock = _session(["x"])
        self.assertTrue(session.on_toggle_collapse("x", 2))
        self.assertFalse(session.on_toggle_collapse("x", 2))
        self.assertFalse(session.is_section_expanded("x", 2))


class ReviewSessionLayoutAndFilesTests(unittest.TestCase):
    def test_switch_layout_clears_cache_and_reloads_selected_immediately(self) -> None:
        session, backend, clock = _session(["a", "b", "c"])
        session.loader.load_now("a")
        session.loader.load_now("b")
        session.select_file("c")
        backend.loads.clear()

        with self.assertLogs("lazyreview.runtime.session", level="DEBUG"):
            session.switch_layout("single")

        self.assertEqual(session.layout, "single")
        self.assertEqual(session.cache.keys(), ("c",))
        self.assertEqual(backend.loads, ["c"])

        session.switch_layout("single")
        self.assertEqual(backend.loads, ["c"])

    def test_set_files_drops_state_for_vanished_files(self) -> None:
        session, backend, clock = _session(["a", "b", "c"])
        session.loader.load_now("a")
        session.loader.load_now("b")
        session.select_file("b")
        session.on_toggle_collapse("b", 1)
        session.on_line_mouse_down(2, "new", "b")
        session.on_line_mouse_up()

        session.set_files([ChangedFile("a"), ChangedFile("c", "added")])

        self.assertEqual(session.document_order, ("a", "c"))
        self.assertEqual(session.cache.keys(), ("a",))
        self.assertIsNone(session.selected_file)
        self.assertIsNone(session.line_selection)
        self.assertFalse(session.is_section_expanded("b", 1))
        self.assertEqual(session.files[1].change_type, "added")

    def test_is_loading_reflects_in_flight_batch(self) -> None:
        pending: list = []
        clock = FakeClock()
        backend = FakeBackend(["a"])
        session = ReviewSession(
            backend,
            GitReviewContext(repo_root=Path("/repo")),
            timeline=Timeline(monotonic=clock),
            spawn=pending.append,
        )
        session.refresh_files()
        session.select_file("a")
        session.tick()

        self.assertTrue(session.is_loading("a"))
        pending.pop()()
        session.tick()
        self.assertFalse(session.is_loading("a"))
        self.assertIsNotNone(session.get_cache_entry("a"))

    def _deferred_session(self, files: list[str]) -> tuple[ReviewSession, list]:
        pending: list = []
        session = ReviewSession(
            FakeBackend(files),
            GitReviewContext(repo_root=Path("/repo")),
            timeline=Timeline(monotonic=FakeClock()),
            spawn=pending.append,
        )
        session.refresh_files()
        return session, pending

    def test_batch_finishing_after_file_removed_is_not_cached(self) -> None:
        session, pending = self._deferred_session(["a", "b"])
        session.select_file("b")
        session.tick()
        self.assertTrue(session.is_loading("b"))

        session.set_files([ChangedFile("a")])
        pending.pop()()
        session.tick()

        self.assertIsNone(session.get_cache_entry("b"))
        self.assertNotIn("b", session.cache)
        self.assertFalse(session.is_loading("b"))

    def test_batch_finishing_after_layout_switch_is_still_cached(self) -> None:
        session, pending = self._deferred_session(["a", "b"])
        session.select_file("b")
        session.tick()
        session.select_file(None)
        self.assertTrue(session.is_loading("b"))

        session.switch_layout("single")
        self.assertEqual(session.cache.keys(), ())
        pending.pop()()
        session.tick()

        self.assertIsNotNone(session.get_cache_entry("b"))


if __name__ == "__main__":
    unittest.main()
