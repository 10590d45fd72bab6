"""Review-session controller wiring cache, loader, visibility, and selection.

The session owns every piece of mutable review state and exposes two
surfaces: synchronous, side-effect-free reads for the renderer, and input
handlers the renderer forwards pointer events to. All mutations happen on the
session timeline; call ``tick`` (or ``wait_until_settled``) to advance it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Literal

from ..diff_model.git_backend import DiffBackend, GitReviewContext
from ..diff_model.types import ChangedFile, DiffContent, Side
from .cache import DiffContentCache, EvictionPolicy
from .config import ReviewTuning
from .loader import ContentLoader
from .sections import ExpandedSections
from .selection import LineSelection, LineSelectionEngine
from .timeline import Timeline
from .visibility import FileBox, FileVisibility, VisibilityTracker

logger = logging.getLogger(__name__)

ViewLayout = Literal["continuous", "single"]


class ReviewSession:
    """Top-level state for one review of a set of changed files."""

    def __init__(
        self,
        backend: DiffBackend,
        context: GitReviewContext,
        *,
        tuning: ReviewTuning | None = None,
        timeline: Timeline | None = None,
        spawn: Callable[[Callable[[], None]], None] | None = None,
    ) -> None:
        self.tuning = tuning if tuning is not None else ReviewTuning()
        self.timeline = timeline if timeline is not None else Timeline()
        self._backend = backend
        self._context = context
        self._files: list[ChangedFile] = []
        self._order: tuple[str, ...] = ()
        self._selected_file: str | None = None
        self._dragging = False
        self.layout: ViewLayout = "continuous"

        self.cache = DiffContentCache()
        self.selection = LineSelectionEngine()
        self.expanded_sections = ExpandedSections()
        self.visibility = VisibilityTracker(
            self.timeline,
            debounce_seconds=self.tuning.debounce_seconds,
            margin=self.tuning.visibility_margin,
        )
        loader_options = {} if spawn is None else {"spawn": spawn}
        self.loader = ContentLoader(
            self.timeline,
            self.cache,
            load_diff=self._load_diff,
            visible_files=lambda: self.visibility.visible_files,
            document_order=lambda: self._order,
            selected_file=lambda: self._selected_file,
            batch_size=self.tuning.batch_size,
            **loader_options,
        )
        self.eviction = EvictionPolicy(
            self.cache,
            visible_files=lambda: self.visibility.visible_files,
            document_order=lambda: self._order,
            selected_file=lambda: self._selected_file,
            max_loaded=self.tuning.max_loaded_diffs,
            on_evict=self._on_evict,
        )
        self.visibility.subscribe(self.loader.on_visibility_changed)

    @property
    def context(self) -> GitReviewContext:
        return self._context

    def _load_diff(self, file_ref: str) -> DiffContent:
        return self._backend.load_diff(self._context, file_ref)

    def _on_evict(self, evicted: tuple[str, ...]) -> None:
        if not self.tuning.forget_sections_on_evict:
            return
        for file_ref in evicted:
            self.expanded_sections.forget(file_ref)

    def start(self) -> None:
        """Start the periodic eviction timer."""
        self.eviction.start(self.timeline, self.tuning.eviction_interval_seconds)

    def close(self) -> None:
        self.eviction.stop()

    def tick(self) -> int:
        return self.timeline.tick()

    def wait_until_settled(self, timeout_seconds: float) -> bool:
        """Advance the timeline until visibility and loading are both quiet."""
        return self.timeline.run_until(
            lambda: not self.visibility.has_pending_updates and self.loader.idle,
            timeout_seconds,
        )

    @property
    def files(self) -> tuple[ChangedFile, ...]:
        return tuple(self._files)

    @property
    def document_order(self) -> tuple[str, ...]:
        return self._order

    def refresh_files(self) -> tuple[ChangedFile, ...]:
        """Reload the changed-file list from the backend."""
        self.set_files(self._backend.get_changed_files(self._context))
        return self.files

    def set_files(self, files: Sequence[ChangedFile]) -> None:
        """Replace the document order; state for vanished files is dropped."""
        self._files = list(files)
        self._order = tuple(changed.path for changed in self._files)
        present = set(self._order)
        stale = [file_ref for file_ref in self.cache if file_ref not in present]
        if stale:
            self.cache.remove_many(stale)
            for file_ref in stale:
                self.expanded_sections.forget(file_ref)
        if self._selected_file is not None and self._selected_file not in present:
            self.select_file(None)
        selection = self.selection.selection
        if selection is not None and selection.file_path not in present:
            self.selection.clear()
        self.loader.request_load()

    @property
    def selected_file(self) -> str | None:
        return self._selected_file

    def select_file(self, file_ref: str | None) -> None:
        if file_ref == self._selected_file:
            return
        self._selected_file = file_ref
        self.loader.clear_errors()
        if file_ref is not None and file_ref not in self.cache:
            self.loader.retry(file_ref)
            self.loader.request_load()

    def switch_layout(self, layout: ViewLayout) -> None:
        """Switch single-file/continuous layout.

        Drops every cached diff, then reloads only the selected file in a
        blocking call so it renders immediately.
        """
        if layout == self.layout:
            return
        logger.debug("layout %s -> %s; clearing %d cached diff(s)", self.layout, layout, len(self.cache))
        self.layout = layout
        self.cache.clear()
        if self._selected_file is not None:
            self.loader.load_now(self._selected_file)
        self.loader.request_load()

    def get_cache_entry(self, file_ref: str) -> DiffContent | None:
        return self.cache.get(file_ref)

    def get_visibility_set(self) -> frozenset[str]:
        return self.visibility.visible_files

    def classify(self, file_ref: str) -> FileVisibility:
        return self.visibility.classify(file_ref, self._order)

    def is_loading(self, file_ref: str) -> bool:
        return self.loader.is_loading(file_ref)

    def file_error(self, file_ref: str) -> str | None:
        """Error text shown in place of the selected file's content pane."""
        return self.loader.file_error(file_ref)

    def is_selected(self, file_ref: str, line: int | None, side: Side) -> bool:
        return self.selection.is_selected(file_ref, line, side)

    def is_in_range(self, file_ref: str, line: int | None) -> bool:
        return self.selection.is_in_range(file_ref, line)

    def is_section_expanded(self, file_ref: str, section_index: int) -> bool:
        return self.expanded_sections.has(file_ref, section_index)

    @property
    def line_selection(self) -> LineSelection | None:
        return self.selection.selection

    def on_line_mouse_down(self, line: int | None, side: Side, file_ref: str, shift: bool = False) -> None:
        self.selection.click(line, side, file_ref, extend=shift)
        self._dragging = self.selection.selection is not None

    def on_line_mouse_enter(self, line: int | None, side: Side, file_ref: str) -> None:
        if self._dragging:
            self.selection.extend(line, side, file_ref)

    def on_line_mouse_up(self) -> None:
        self._dragging = False

    @property
    def dragging(self) -> bool:
        return self._dragging

    def on_toggle_collapse(self, file_ref: str, section_index: int) -> bool:
        return self.expanded_sections.toggle(file_ref, section_index)

    def observe_intersection(self, file_ref: str, intersecting: bool) -> None:
        self.visibility.observe(file_ref, intersecting)

    def observe_viewport(self, boxes: Sequence[FileBox], scroll_top: float, viewport_height: float) -> None:
        self.visibility.observe_viewport(boxes, scroll_top, viewport_height)


__all__ = ["ReviewSession", "ViewLayout"]
