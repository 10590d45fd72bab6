"""Viewport visibility tracking for diff file containers.

Raw intersection events arrive at scroll frequency. They accumulate in a
pending map and a trailing debounce timer folds them into the next published
visibility set in one step; applying that set is deferred to the timeline's
idle queue so bursts of scrolling never run loader work inline.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

from .timeline import Timeline, TimerHandle

FileVisibility = Literal["visible", "buffered", "far"]
VisibilityListener = Callable[[frozenset[str]], None]


@dataclass(frozen=True)
class FileBox:
    """Laid-out vertical extent of one file container in scroll coordinates."""

    file_ref: str
    top: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + max(0.0, self.height)


def intersecting_files(
    boxes: Iterable[FileBox],
    scroll_top: float,
    viewport_height: float,
    margin: float,
) -> set[str]:
    """Return files whose box overlaps the viewport extended by ``margin``."""
    region_top = scroll_top - margin
    region_bottom = scroll_top + max(0.0, viewport_height) + margin
    return {box.file_ref for box in boxes if box.bottom >= region_top and box.top <= region_bottom}


def with_neighbors(files: Iterable[str], document_order: Sequence[str]) -> set[str]:
    """Return ``files`` plus the immediate predecessor/successor of each."""
    wanted = set(files)
    out = set(wanted)
    for index, file_ref in enumerate(document_order):
        if file_ref not in wanted:
            continue
        if index > 0:
            out.add(document_order[index - 1])
        if index + 1 < len(document_order):
            out.add(document_order[index + 1])
    return out


class VisibilityTracker:
    """Debounced, atomically published set of files intersecting the viewport."""

    def __init__(
        self,
        timeline: Timeline,
        *,
        debounce_seconds: float = 0.1,
        margin: float = 500.0,
    ) -> None:
        self._timeline = timeline
        self.debounce_seconds = debounce_seconds
        self.margin = margin
        self._raw: dict[str, bool] = {}
        self._pending: dict[str, bool] = {}
        self._timer: TimerHandle | None = None
        self._visible: frozenset[str] = frozenset()
        self._flushed: frozenset[str] = frozenset()
        self._listeners: list[VisibilityListener] = []
        self._generation = 0
        self._apply_pending = False

    @property
    def visible_files(self) -> frozenset[str]:
        """Most recently published visibility set."""
        return self._visible

    @property
    def has_pending_updates(self) -> bool:
        return bool(self._pending) or self._timer is not None or self._apply_pending

    def subscribe(self, listener: VisibilityListener) -> None:
        self._listeners.append(listener)

    def observe(self, file_ref: str, intersecting: bool) -> None:
        """Record one raw intersection event and (re)arm the debounce timer."""
        self._raw[file_ref] = intersecting
        self._pending[file_ref] = intersecting
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._timeline.call_later(self.debounce_seconds, self._flush)

    def observe_viewport(
        self,
        boxes: Sequence[FileBox],
        scroll_top: float,
        viewport_height: float,
    ) -> None:
        """Derive raw events from layout geometry, emitting only changes."""
        hits = intersecting_files(boxes, scroll_top, viewport_height, self.margin)
        for box in boxes:
            intersecting = box.file_ref in hits
            if self._raw.get(box.file_ref, False) != intersecting:
                self.observe(box.file_ref, intersecting)

    def _flush(self) -> None:
        self._timer = None
        if not self._pending:
            return
        updates = self._pending
        self._pending = {}
        next_visible = set(self._flushed)
        for file_ref, intersecting in updates.items():
            if intersecting:
                next_visible.add(file_ref)
            else:
                next_visible.discard(file_ref)
        self._generation += 1
        generation = self._generation
        snapshot = frozenset(next_visible)
        self._flushed = snapshot
        self._apply_pending = True
        self._timeline.call_when_idle(lambda: self._apply(generation, snapshot))

    def _apply(self, generation: int, snapshot: frozenset[str]) -> None:
        if generation != self._generation:
            # A later flush already carries these updates.
            return
        self._apply_pending = False
        if snapshot == self._visible:
            return
        self._visible = snapshot
        for listener in list(self._listeners):
            listener(snapshot)

    def classify(self, file_ref: str, document_order: Sequence[str]) -> FileVisibility:
        if file_ref in self._visible:
            return "visible"
        if file_ref in with_neighbors(self._visible, document_order):
            return "buffered"
        return "far"

    def reset(self) -> None:
        """Drop raw, pending, and published state (file list replaced)."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._raw.clear()
        self._pending.clear()
        self._generation += 1
        self._flushed = frozenset()
        self._apply_pending = False
        if self._visible:
            self._visible = frozenset()
            for listener in list(self._listeners):
                listener(self._visible)


__all__ = [
    "FileBox",
    "FileVisibility",
    "VisibilityTracker",
    "intersecting_files",
    "with_neighbors",
]
