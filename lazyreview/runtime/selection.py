"""Line-range selection state machine for diff gutters.

Selections are scoped to one file and one side (``old``/``new``). Clicking
starts or toggles a selection, shift-click extends from the anchor, and drag
extension only ever widens the current bounds. Invalid line inputs never raise;
they read as "not selected" and leave state untouched.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..diff_model.types import Side


def _valid_line(line: object) -> bool:
    return isinstance(line, int) and not isinstance(line, bool)


@dataclass(frozen=True)
class LineSelection:
    """Inclusive line range on one side of one file."""

    start_line: int
    end_line: int
    side: Side
    file_path: str

    def same_scope(self, side: Side, file_path: str) -> bool:
        return self.side == side and self.file_path == file_path

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1


class LineSelectionEngine:
    """Pure selection state; no I/O, no timers."""

    def __init__(self) -> None:
        self._selection: LineSelection | None = None
        self._anchor: int | None = None

    @property
    def selection(self) -> LineSelection | None:
        return self._selection

    @property
    def anchor(self) -> int | None:
        return self._anchor

    def _start(self, line: int, side: Side, file_path: str) -> LineSelection:
        self._anchor = line
        self._selection = LineSelection(line, line, side, file_path)
        return self._selection

    def click(self, line: int | None, side: Side, file_path: str, extend: bool = False) -> LineSelection | None:
        """Apply a gutter click; ``extend`` is the shift-click modifier."""
        if not _valid_line(line):
            return self._selection
        current = self._selection
        if current is not None and current.same_scope(side, file_path):
            if extend:
                anchor = self._anchor if self._anchor is not None else current.start_line
                self._selection = LineSelection(min(anchor, line), max(anchor, line), side, file_path)
                return self._selection
            if current.contains(line):
                self.clear()
                return None
        return self._start(line, side, file_path)

    def extend(self, line: int | None, side: Side, file_path: str) -> LineSelection | None:
        """Widen the selection during a drag, or start one on a new scope."""
        if not _valid_line(line):
            return self._selection
        current = self._selection
        if current is None or not current.same_scope(side, file_path):
            return self._start(line, side, file_path)
        self._selection = LineSelection(
            min(current.start_line, line),
            max(current.end_line, line),
            side,
            file_path,
        )
        return self._selection

    def clear(self) -> None:
        self._selection = None
        self._anchor = None

    def is_selected(self, file_path: str, line: int | None, side: Side) -> bool:
        current = self._selection
        if current is None or not _valid_line(line):
            return False
        return current.same_scope(side, file_path) and current.contains(line)

    def is_in_range(self, file_path: str, line: int | None) -> bool:
        """Side-independent range check used for range highlighting."""
        current = self._selection
        if current is None or not _valid_line(line):
            return False
        return current.file_path == file_path and current.contains(line)


__all__ = ["LineSelection", "LineSelectionEngine"]
