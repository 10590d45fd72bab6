"""Domain datatypes for per-file diff content."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

LineType = Literal["unchanged", "added", "removed", "collapsible"]
Side = Literal["old", "new"]
ChangeType = Literal["modified", "added", "deleted", "renamed", "copied", "unknown"]

SIDES: tuple[Side, ...] = ("old", "new")


@dataclass(frozen=True)
class ChangedFile:
    """One changed path as listed by the backend, in document order."""

    path: str
    change_type: ChangeType = "modified"


@dataclass(frozen=True)
class LineEntry:
    """One diff row: a source line or a summary of hidden unchanged lines."""

    type: LineType
    old_line_number: int | None = None
    new_line_number: int | None = None
    content: str | None = None
    collapsed_count: int = 0
    collapsed_lines: tuple["LineEntry", ...] = ()

    @classmethod
    def unchanged(cls, old_line_number: int, new_line_number: int, content: str) -> "LineEntry":
        return cls("unchanged", old_line_number, new_line_number, content)

    @classmethod
    def added(cls, new_line_number: int, content: str) -> "LineEntry":
        return cls("added", None, new_line_number, content)

    @classmethod
    def removed(cls, old_line_number: int, content: str) -> "LineEntry":
        return cls("removed", old_line_number, None, content)

    @classmethod
    def collapsible(cls, hidden: tuple["LineEntry", ...]) -> "LineEntry":
        return cls("collapsible", collapsed_count=len(hidden), collapsed_lines=hidden)

    def line_number(self, side: Side) -> int | None:
        """Return the line number shown in the ``side`` gutter, if any."""
        return self.old_line_number if side == "old" else self.new_line_number

    def is_well_formed(self) -> bool:
        """Check line-number presence rules for this entry's type."""
        has_old = self.old_line_number is not None
        has_new = self.new_line_number is not None
        if self.type == "added":
            return has_new and not has_old
        if self.type == "removed":
            return has_old and not has_new
        if self.type == "unchanged":
            return has_old and has_new
        return not has_old and not has_new and self.collapsed_count == len(self.collapsed_lines)


@dataclass(frozen=True)
class DiffStats:
    additions: int = 0
    deletions: int = 0

    @property
    def changed_lines(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class FileInfo:
    """File metadata observed while loading a diff."""

    language: str | None = None
    size_bytes: int = 0


@dataclass(frozen=True)
class DiffContent:
    """Loaded and parsed diff for one file.

    Values are immutable; a reload produces a new instance that replaces the
    cached one wholesale.
    """

    file_ref: str
    lines: tuple[LineEntry, ...] = ()
    file_info: FileInfo = field(default_factory=FileInfo)
    stats: DiffStats = field(default_factory=DiffStats)
    is_binary: bool = False
    unsupported_reason: str | None = None

    @property
    def language(self) -> str | None:
        return self.file_info.language

    @property
    def size_bytes(self) -> int:
        return self.file_info.size_bytes

    @property
    def changed_lines_count(self) -> int:
        return self.stats.changed_lines

    def collapsible_indices(self) -> tuple[int, ...]:
        """Return positions of collapsible entries (section indices)."""
        return tuple(index for index, line in enumerate(self.lines) if line.type == "collapsible")

    def is_collapsible_at(self, index: int) -> bool:
        return 0 <= index < len(self.lines) and self.lines[index].type == "collapsible"


__all__ = [
    "ChangeType",
    "ChangedFile",
    "DiffContent",
    "DiffStats",
    "FileInfo",
    "LineEntry",
    "LineType",
    "SIDES",
    "Side",
]
