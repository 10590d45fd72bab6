"""Fold long unchanged runs into collapsible entries and count changes."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .types import DiffStats, LineEntry

COLLAPSE_THRESHOLD = 4
CONTEXT_LINES = 3


def add_collapsible_sections(
    lines: Sequence[LineEntry],
    *,
    threshold: int = COLLAPSE_THRESHOLD,
    context_lines: int = CONTEXT_LINES,
) -> list[LineEntry]:
    """Replace the middle of long unchanged runs with one collapsible entry.

    A run longer than ``threshold + 2 * context_lines`` keeps ``context_lines``
    unchanged rows on each side; everything between is hidden inside the
    collapsible entry's ``collapsed_lines``.
    """
    out: list[LineEntry] = []
    index = 0
    total = len(lines)

    while index < total:
        if lines[index].type != "unchanged":
            out.append(lines[index])
            index += 1
            continue

        run_end = index
        while run_end < total and lines[run_end].type == "unchanged":
            run_end += 1

        if run_end - index > threshold + 2 * context_lines:
            hidden_start = index + context_lines
            hidden_end = run_end - context_lines
            out.extend(lines[index:hidden_start])
            out.append(LineEntry.collapsible(tuple(lines[hidden_start:hidden_end])))
            out.extend(lines[hidden_end:run_end])
        else:
            out.extend(lines[index:run_end])
        index = run_end

    return out


def expand_lines(lines: Iterable[LineEntry]) -> list[LineEntry]:
    """Flatten collapsible entries back into their hidden rows."""
    out: list[LineEntry] = []
    for line in lines:
        if line.type == "collapsible":
            out.extend(expand_lines(line.collapsed_lines))
        else:
            out.append(line)
    return out


def calculate_diff_stats(lines: Iterable[LineEntry]) -> DiffStats:
    """Count added/removed rows, including rows hidden in collapsible entries."""
    additions = 0
    deletions = 0
    for line in lines:
        if line.type == "added":
            additions += 1
        elif line.type == "removed":
            deletions += 1
        elif line.type == "collapsible":
            nested = calculate_diff_stats(line.collapsed_lines)
            additions += nested.additions
            deletions += nested.deletions
    return DiffStats(additions=additions, deletions=deletions)
