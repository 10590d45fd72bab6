"""Parse unified diff text into ordered ``LineEntry`` rows."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .types import LineEntry

_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


def split_lines(text: str) -> list[str]:
    """Split on LF only, the way git counts hunk lines.

    Form feeds, lone carriage returns and other Unicode line breaks stay part
    of the line. One trailing CR per line is dropped (CRLF files).
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


@dataclass
class _HunkCursor:
    old_line: int
    new_line: int
    old_remaining: int
    new_remaining: int

    def exhausted(self) -> bool:
        return self.old_remaining <= 0 and self.new_remaining <= 0


def parse_unified_diff(diff_text: str) -> list[LineEntry]:
    """Parse one file's unified diff into rows with old/new line numbers.

    File headers and anything outside hunk bodies are ignored. Hunk bodies
    are consumed by the counts in their ``@@`` header, so removed lines that
    happen to start with ``--`` are not mistaken for headers.
    """
    lines: list[LineEntry] = []
    cursor: _HunkCursor | None = None

    for raw_line in split_lines(diff_text):
        if cursor is None or cursor.exhausted():
            match = _HUNK_RE.match(raw_line)
            if match:
                cursor = _HunkCursor(
                    old_line=int(match.group(1)),
                    new_line=int(match.group(3)),
                    old_remaining=int(match.group(2) or "1"),
                    new_remaining=int(match.group(4) or "1"),
                )
            continue

        if raw_line.startswith("\\"):
            # "\ No newline at end of file"
            continue

        marker = raw_line[:1]
        text = raw_line[1:]
        if marker == "+":
            lines.append(LineEntry.added(cursor.new_line, text))
            cursor.new_line += 1
            cursor.new_remaining -= 1
        elif marker == "-":
            lines.append(LineEntry.removed(cursor.old_line, text))
            cursor.old_line += 1
            cursor.old_remaining -= 1
        else:
            lines.append(LineEntry.unchanged(cursor.old_line, cursor.new_line, text))
            cursor.old_line += 1
            cursor.new_line += 1
            cursor.old_remaining -= 1
            cursor.new_remaining -= 1

    return lines


def added_file_lines(source: str) -> list[LineEntry]:
    """Rows for a file that only exists on the new side (untracked/added)."""
    return [LineEntry.added(number, text) for number, text in enumerate(split_lines(source), start=1)]
