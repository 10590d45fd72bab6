"""Plain terminal rendering of one cached diff.

Consumes the session's read-only surface (cache entry, expanded sections,
selection predicates) and produces printable rows. Used by the CLI; an
interactive renderer would consume the same reads.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from functools import lru_cache

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

from .diff_model.types import DiffContent, LineEntry, Side

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_ADDED_SGR = "\033[32m"
_REMOVED_SGR = "\033[31m"
_DIM_SGR = "\033[2m"
_RESET = "\033[0m"
SELECTED_MARK = "▌"


def sanitize_terminal_text(text: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(text) is None:
        return text
    return _CONTROL_RE.sub(lambda match: f"\\x{ord(match.group(0)):02x}", text)


@lru_cache(maxsize=64)
def _lexer_for_language(language: str | None) -> Lexer:
    if language:
        try:
            return get_lexer_by_name(language, stripnl=False, ensurenl=False)
        except ClassNotFound:
            pass
    return TextLexer(stripnl=False, ensurenl=False)


@lru_cache(maxsize=16)
def _formatter(background: str) -> TerminalFormatter:
    return TerminalFormatter(bg="light" if background == "light" else "dark")


def highlight_line(text: str, language: str | None, background: str = "dark") -> str:
    rendered = highlight(text, _lexer_for_language(language), _formatter(background))
    return rendered.rstrip("\n")


def _gutter(number: int | None) -> str:
    return f"{number:>5}" if number is not None else "     "


def _row(
    line: LineEntry,
    language: str | None,
    *,
    colorize: bool,
    background: str,
    selected: bool,
) -> str:
    marker = {"added": "+", "removed": "-"}.get(line.type, " ")
    text = sanitize_terminal_text(line.content or "")
    if colorize and text:
        text = highlight_line(text, language, background)
    prefix = SELECTED_MARK if selected else " "
    head = f"{prefix}{_gutter(line.old_line_number)} {_gutter(line.new_line_number)} {marker}"
    if colorize and line.type in {"added", "removed"}:
        sgr = _ADDED_SGR if line.type == "added" else _REMOVED_SGR
        head = f"{sgr}{head}{_RESET}"
    return f"{head} {text}"


def render_diff_rows(
    content: DiffContent,
    *,
    is_expanded: Callable[[int], bool],
    is_selected: Callable[[int | None, Side], bool],
    colorize: bool = False,
    background: str = "dark",
) -> list[str]:
    """Render ``content`` into terminal rows.

    Collapsed sections render as one summary row naming the section index;
    expanded sections render their hidden rows inline. A row is marked selected
    when either of its gutter line numbers is selected on that side.
    """
    if content.is_binary:
        return [f"Binary file: {content.unsupported_reason or 'not shown'}"]

    rows: list[str] = []

    def emit(line: LineEntry) -> None:
        selected = is_selected(line.old_line_number, "old") or is_selected(line.new_line_number, "new")
        rows.append(_row(line, content.language, colorize=colorize, background=background, selected=selected))

    for index, line in enumerate(content.lines):
        if line.type != "collapsible":
            emit(line)
            continue
        if is_expanded(index):
            for hidden in line.collapsed_lines:
                emit(hidden)
            continue
        summary = f"  ... {line.collapsed_count} unchanged lines [section {index}]"
        rows.append(f"{_DIM_SGR}{summary}{_RESET}" if colorize else summary)
    return rows


def render_header(content: DiffContent) -> str:
    language = content.language or "text"
    return (
        f"{content.file_ref} ({language}, {content.size_bytes} bytes) "
        f"+{content.stats.additions} -{content.stats.deletions}"
    )
