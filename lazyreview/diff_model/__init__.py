"""Domain model for review diffs plus the git backend that produces them.

This package contains non-UI primitives:
- line-entry and diff-content datatypes
- unified-diff parsing and unchanged-run collapsing
- binary/size checks and language detection
- a git-backed ``DiffBackend`` implementation
"""

from __future__ import annotations

from .types import ChangedFile, DiffContent, DiffStats, FileInfo, LineEntry, SIDES, Side
from .collapse import (
    COLLAPSE_THRESHOLD,
    CONTEXT_LINES,
    add_collapsible_sections,
    calculate_diff_stats,
    expand_lines,
)
from .unified import added_file_lines, parse_unified_diff, split_lines
from .binary import MAX_DIFF_BYTES, binary_reason, is_binary_file_by_extension, is_likely_binary_content
from .language import file_language
from .git_backend import DiffBackend, GitDiffBackend, GitReviewContext, resolve_review_context

__all__ = [
    "ChangedFile",
    "DiffContent",
    "DiffStats",
    "FileInfo",
    "LineEntry",
    "SIDES",
    "Side",
    "COLLAPSE_THRESHOLD",
    "CONTEXT_LINES",
    "add_collapsible_sections",
    "calculate_diff_stats",
    "expand_lines",
    "added_file_lines",
    "parse_unified_diff",
    "split_lines",
    "MAX_DIFF_BYTES",
    "binary_reason",
    "is_binary_file_by_extension",
    "is_likely_binary_content",
    "file_language",
    "DiffBackend",
    "GitDiffBackend",
    "GitReviewContext",
    "resolve_review_context",
]
