"""Git-backed diff source for review sessions.

Lists changed files against a base ref and builds full-context ``DiffContent``
for one file at a time. Every git call runs with a timeout; failures surface as
``LoadError`` so the content loader can decide whether to report or retry.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..errors import BinaryFileError, LoadError
from .binary import MAX_DIFF_BYTES, binary_reason, is_too_large
from .collapse import add_collapsible_sections, calculate_diff_stats
from .language import file_language
from .types import ChangedFile, ChangeType, DiffContent, FileInfo, LineEntry
from .unified import added_file_lines, parse_unified_diff, split_lines

logger = logging.getLogger(__name__)

_STATUS_CHANGE_TYPES: dict[str, ChangeType] = {
    "M": "modified",
    "A": "added",
    "D": "deleted",
    "R": "renamed",
    "C": "copied",
    "T": "modified",
}


@dataclass(frozen=True)
class GitReviewContext:
    """Repository and base ref a review session compares the worktree against."""

    repo_root: Path
    base_ref: str = "HEAD"


class DiffBackend(Protocol):
    """Collaborator that supplies changed files and per-file diff content."""

    def get_changed_files(self, context: GitReviewContext) -> list[ChangedFile]: ...

    def load_diff(self, context: GitReviewContext, file_ref: str) -> DiffContent: ...


def _run_git(
    repo_root: Path,
    args: list[str],
    timeout_seconds: float,
    *,
    text: bool = True,
) -> subprocess.CompletedProcess | None:
    """Execute a git subcommand with timeout; ``None`` when it cannot start."""
    try:
        if text:
            return subprocess.run(
                ["git", "-C", str(repo_root), *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=timeout_seconds,
            )
        return subprocess.run(
            ["git", "-C", str(repo_root), *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
            timeout=timeout_seconds,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("git %s failed to run: %s", " ".join(args), exc)
        return None


def resolve_review_context(path: Path, base_ref: str = "HEAD", timeout_seconds: float = 2.0) -> GitReviewContext | None:
    """Resolve the repository containing ``path``; ``None`` outside a repo."""
    start = path if path.is_dir() else path.parent
    proc = _run_git(start, ["rev-parse", "--show-toplevel"], timeout_seconds)
    if proc is None or proc.returncode != 0:
        return None
    top = proc.stdout.strip()
    if not top:
        return None
    return GitReviewContext(repo_root=Path(top).resolve(), base_ref=base_ref)


def _split_nul(output: str) -> list[str]:
    return [item for item in output.split("\0") if item]


def _parse_name_status(output: str) -> list[ChangedFile]:
    """Parse ``git diff --name-status -z`` output in listing order."""
    files: list[ChangedFile] = []
    tokens = _split_nul(output)
    index = 0
    while index < len(tokens):
        status = tokens[index]
        code = status[:1]
        change_type = _STATUS_CHANGE_TYPES.get(code, "unknown")
        if code in {"R", "C"} and index + 2 < len(tokens):
            files.append(ChangedFile(path=tokens[index + 2], change_type=change_type))
            index += 3
            continue
        if index + 1 >= len(tokens):
            break
        files.append(ChangedFile(path=tokens[index + 1], change_type=change_type))
        index += 2
    return files


def _decode(data: bytes) -> str:
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode("utf-8", errors="replace")


class GitDiffBackend:
    """Produce review diffs from ``git`` for a worktree against a base ref."""

    def __init__(self, timeout_seconds: float = 10.0) -> None:
        self.timeout_seconds = timeout_seconds
        self._merge_bases: dict[tuple[Path, str], str] = {}

    def diff_base(self, context: GitReviewContext) -> str:
        """Return the commit diffs are taken against.

        That is the merge-base of ``base_ref`` and ``HEAD``, so commits that
        landed on the base branch after the fork do not show up as reverse
        changes. Falls back to ``base_ref`` itself when git cannot compute one
        (unborn ``HEAD``, unrelated histories). Resolved once per file-list
        refresh.
        """
        key = (context.repo_root, context.base_ref)
        cached = self._merge_bases.get(key)
        if cached is not None:
            return cached
        proc = _run_git(context.repo_root, ["merge-base", context.base_ref, "HEAD"], self.timeout_seconds)
        base = context.base_ref
        if proc is not None and proc.returncode == 0 and proc.stdout.strip():
            base = proc.stdout.strip()
        else:
            logger.debug("no merge-base for %s and HEAD; diffing against the ref itself", context.base_ref)
        self._merge_bases[key] = base
        return base

    def get_changed_files(self, context: GitReviewContext) -> list[ChangedFile]:
        """Return tracked changes then untracked files, each group sorted by git."""
        self._merge_bases.pop((context.repo_root, context.base_ref), None)
        diff_proc = _run_git(
            context.repo_root,
            ["diff", "--name-status", "-M", "-z", self.diff_base(context), "--"],
            self.timeout_seconds,
        )
        if diff_proc is None or diff_proc.returncode != 0:
            detail = diff_proc.stderr.strip() if diff_proc is not None else "git unavailable"
            raise LoadError("", f"Failed to list changed files: {detail}")
        files = _parse_name_status(diff_proc.stdout)

        untracked_proc = _run_git(
            context.repo_root,
            ["ls-files", "--others", "--exclude-standard", "-z"],
            self.timeout_seconds,
        )
        if untracked_proc is not None and untracked_proc.returncode == 0:
            seen = {changed.path for changed in files}
            for path in _split_nul(untracked_proc.stdout):
                if path not in seen:
                    files.append(ChangedFile(path=path, change_type="added"))
        return files

    def _worktree_bytes(self, context: GitReviewContext, file_ref: str) -> bytes | None:
        target = (context.repo_root / file_ref).resolve()
        if not target.is_relative_to(context.repo_root):
            raise LoadError(file_ref, f"Path escapes repository: {file_ref}")
        if not target.is_file():
            return None
        try:
            return target.read_bytes()
        except OSError as exc:
            raise LoadError(file_ref, f"Failed to read {file_ref}: {exc}") from exc

    def _base_bytes(self, context: GitReviewContext, file_ref: str) -> bytes | None:
        proc = _run_git(
            context.repo_root,
            ["show", f"{self.diff_base(context)}:{file_ref}"],
            self.timeout_seconds,
            text=False,
        )
        if proc is None:
            raise LoadError(file_ref, f"Failed to run git for {file_ref}")
        if proc.returncode != 0:
            return None
        return proc.stdout

    def _diff_lines(self, context: GitReviewContext, file_ref: str, context_size: int) -> list[LineEntry]:
        proc = _run_git(
            context.repo_root,
            ["diff", "--no-color", "--no-ext-diff", f"-U{context_size}", self.diff_base(context), "--", file_ref],
            self.timeout_seconds,
        )
        if proc is None or proc.returncode != 0:
            detail = proc.stderr.strip() if proc is not None else "git unavailable"
            raise LoadError(file_ref, f"Failed to diff {file_ref}: {detail}")
        return parse_unified_diff(proc.stdout)

    def load_diff(self, context: GitReviewContext, file_ref: str) -> DiffContent:
        """Build full-context diff content for ``file_ref``.

        Raises ``BinaryFileError`` for binary files and ``LoadError`` for I/O
        failures or files larger than ``MAX_DIFF_BYTES``.
        """
        reason = binary_reason(file_ref)
        if reason is not None:
            raise BinaryFileError(file_ref, reason)

        new_bytes = self._worktree_bytes(context, file_ref)
        old_bytes = self._base_bytes(context, file_ref)
        if new_bytes is None and old_bytes is None:
            raise LoadError(file_ref, f"File not found in worktree or {context.base_ref}: {file_ref}")

        for data in (new_bytes, old_bytes):
            if data is None:
                continue
            if is_too_large(data):
                raise LoadError(file_ref, f"File is too large to diff (>{MAX_DIFF_BYTES // (1024 * 1024)}MB)")
            reason = binary_reason(file_ref, data)
            if reason is not None:
                raise BinaryFileError(file_ref, reason)

        if old_bytes is None:
            lines = added_file_lines(_decode(new_bytes or b""))
        elif new_bytes is None:
            lines = [
                LineEntry.removed(number, text)
                for number, text in enumerate(split_lines(_decode(old_bytes)), start=1)
            ]
        else:
            context_size = max(old_bytes.count(b"\n"), new_bytes.count(b"\n")) + 1
            lines = self._diff_lines(context, file_ref, context_size)
            if not lines:
                # Content-identical (mode-only change): show the file unchanged.
                lines = [
                    LineEntry.unchanged(number, number, text)
                    for number, text in enumerate(split_lines(_decode(new_bytes)), start=1)
                ]

        size_bytes = len(new_bytes) if new_bytes is not None else len(old_bytes or b"")
        return DiffContent(
            file_ref=file_ref,
            lines=tuple(add_collapsible_sections(lines)),
            file_info=FileInfo(language=file_language(file_ref), size_bytes=size_bytes),
            stats=calculate_diff_stats(lines),
        )


__all__ = [
    "DiffBackend",
    "GitDiffBackend",
    "GitReviewContext",
    "resolve_review_context",
]
