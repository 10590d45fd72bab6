"""Command-line front door for lazyreview.

Resolves the repository, builds a review session against a base ref, and
either prints a per-file change summary or renders one file's diff. Both paths
load content through the session's visibility/loader pipeline.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .diff_model import GitDiffBackend, resolve_review_context
from .diff_model.types import Side
from .errors import LoadError
from .render import render_diff_rows, render_header
from .runtime import ReviewSession, load_review_tuning
from .runtime import config as review_config

DEFAULT_TIMEOUT_SECONDS = 30.0


def _line_range(value: str) -> tuple[int, int]:
    """argparse type for ``START-END`` or single ``LINE`` ranges."""
    start_text, _sep, end_text = value.partition("-")
    try:
        start = int(start_text)
        end = int(end_text) if end_text else start
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid line range: {value!r}") from exc
    if start <= 0 or end <= 0:
        raise argparse.ArgumentTypeError("line numbers must be >= 1")
    return start, end


def _file_ref_for(session: ReviewSession, raw: str) -> str:
    """Map a CLI path (absolute or repo-relative) onto a session file ref."""
    candidate = Path(raw)
    if candidate.is_absolute():
        try:
            candidate = candidate.resolve().relative_to(session.context.repo_root)
        except ValueError:
            raise SystemExit(f"Path is outside the repository: {raw}") from None
    return candidate.as_posix()


def render_file(
    session: ReviewSession,
    file_ref: str,
    *,
    expand_all: bool = False,
    select: tuple[int, int] | None = None,
    side: Side = "new",
    colorize: bool = False,
    background: str = "dark",
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """Load ``file_ref`` through the session and render it as text."""
    if file_ref not in session.document_order:
        raise SystemExit(f"Not a changed file: {file_ref}")

    session.select_file(file_ref)
    session.observe_intersection(file_ref, True)
    session.wait_until_settled(timeout_seconds)

    error = session.file_error(file_ref)
    if error is not None:
        raise SystemExit(f"Failed to load diff for {file_ref}: {error}")
    content = session.get_cache_entry(file_ref)
    if content is None:
        raise SystemExit(f"Timed out loading diff for {file_ref}")

    if expand_all:
        for section_index in content.collapsible_indices():
            if not session.is_section_expanded(file_ref, section_index):
                session.on_toggle_collapse(file_ref, section_index)
    if select is not None:
        start, end = select
        session.on_line_mouse_down(start, side, file_ref)
        session.on_line_mouse_enter(end, side, file_ref)
        session.on_line_mouse_up()

    rows = render_diff_rows(
        content,
        is_expanded=lambda index: session.is_section_expanded(file_ref, index),
        is_selected=lambda line, row_side: session.is_selected(file_ref, line, row_side),
        colorize=colorize,
        background=background,
    )
    return "\n".join([render_header(content), *rows]) + "\n"


def render_summary(session: ReviewSession, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> str:
    """Load every changed file in batches and list per-file change counts."""
    for file_ref in session.document_order:
        session.observe_intersection(file_ref, True)
    session.wait_until_settled(timeout_seconds)

    out: list[str] = []
    for changed in session.files:
        content = session.get_cache_entry(changed.path)
        if content is None:
            detail = "(not loaded)"
        elif content.is_binary:
            detail = f"(binary: {content.unsupported_reason})"
        else:
            detail = f"+{content.stats.additions} -{content.stats.deletions} [{content.language or 'text'}]"
        out.append(f"{changed.change_type:<9} {changed.path} {detail}")
    if not out:
        out.append("No changes.")
    return "\n".join(out) + "\n"


def main(default_path: Path | None = None) -> None:
    """Parse CLI arguments and print a review summary or one file's diff.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is used to locate the repository.
    """
    parser = argparse.ArgumentParser(description="Review worktree changes against a git base ref.")
    parser.add_argument("path", nargs="?", default=None, help="Path inside the repository. Defaults to current directory.")
    parser.add_argument("--base", default="HEAD", help="Base ref to compare the worktree against (default: HEAD).")
    parser.add_argument("--render", metavar="FILE", help="Render the diff of one changed FILE and exit.")
    parser.add_argument("--expand-all", action="store_true", help="Expand every collapsed unchanged section.")
    parser.add_argument("--select", type=_line_range, metavar="START-END", help="Mark a selected line range.")
    parser.add_argument("--side", choices=("old", "new"), default="new", help="Side for --select (default: new).")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument("--background", choices=("dark", "light"), default="dark", help="Terminal background for highlighting.")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS, help="Seconds to wait for diff loading.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log loader and cache activity to stderr.")
    parser.add_argument(
        "--save-tuning",
        action="store_true",
        help="Write the effective review tuning to the config file (for editing) and exit.",
    )
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.save_tuning:
        review_config.save_review_tuning(review_config.load_review_tuning())
        sys.stdout.write(f"Saved review tuning to {review_config.CONFIG_PATH}\n")
        return

    if default_path is None:
        default_path = Path.cwd()
    path = Path(args.path or default_path)
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")

    context = resolve_review_context(path.resolve(), base_ref=args.base)
    if context is None:
        raise SystemExit(f"Not a git repository: {path}")

    session = ReviewSession(GitDiffBackend(), context, tuning=load_review_tuning())
    session.start()
    try:
        try:
            session.refresh_files()
        except LoadError as exc:
            raise SystemExit(exc.message) from exc

        if args.render is not None:
            output = render_file(
                session,
                _file_ref_for(session, args.render),
                expand_all=args.expand_all,
                select=args.select,
                side=args.side,
                colorize=sys.stdout.isatty() and not args.no_color,
                background=args.background,
                timeout_seconds=args.timeout,
            )
        else:
            output = render_summary(session, args.timeout)
    finally:
        session.close()
    sys.stdout.write(output)


if __name__ == "__main__":
    main()
