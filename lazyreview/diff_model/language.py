"""Language detection for diff metadata using Pygments lexers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import PurePosixPath

from pygments.lexers import get_lexer_for_filename
from pygments.util import ClassNotFound


@lru_cache(maxsize=512)
def file_language(file_path: str) -> str | None:
    """Return the primary Pygments alias for ``file_path``'s name, if known."""
    name = PurePosixPath(file_path).name
    if not name:
        return None
    try:
        lexer = get_lexer_for_filename(name)
    except ClassNotFound:
        return None
    aliases = getattr(lexer, "aliases", None) or ()
    return aliases[0] if aliases else lexer.name.lower()
