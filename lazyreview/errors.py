"""Exception taxonomy for diff loading and selection state."""

from __future__ import annotations


class LoadError(Exception):
    """Backend could not produce diff content for one file."""

    def __init__(self, file_ref: str, message: str) -> None:
        super().__init__(message)
        self.file_ref = file_ref
        self.message = message


class BinaryFileError(LoadError):
    """File content is binary; callers render a placeholder instead of lines."""


class SelectionStateError(Exception):
    """Reserved name; selection operations degrade to "no selection" instead."""


__all__ = ["LoadError", "BinaryFileError", "SelectionStateError"]
