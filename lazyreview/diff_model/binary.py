"""Detect file content that should not be rendered as a line diff."""

from __future__ import annotations

MAX_DIFF_BYTES = 10 * 1024 * 1024
BINARY_SNIFF_BYTES = 8000

BINARY_EXTENSIONS = frozenset(
    {
        # images
        "png", "jpg", "jpeg", "gif", "bmp", "tiff", "tif", "webp", "ico", "svg",
        # audio
        "mp3", "wav", "flac", "aac", "ogg", "m4a", "wma",
        # video
        "mp4", "avi", "mkv", "mov", "wmv", "flv", "webm", "m4v",
        # archives
        "zip", "rar", "7z", "tar", "gz", "bz2", "xz", "lz4", "lzma",
        # executables
        "exe", "dll", "so", "dylib", "bin", "app", "deb", "rpm", "dmg", "pkg",
        # office documents
        "doc", "docx", "xls", "xlsx", "ppt", "pptx", "pdf", "odt", "ods", "odp",
        # databases
        "db", "sqlite", "sqlite3", "mdb", "accdb",
        # fonts
        "ttf", "otf", "woff", "woff2", "eot",
        # compiled artifacts
        "pyc", "class", "jar", "war", "ear", "o", "obj", "lib", "a",
    }
)


def _extension(file_path: str) -> str:
    name = file_path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def is_binary_file_by_extension(file_path: str) -> bool:
    """Return whether the path's extension names a known binary format."""
    return _extension(file_path) in BINARY_EXTENSIONS


def is_likely_binary_content(data: bytes) -> bool:
    """Git's heuristic: a NUL byte within the first 8000 bytes."""
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


def is_too_large(data: bytes) -> bool:
    return len(data) > MAX_DIFF_BYTES


def binary_reason(file_path: str, data: bytes | None = None) -> str | None:
    """Return a display reason when the file is binary, else ``None``."""
    if is_binary_file_by_extension(file_path):
        return f"Binary file type ({_extension(file_path)})"
    if data is not None and is_likely_binary_content(data):
        return "File contains binary data"
    return None
