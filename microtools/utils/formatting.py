# microtools/utils/formatting.py

import re

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def format_file_size(size: int) -> str:
    """Human readable size: B below 1 KiB, then KB / MB with one decimal."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def safe_filename(name: str) -> str:
    """Reduce an uploaded filename to a single safe path segment."""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name)
    if cleaned in ("", ".", ".."):
        cleaned = "_" + cleaned
    return cleaned
