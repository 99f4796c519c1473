"""
storyreel.utils - Shared utility functions.

Filename helpers for archive entries and human-readable sizes.
"""

from __future__ import annotations

import re

MAX_FILENAME_LENGTH = 30
EMPTY_FILENAME = "video"

# ASCII letters and digits, whitespace, underscores, CJK unified ideographs
_DISALLOWED_CHARS = re.compile(r"[^a-zA-Z0-9_\s\u4e00-\u9fff]", re.ASCII)
_WHITESPACE = re.compile(r"\s", re.ASCII)


def sanitize_filename(text: str) -> str:
    """Reduce free text (a prompt, a project name) to a safe file name stem.

    Keeps ASCII letters, digits and CJK ideographs, turns whitespace into
    underscores, truncates to 30 characters and drops trailing underscores.
    Applying it twice gives the same result as applying it once.

    Args:
        text: Arbitrary text

    Returns:
        Sanitized stem, or "video" if nothing survives
    """
    cleaned = _DISALLOWED_CHARS.sub("", text)
    cleaned = _WHITESPACE.sub("_", cleaned)
    cleaned = cleaned[:MAX_FILENAME_LENGTH].rstrip("_")
    return cleaned or EMPTY_FILENAME


def clip_filename(index: int, prompt: str) -> str:
    """Archive entry name for the index-th exported clip, e.g. 001_sunset.mp4."""
    return f"{index:03d}_{sanitize_filename(prompt)}.mp4"


def archive_filename(project_name: str) -> str:
    """Download name for a project's export archive."""
    return f"{sanitize_filename(project_name)}_export.zip"


def format_size(size_bytes: int) -> str:
    """Format byte count as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 GB")
    """
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"
