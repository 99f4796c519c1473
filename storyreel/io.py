"""
storyreel.io - JSON read helper, atomic file writes.

Centralized I/O utilities for the CLI and archive output.
"""

from __future__ import annotations

import json
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO


def read_json(path: Path) -> dict[str, Any]:
    """Read JSON file with UTF-8 encoding.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON data as dictionary

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)


@contextmanager
def atomic_binary_writer(path: Path) -> Iterator[BinaryIO]:
    """Open a binary file that only appears at ``path`` if the block succeeds.

    Writes to a temp file first, then renames to prevent a partial file on
    interruption. The temp file is removed if the block raises.

    Args:
        path: Destination path
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="wb",
        dir=path.parent,
        delete=False,
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            yield tmp
        except Exception:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise
    tmp_path.replace(path)
