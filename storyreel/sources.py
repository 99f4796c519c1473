"""
storyreel.sources - Reading clip media from URLs or local files.

Remote clips are streamed with requests; local clips are read from disk.
Every failure surfaces as ClipFetchError so callers see one error type
regardless of where a clip lives.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO
from urllib.parse import unquote, urlparse

import requests

from storyreel.config import ExportConfig
from storyreel.exceptions import ClipFetchError

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = {"http", "https"}


def is_remote(source: str) -> bool:
    """Check whether a clip source is an http(s) URL."""
    return urlparse(source).scheme.lower() in REMOTE_SCHEMES


def local_path(source: str) -> Path:
    """Convert a local clip source (plain path or file:// URL) to a Path."""
    parsed = urlparse(source)
    if parsed.scheme.lower() == "file":
        return Path(unquote(parsed.path))
    return Path(source).expanduser()


def _iter_local(source: str, chunk_size: int) -> Iterator[bytes]:
    path = local_path(source)
    try:
        f = open(path, "rb")
    except OSError as e:
        raise ClipFetchError(source, f"cannot open local file: {e}") from e

    with f:
        try:
            yield from iter(lambda: f.read(chunk_size), b"")
        except OSError as e:
            raise ClipFetchError(source, f"read failed: {e}") from e


def _iter_remote(source: str, chunk_size: int, timeout: float) -> Iterator[bytes]:
    try:
        response = requests.get(source, stream=True, timeout=timeout)
    except requests.RequestException as e:
        raise ClipFetchError(source, f"request failed: {e}") from e

    with response:
        if not response.ok:
            raise ClipFetchError(
                source,
                f"download failed with status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            yield from response.iter_content(chunk_size=chunk_size)
        except requests.RequestException as e:
            raise ClipFetchError(source, f"transfer interrupted: {e}") from e


def iter_clip(source: str, config: ExportConfig | None = None) -> Iterator[bytes]:
    """Iterate over a clip's bytes in chunks without holding the whole clip.

    Args:
        source: http(s) URL, file:// URL, or filesystem path
        config: Export configuration (chunk size, HTTP timeout)

    Yields:
        Consecutive chunks of at most ``config.chunk_size`` bytes

    Raises:
        ClipFetchError: If the clip cannot be opened, the server answers with
            a non-success status, or the transfer breaks off
    """
    config = config or ExportConfig()
    if is_remote(source):
        return _iter_remote(source, config.chunk_size, config.http_timeout)
    return _iter_local(source, config.chunk_size)


def copy_clip(source: str, destination: BinaryIO, config: ExportConfig | None = None) -> int:
    """Stream a clip into a writable file object.

    Returns:
        Number of bytes copied
    """
    copied = 0
    for chunk in iter_clip(source, config):
        destination.write(chunk)
        copied += len(chunk)
    logger.debug("Copied %d bytes from %s", copied, source)
    return copied


@contextmanager
def materialize(source: str, config: ExportConfig | None = None) -> Iterator[BinaryIO]:
    """Copy a whole clip into a temporary seekable buffer.

    Small clips stay in memory; larger ones spill to a temporary file. The
    buffer is closed, and any backing file removed, when the block exits.

    Yields:
        Seekable binary buffer rewound to offset 0

    Raises:
        ClipFetchError: If the clip cannot be fetched
    """
    config = config or ExportConfig()
    with tempfile.SpooledTemporaryFile(
        max_size=config.spool_max_bytes, prefix="storyreel_probe_"
    ) as buffer:
        copy_clip(source, buffer, config)
        buffer.seek(0)
        yield buffer
