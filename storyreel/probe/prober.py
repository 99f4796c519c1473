"""
storyreel.probe.prober - Media format detection for an export batch.

Probes one representative clip and returns the MediaFormat used for the
whole timeline. Callers guarantee the batch is homogeneous: every clip shares
the resolution and frame rate of the clip that was probed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from typing import BinaryIO

from storyreel.config import ExportConfig
from storyreel.exceptions import ClipFetchError
from storyreel.models import ExportItem, MediaFormat
from storyreel.probe.boxes import walk
from storyreel.probe.framerate import resolve_frame_duration
from storyreel.sources import materialize

logger = logging.getLogger(__name__)


def probe_buffer(buffer: BinaryIO, config: ExportConfig | None = None) -> MediaFormat:
    """Probe an already materialized, seekable clip.

    Args:
        buffer: Seekable binary buffer holding the whole clip
        config: Export configuration (fallbacks, handler-aware probing)

    Returns:
        MediaFormat with any undetermined field taken from the fallbacks
    """
    config = config or ExportConfig()
    result = walk(buffer, handler_aware=config.handler_aware_probe)
    buffer.seek(0)

    if result.has_dimensions:
        width, height = result.width, result.height
    else:
        logger.warning(
            "Could not determine clip dimensions, using %dx%d",
            config.fallback_width,
            config.fallback_height,
        )
        width, height = config.fallback_width, config.fallback_height

    if result.has_rate:
        frame_duration = resolve_frame_duration(result.timescale, result.sample_delta)
    else:
        logger.warning(
            "Could not determine clip frame rate, using %s", config.fallback_frame_duration
        )
        frame_duration = config.fallback_frame_duration

    return MediaFormat(width=width, height=height, frame_duration=frame_duration)


@contextmanager
def probed(
    item: ExportItem, config: ExportConfig | None = None
) -> Iterator[tuple[MediaFormat, BinaryIO | None]]:
    """Materialize a clip and probe it, keeping the buffer open for reuse.

    An unreachable clip yields the default format and no buffer. The buffer
    is released when the block exits.

    Yields:
        Tuple of (media_format, buffer or None)
    """
    config = config or ExportConfig()
    with ExitStack() as stack:
        buffer = None
        try:
            buffer = stack.enter_context(materialize(item.source, config))
        except ClipFetchError as e:
            logger.warning(
                "Could not fetch %s for probing (%s), using default format", item.name, e
            )

        if buffer is None:
            yield MediaFormat.default(config), None
        else:
            yield probe_buffer(buffer, config), buffer


def probe(item: ExportItem, config: ExportConfig | None = None) -> MediaFormat:
    """Detect the media format of one clip.

    Never raises: an unreachable clip yields the default format.

    Args:
        item: Clip to probe, normally the first item of an export batch
        config: Export configuration

    Returns:
        MediaFormat for the clip
    """
    with probed(item, config) as (media_format, _buffer):
        return media_format
