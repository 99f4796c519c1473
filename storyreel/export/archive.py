"""
storyreel.export.archive - ZIP packaging of a timeline and its clips.

The archive holds the FCPXML document first, then one entry per clip in
timeline order. Clips are streamed from their sources straight into the
archive; only the probed first clip is held in a temporary buffer, and it is
reused for its own entry rather than fetched twice.
"""

from __future__ import annotations

import logging
import shutil
import zipfile
from collections.abc import Sequence
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from storyreel.config import ExportConfig
from storyreel.exceptions import DocumentBuildError, NoExportableContentError
from storyreel.export.fcpxml import build_fcpxml
from storyreel.io import atomic_binary_writer
from storyreel.models import ExportItem, MediaFormat
from storyreel.probe.prober import probed
from storyreel.sources import iter_clip

logger = logging.getLogger(__name__)


@dataclass
class ExportSummary:
    """Describes an archive produced by assemble()."""

    timeline_name: str
    media_format: MediaFormat
    entries: list[str] = field(default_factory=list)
    bytes_written: int = 0


def _write_buffer(
    archive: zipfile.ZipFile, name: str, buffer: BinaryIO, config: ExportConfig
) -> int:
    buffer.seek(0)
    with archive.open(name, "w", force_zip64=True) as entry:
        shutil.copyfileobj(buffer, entry, config.chunk_size)
    return buffer.tell()


def _write_clip(archive: zipfile.ZipFile, clip: ExportItem, config: ExportConfig) -> int:
    written = 0
    logger.debug("Streaming %s from %s", clip.name, "URL" if clip.is_remote else "disk")
    with closing(iter_clip(clip.source, config)) as chunks:
        # Fetch errors surface here, before the entry is created.
        first = next(chunks, b"")
        with archive.open(clip.name, "w", force_zip64=True) as entry:
            entry.write(first)
            written += len(first)
            for chunk in chunks:
                entry.write(chunk)
                written += len(chunk)
    return written


def assemble(
    output: BinaryIO,
    project_name: str,
    clips: Sequence[ExportItem],
    config: ExportConfig | None = None,
) -> ExportSummary:
    """Write a project's timeline and clips into a ZIP archive.

    The first clip is probed for the format of the whole timeline; every clip
    is assumed to share it.

    Args:
        output: Writable binary sink; need not be seekable
        project_name: Project display name used in the timeline
        clips: Clips in timeline order
        config: Export configuration

    Returns:
        ExportSummary describing the archive

    Raises:
        NoExportableContentError: If clips is empty; nothing is written
        DocumentBuildError: If the timeline cannot be serialized or two
            entries would share a name; nothing is written
        ClipFetchError: If any clip cannot be fetched. Entries written before
            the failure stay in the sink.
    """
    config = config or ExportConfig()
    clips = list(clips)
    if not clips:
        raise NoExportableContentError("No clips available for export")

    names = [clip.name for clip in clips]
    if config.timeline_filename in names:
        raise DocumentBuildError(
            f"clip name {config.timeline_filename!r} collides with the timeline document"
        )
    if len(set(names)) != len(names):
        raise DocumentBuildError("clip names must be unique within the archive")

    with probed(clips[0], config) as (media_format, first_buffer):
        document = build_fcpxml(project_name, media_format, clips, config)
        summary = ExportSummary(timeline_name=config.timeline_filename, media_format=media_format)

        compression = zipfile.ZIP_DEFLATED if config.compress_media else zipfile.ZIP_STORED
        with zipfile.ZipFile(output, "w", compression=compression) as archive:
            archive.writestr(
                config.timeline_filename, document, compress_type=zipfile.ZIP_DEFLATED
            )
            summary.entries.append(config.timeline_filename)
            logger.info("Wrote %s (%d clips)", config.timeline_filename, len(clips))

            for index, clip in enumerate(clips):
                if index == 0 and first_buffer is not None:
                    written = _write_buffer(archive, clip.name, first_buffer, config)
                else:
                    written = _write_clip(archive, clip, config)
                summary.entries.append(clip.name)
                summary.bytes_written += written
                logger.info("Added %s (%d bytes)", clip.name, written)

    return summary


def export_to_path(
    path: Path,
    project_name: str,
    clips: Sequence[ExportItem],
    config: ExportConfig | None = None,
) -> ExportSummary:
    """Assemble an archive at ``path``.

    The file only appears once the archive is complete; a failed export
    leaves nothing behind.
    """
    if not clips:
        raise NoExportableContentError("No clips available for export")
    with atomic_binary_writer(path) as f:
        return assemble(f, project_name, clips, config)
