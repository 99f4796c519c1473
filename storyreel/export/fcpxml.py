"""
storyreel.export.fcpxml - FCPXML 1.9 timeline generator.

Builds the interchange document that lays the exported clips end to end on
a single spine, for import into DaVinci Resolve or Final Cut Pro.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections.abc import Sequence

from storyreel.config import ExportConfig
from storyreel.exceptions import DocumentBuildError
from storyreel.models import ExportItem, MediaFormat
from storyreel.probe.framerate import format_name

FORMAT_ID = "r0"
RESOURCE_ID_PREFIX = "r"

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n<!DOCTYPE fcpxml>\n'

_ILLEGAL_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def seconds_to_fcpxml_time(seconds: int) -> str:
    """Convert whole seconds to FCPXML rational time, e.g. "5s"."""
    return f"{seconds}s"


def resource_id(index: int) -> str:
    """Resource identifier for an index (0 is the format, 1..N the assets)."""
    return f"{RESOURCE_ID_PREFIX}{index}"


def timeline_offsets(clips: Sequence[ExportItem]) -> list[int]:
    """Spine offsets in seconds: each clip starts where the previous ends."""
    offsets = []
    position = 0
    for clip in clips:
        offsets.append(position)
        position += clip.duration_seconds
    return offsets


def _text(value: str, field: str) -> str:
    if _ILLEGAL_XML_CHARS.search(value):
        raise DocumentBuildError(f"{field} contains characters not allowed in XML: {value!r}")
    return value


def build_fcpxml_tree(
    project_name: str,
    media_format: MediaFormat,
    clips: Sequence[ExportItem],
    config: ExportConfig | None = None,
) -> ET.Element:
    """Build the FCPXML element tree.

    Args:
        project_name: Project display name
        media_format: Format applied to every clip
        clips: Clips in timeline order
        config: Export configuration (document version, event name)

    Returns:
        Root <fcpxml> element
    """
    config = config or ExportConfig()

    root = ET.Element("fcpxml", version=config.fcpxml_version)
    resources = ET.SubElement(root, "resources")
    ET.SubElement(
        resources,
        "format",
        id=FORMAT_ID,
        name=format_name(media_format.height, media_format.frame_duration),
        frameDuration=media_format.frame_duration,
        width=str(media_format.width),
        height=str(media_format.height),
    )

    for index, clip in enumerate(clips, 1):
        ET.SubElement(
            resources,
            "asset",
            id=resource_id(index),
            name=_text(clip.stem, "clip name"),
            src=_text(f"./{clip.name}", "clip source"),
            start="0s",
            duration=seconds_to_fcpxml_time(clip.duration_seconds),
            hasVideo="1",
            hasAudio="1",
            format=FORMAT_ID,
        )

    total_duration = sum(clip.duration_seconds for clip in clips)

    library = ET.SubElement(root, "library")
    event = ET.SubElement(library, "event", name=_text(config.event_name, "event name"))
    project = ET.SubElement(event, "project", name=_text(project_name, "project name"))
    sequence = ET.SubElement(
        project,
        "sequence",
        format=FORMAT_ID,
        duration=seconds_to_fcpxml_time(total_duration),
        tcStart="0s",
        tcFormat="NDF",
    )
    spine = ET.SubElement(sequence, "spine")

    for index, (clip, offset) in enumerate(zip(clips, timeline_offsets(clips)), 1):
        ET.SubElement(
            spine,
            "clip",
            name=clip.stem,
            ref=resource_id(index),
            offset=seconds_to_fcpxml_time(offset),
            start="0s",
            duration=seconds_to_fcpxml_time(clip.duration_seconds),
        )

    return root


def build_fcpxml(
    project_name: str,
    media_format: MediaFormat,
    clips: Sequence[ExportItem],
    config: ExportConfig | None = None,
) -> bytes:
    """Generate FCPXML for a sequence of clips.

    Identical input always produces identical bytes.

    Returns:
        UTF-8 encoded document including the XML declaration and doctype

    Raises:
        DocumentBuildError: If the document cannot be serialized
    """
    root = build_fcpxml_tree(project_name, media_format, clips, config)
    ET.indent(root, space="    ")
    try:
        body = ET.tostring(root, encoding="unicode")
        return (XML_HEADER + body + "\n").encode("utf-8")
    except (TypeError, ValueError) as e:
        raise DocumentBuildError(f"Failed to serialize FCPXML: {e}") from e
