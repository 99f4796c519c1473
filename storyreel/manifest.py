"""
storyreel.manifest - Export manifest loading.

A manifest lists the accepted takes of a project in timeline order:

    {
        "project_name": "My Film",
        "clips": [
            {"prompt": "a red kite over dunes", "source": "https://...", "duration_seconds": 5},
            {"name": "002_ending.mp4", "source": "takes/ending.mp4", "duration_seconds": 10}
        ]
    }

Clips without a ``name`` are named from their prompt with clip_filename().
Relative local sources are resolved against the manifest's directory.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from storyreel.config import ExportConfig
from storyreel.exceptions import ManifestError
from storyreel.io import read_json
from storyreel.models import ExportItem
from storyreel.sources import is_remote, local_path
from storyreel.utils import clip_filename


def parse_manifest(
    data: dict[str, Any],
    base_dir: Path | None = None,
    timeline_filename: str | None = None,
) -> tuple[str, list[ExportItem]]:
    """Turn manifest data into a project name and ordered export items.

    Args:
        data: Parsed manifest
        base_dir: Directory relative local sources are resolved against
        timeline_filename: Archive name reserved for the timeline document

    Returns:
        Tuple of (project_name, items)

    Raises:
        ManifestError: If required fields are missing or invalid
    """
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a JSON object")

    project_name = data.get("project_name") or "untitled"
    raw_clips = data.get("clips")
    if not isinstance(raw_clips, list):
        raise ManifestError("Manifest needs a 'clips' list")

    timeline_filename = timeline_filename or ExportConfig().timeline_filename
    items = []
    seen_names: set[str] = set()
    for index, raw in enumerate(raw_clips, 1):
        if not isinstance(raw, dict):
            raise ManifestError(f"Clip {index} must be an object")

        source = raw.get("source")
        if not source:
            raise ManifestError(f"Clip {index} has no source")
        if base_dir is not None and not is_remote(source):
            path = local_path(source)
            if not path.is_absolute():
                source = str(base_dir / path)

        name = raw.get("name") or clip_filename(index, raw.get("prompt", ""))
        if name == timeline_filename:
            raise ManifestError(f"Clip {index} uses the timeline document name {name!r}")
        if name in seen_names:
            raise ManifestError(f"Clip {index} reuses the archive name {name!r}")
        seen_names.add(name)

        try:
            items.append(
                ExportItem(
                    name=name,
                    source=source,
                    duration_seconds=raw.get("duration_seconds"),
                )
            )
        except ValidationError as e:
            raise ManifestError(f"Clip {index} is invalid: {e}") from e

    return str(project_name), items


def load_manifest(
    path: Path, timeline_filename: str | None = None
) -> tuple[str, list[ExportItem]]:
    """Load an export manifest from a JSON file.

    Raises:
        FileNotFoundError: If the manifest doesn't exist
        ManifestError: If it is not valid JSON or fails validation
    """
    try:
        data = read_json(path)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in {path}: {e}") from e
    return parse_manifest(data, base_dir=path.parent, timeline_filename=timeline_filename)
