"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml
from mp4_fixtures import mp4, track

from storyreel.config import ExportConfig
from storyreel.models import ExportItem


@pytest.fixture
def config() -> ExportConfig:
    """Return a config with small transfer chunks."""
    return ExportConfig(chunk_size=16)


@pytest.fixture
def sample_mp4() -> bytes:
    """Return a minimal 1280x720 23.976 fps MP4."""
    return mp4(track(width=1280, height=720, timescale=24000, sample_delta=1001))


@pytest.fixture
def clip_dir(tmp_path: Path, sample_mp4: bytes) -> Path:
    """Create a directory holding two local clips."""
    clips = tmp_path / "clips"
    clips.mkdir()
    (clips / "a.mp4").write_bytes(sample_mp4)
    (clips / "b.mp4").write_bytes(b"second clip media" * 10)
    return clips


@pytest.fixture
def local_items(clip_dir: Path) -> list[ExportItem]:
    """Return export items pointing at the local clips."""
    return [
        ExportItem(name="001_a.mp4", source=str(clip_dir / "a.mp4"), duration_seconds=5),
        ExportItem(name="002_b.mp4", source=str(clip_dir / "b.mp4"), duration_seconds=10),
    ]


@pytest.fixture
def manifest_file(clip_dir: Path) -> Path:
    """Write a manifest referencing the local clips by relative path."""
    manifest = {
        "project_name": "Desert Kite",
        "clips": [
            {"prompt": "a red kite over dunes", "source": "a.mp4", "duration_seconds": 5},
            {"name": "002_ending.mp4", "source": "b.mp4", "duration_seconds": 10},
        ],
    }
    path = clip_dir / "manifest.json"
    path.write_text(json.dumps(manifest), encoding="utf-8")
    return path


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a storyreel.yaml with a custom event name."""
    path = tmp_path / "storyreel.yaml"
    with open(path, "w") as f:
        yaml.dump({"event_name": "Dailies", "fallback_width": 1920, "fallback_height": 1080}, f)
    return path


def _response(body: bytes = b"", status_code: int = 200) -> MagicMock:
    """Build a stand-in for a streamed requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.iter_content.side_effect = lambda chunk_size=1: iter(
        [body[i : i + chunk_size] for i in range(0, len(body), chunk_size)]
    )
    return response


@pytest.fixture
def fake_get(monkeypatch: pytest.MonkeyPatch):
    """Patch requests.get in storyreel.sources.

    Register responses with ``fake_get.routes[url] = (body, status_code)``;
    unknown URLs answer 404. Requested URLs are recorded in ``fake_get.calls``.
    """
    routes: dict[str, tuple[bytes, int]] = {}
    calls: list[str] = []

    def get(url: str, stream: bool = False, timeout: float | None = None) -> MagicMock:
        calls.append(url)
        if url not in routes:
            return _response(status_code=404)
        body, status_code = routes[url]
        return _response(body, status_code)

    monkeypatch.setattr("storyreel.sources.requests.get", get)
    get.routes = routes
    get.calls = calls
    return get
