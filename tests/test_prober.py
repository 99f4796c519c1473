"""Tests for storyreel.probe.prober module."""

from __future__ import annotations

import io
from pathlib import Path

from mp4_fixtures import box, mp4, nested, tkhd_payload, track

from storyreel.config import ExportConfig
from storyreel.models import ExportItem, MediaFormat
from storyreel.probe.prober import probe, probe_buffer, probed


class TestProbeBuffer:
    def test_full_metadata(self, sample_mp4: bytes) -> None:
        fmt = probe_buffer(io.BytesIO(sample_mp4))
        assert fmt == MediaFormat(width=1280, height=720, frame_duration="1001/24000s")

    def test_buffer_is_rewound(self, sample_mp4: bytes) -> None:
        buffer = io.BytesIO(sample_mp4)
        probe_buffer(buffer)
        assert buffer.tell() == 0

    def test_missing_rate_uses_fallback_duration(self) -> None:
        data = box("moov", box("trak", box("tkhd", tkhd_payload(1920, 1080))))
        fmt = probe_buffer(io.BytesIO(data))
        assert (fmt.width, fmt.height) == (1920, 1080)
        assert fmt.frame_duration == "100/2400s"

    def test_missing_dimensions_use_fallback(self) -> None:
        audio_only = mp4(track(width=0, height=0, timescale=25, sample_delta=1, handler="soun"))
        fmt = probe_buffer(io.BytesIO(audio_only))
        assert (fmt.width, fmt.height) == (1280, 720)

    def test_unparsable_data_gives_default(self) -> None:
        fmt = probe_buffer(io.BytesIO(b"not an mp4 at all"))
        assert fmt == MediaFormat.default()

    def test_configured_fallbacks(self) -> None:
        config = ExportConfig(
            fallback_width=1920, fallback_height=1080, fallback_frame_duration="100/2500s"
        )
        fmt = probe_buffer(io.BytesIO(b""), config)
        assert fmt == MediaFormat(width=1920, height=1080, frame_duration="100/2500s")

    def test_nonstandard_rate(self) -> None:
        data = mp4(track(width=640, height=480, timescale=48000, sample_delta=2001))
        assert probe_buffer(io.BytesIO(data)).frame_duration == "2001/48000s"


class TestProbe:
    def test_local_file(self, local_items: list[ExportItem]) -> None:
        fmt = probe(local_items[0])
        assert fmt.frame_duration == "1001/24000s"
        assert fmt.height == 720

    def test_missing_local_file_gives_default(self, tmp_path: Path) -> None:
        item = ExportItem(name="001_x.mp4", source=str(tmp_path / "gone.mp4"), duration_seconds=5)
        assert probe(item) == MediaFormat.default()

    def test_remote_clip(self, fake_get, sample_mp4: bytes) -> None:
        fake_get.routes["https://cdn.example.com/a.mp4"] = (sample_mp4, 200)
        item = ExportItem(
            name="001_a.mp4", source="https://cdn.example.com/a.mp4", duration_seconds=5
        )
        fmt = probe(item)
        assert fmt == MediaFormat(width=1280, height=720, frame_duration="1001/24000s")

    def test_remote_error_status_gives_default(self, fake_get) -> None:
        fake_get.routes["https://cdn.example.com/a.mp4"] = (b"", 500)
        item = ExportItem(
            name="001_a.mp4", source="https://cdn.example.com/a.mp4", duration_seconds=5
        )
        fmt = probe(item)
        assert fmt.frame_duration == "100/2400s"
        assert (fmt.width, fmt.height) == (1280, 720)

    def test_fetch_and_parse_failures_share_fallback_rate(self, tmp_path: Path) -> None:
        garbage = tmp_path / "garbage.mp4"
        garbage.write_bytes(b"\x00" * 64)
        missing = str(tmp_path / "nope.mp4")
        unreachable = ExportItem(name="a.mp4", source=missing, duration_seconds=1)
        unparsable = ExportItem(name="b.mp4", source=str(garbage), duration_seconds=1)
        assert probe(unreachable).frame_duration == probe(unparsable).frame_duration

    def test_deeply_nested_file_gives_default(self, tmp_path: Path) -> None:
        clip = tmp_path / "nested.mp4"
        clip.write_bytes(nested("moov", 2000))
        item = ExportItem(name="001.mp4", source=str(clip), duration_seconds=5)
        assert probe(item) == MediaFormat.default()

    def test_deeply_nested_buffer_gives_default(self) -> None:
        data = nested("moov", 2000, box("tkhd", tkhd_payload(1920, 1080)))
        assert probe_buffer(io.BytesIO(data)) == MediaFormat.default()


class TestProbed:
    def test_yields_format_and_rewound_buffer(
        self, local_items: list[ExportItem], sample_mp4: bytes
    ) -> None:
        with probed(local_items[0]) as (fmt, buffer):
            assert fmt.frame_duration == "1001/24000s"
            assert buffer.read() == sample_mp4
        assert buffer.closed

    def test_unreachable_clip_yields_no_buffer(self, tmp_path: Path) -> None:
        item = ExportItem(name="001.mp4", source=str(tmp_path / "gone.mp4"), duration_seconds=5)
        with probed(item) as (fmt, buffer):
            assert fmt == MediaFormat.default()
            assert buffer is None
