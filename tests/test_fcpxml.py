"""Tests for storyreel.export.fcpxml module."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from storyreel.config import ExportConfig
from storyreel.exceptions import DocumentBuildError
from storyreel.export.fcpxml import (
    build_fcpxml,
    resource_id,
    seconds_to_fcpxml_time,
    timeline_offsets,
)
from storyreel.models import ExportItem, MediaFormat

FORMAT_720P24 = MediaFormat(width=1280, height=720, frame_duration="100/2400s")


def items(*durations: int) -> list[ExportItem]:
    return [
        ExportItem(name=f"{i:03d}_shot.mp4", source=f"https://cdn.example.com/{i}.mp4",
                   duration_seconds=d)
        for i, d in enumerate(durations, 1)
    ]


def parse(document: bytes) -> ET.Element:
    return ET.fromstring(document)


class TestHelpers:
    def test_seconds_to_fcpxml_time(self) -> None:
        assert seconds_to_fcpxml_time(0) == "0s"
        assert seconds_to_fcpxml_time(15) == "15s"

    def test_resource_id(self) -> None:
        assert resource_id(0) == "r0"
        assert resource_id(12) == "r12"

    def test_timeline_offsets(self) -> None:
        assert timeline_offsets(items(5, 10, 3)) == [0, 5, 15]
        assert timeline_offsets([]) == []


class TestBuildFCPXML:
    def test_header_and_version(self) -> None:
        document = build_fcpxml("Test", FORMAT_720P24, items(5))
        assert document.startswith(b'<?xml version="1.0" encoding="UTF-8"?>\n<!DOCTYPE fcpxml>\n')
        assert parse(document).get("version") == "1.9"

    def test_format_resource(self) -> None:
        root = parse(build_fcpxml("Test", FORMAT_720P24, items(5)))
        formats = root.findall("resources/format")
        assert len(formats) == 1
        fmt = formats[0]
        assert fmt.get("id") == "r0"
        assert fmt.get("name") == "FFVideoFormat720p24"
        assert fmt.get("frameDuration") == "100/2400s"
        assert fmt.get("width") == "1280"
        assert fmt.get("height") == "720"

    def test_assets(self) -> None:
        root = parse(build_fcpxml("Test", FORMAT_720P24, items(5, 10)))
        assets = root.findall("resources/asset")
        assert [a.get("id") for a in assets] == ["r1", "r2"]
        first = assets[0]
        assert first.get("name") == "001_shot"
        assert first.get("src") == "./001_shot.mp4"
        assert first.get("start") == "0s"
        assert first.get("duration") == "5s"
        assert first.get("hasVideo") == "1"
        assert first.get("hasAudio") == "1"
        assert first.get("format") == "r0"

    def test_spine_offsets_accumulate(self) -> None:
        root = parse(build_fcpxml("Test", FORMAT_720P24, items(5, 10, 7, 1)))
        clips = root.findall("library/event/project/sequence/spine/clip")
        assert [c.get("offset") for c in clips] == ["0s", "5s", "15s", "22s"]
        assert [c.get("duration") for c in clips] == ["5s", "10s", "7s", "1s"]
        assert [c.get("ref") for c in clips] == ["r1", "r2", "r3", "r4"]
        assert all(c.get("start") == "0s" for c in clips)

    def test_spine_matches_assets(self) -> None:
        root = parse(build_fcpxml("Test", FORMAT_720P24, items(3, 4, 5)))
        asset_ids = [a.get("id") for a in root.findall("resources/asset")]
        refs = [c.get("ref") for c in root.iter("clip")]
        assert len(refs) == len(asset_ids) == 3
        assert sorted(refs) == sorted(asset_ids)
        assert len(set(refs)) == len(refs)

    def test_library_hierarchy(self) -> None:
        root = parse(build_fcpxml("My Film", FORMAT_720P24, items(5, 10)))
        event = root.find("library/event")
        assert event.get("name") == "AI_Generated"
        project = event.find("project")
        assert project.get("name") == "My Film"
        sequence = project.find("sequence")
        assert sequence.get("format") == "r0"
        assert sequence.get("duration") == "15s"

    def test_configured_event_and_version(self) -> None:
        config = ExportConfig(event_name="Dailies", fcpxml_version="1.10")
        root = parse(build_fcpxml("Test", FORMAT_720P24, items(5), config))
        assert root.get("version") == "1.10"
        assert root.find("library/event").get("name") == "Dailies"

    def test_special_characters_are_escaped(self) -> None:
        document = build_fcpxml('Tom & Jerry "<cut>"', FORMAT_720P24, items(5))
        root = parse(document)
        assert root.find("library/event/project").get("name") == 'Tom & Jerry "<cut>"'

    def test_non_ascii_project_name(self) -> None:
        root = parse(build_fcpxml("沙漠风筝", FORMAT_720P24, items(5)))
        assert root.find("library/event/project").get("name") == "沙漠风筝"

    def test_output_is_deterministic(self) -> None:
        clips = items(5, 10)
        assert build_fcpxml("Test", FORMAT_720P24, clips) == build_fcpxml(
            "Test", FORMAT_720P24, clips
        )

    def test_illegal_characters_raise(self) -> None:
        with pytest.raises(DocumentBuildError):
            build_fcpxml("bad\x01name", FORMAT_720P24, items(5))

    def test_lone_surrogate_in_project_name_raises(self) -> None:
        with pytest.raises(DocumentBuildError):
            build_fcpxml("bad\ud800", FORMAT_720P24, items(5))
