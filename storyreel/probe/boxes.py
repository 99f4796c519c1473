"""
storyreel.probe.boxes - ISO base media (MP4) box walker.

Walks the box tree of a seekable byte source and pulls out the few fields
needed to describe a clip's video format: track dimensions from ``tkhd``,
the media timescale from ``mdhd``, and the first sample delta from ``stts``.
Only ``moov``, ``trak``, ``mdia``, ``minf`` and ``stbl`` are descended into.
Nothing is read beyond the headers and the fixed-layout fields.
"""

from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass, field, replace
from typing import BinaryIO

from storyreel.exceptions import BoxParseError
from storyreel.models import BoxHeader, ProbeResult

logger = logging.getLogger(__name__)

SHORT_HEADER_SIZE = 8
LONG_HEADER_SIZE = 16

CONTAINER_TYPES = frozenset({"moov", "trak", "mdia", "minf", "stbl"})

# Containers in real files nest about five levels deep
MAX_NESTING_DEPTH = 64

VIDEO_HANDLER = "vide"


@dataclass(frozen=True)
class TrackHeaderLayout:
    """Position of the 16.16 width/height pair inside a tkhd payload.

    Version 1 widens creation time, modification time and duration to
    64 bits, which moves the pair 12 bytes further in.
    """

    version: int
    width_offset: int

    @property
    def height_offset(self) -> int:
        return self.width_offset + 4

    @property
    def length(self) -> int:
        return self.height_offset + 4

    def decode(self, payload: bytes) -> tuple[int, int]:
        raw_width, raw_height = struct.unpack_from(">II", payload, self.width_offset)
        return raw_width >> 16, raw_height >> 16


@dataclass(frozen=True)
class MediaHeaderLayout:
    """Position of the 32-bit timescale inside an mdhd payload."""

    version: int
    timescale_offset: int

    @property
    def length(self) -> int:
        return self.timescale_offset + 4

    def decode(self, payload: bytes) -> int:
        (timescale,) = struct.unpack_from(">I", payload, self.timescale_offset)
        return timescale


TRACK_HEADER_LAYOUTS: dict[int, TrackHeaderLayout] = {
    0: TrackHeaderLayout(version=0, width_offset=76),
    1: TrackHeaderLayout(version=1, width_offset=88),
}

MEDIA_HEADER_LAYOUTS: dict[int, MediaHeaderLayout] = {
    0: MediaHeaderLayout(version=0, timescale_offset=12),
    1: MediaHeaderLayout(version=1, timescale_offset=20),
}

# version/flags, entry_count, then (sample_count, sample_delta) pairs
STTS_HEADER_LENGTH = 8
STTS_ENTRY_LENGTH = 8

# version/flags, pre_defined, handler_type
HDLR_TYPE_OFFSET = 8
HDLR_LENGTH = 12


@dataclass
class _TrackState:
    values: ProbeResult = field(default_factory=ProbeResult)
    handler: str | None = None

    def trusted(self, handler_aware: bool) -> bool:
        if not handler_aware or self.handler is None:
            return True
        return self.handler == VIDEO_HANDLER


class BoxWalker:
    """Streaming walker over the boxes of one byte source.

    Values are collected per track and merged into ``result`` when the
    track closes, so a track whose handler turns out not to be video can be
    discarded. Boxes found outside any ``trak`` belong to an implicit root
    track.
    """

    def __init__(self, source: BinaryIO, handler_aware: bool = True) -> None:
        self.source = source
        self.handler_aware = handler_aware
        self.result = ProbeResult()
        self._root = _TrackState()
        self._tracks: list[_TrackState] = []
        self._depth = 0
        self._done = False

    @property
    def _current(self) -> _TrackState:
        return self._tracks[-1] if self._tracks else self._root

    def walk(self, offset: int = 0, limit: int | None = None) -> ProbeResult:
        """Walk the boxes in ``[offset, offset + limit)``.

        Args:
            offset: Byte offset of the first box
            limit: Region length; defaults to the rest of the source

        Returns:
            The properties found. A malformed region stops the walk and
            returns whatever was gathered before the fault.
        """
        if limit is None:
            limit = self._source_size() - offset

        try:
            self._walk_region(offset, offset + limit)
        except BoxParseError as e:
            logger.debug("Box walk stopped early: %s", e)
            while self._tracks:
                self._commit(self._tracks.pop())

        self._commit(self._root)
        return self.result

    def _source_size(self) -> int:
        return self.source.seek(0, io.SEEK_END)

    def _walk_region(self, start: int, end: int) -> None:
        position = start
        while position < end and not self._done:
            header = self._read_header(position, end)
            logger.debug("%s box at %d (%d bytes)", header.type, header.offset, header.size)
            self._visit(header)
            position = header.end

    def _read_at(self, offset: int, length: int) -> bytes:
        self.source.seek(offset)
        data = self.source.read(length)
        if len(data) < length:
            raise BoxParseError(f"unexpected end of data reading {length} bytes at {offset}")
        return data

    def _read_header(self, position: int, end: int) -> BoxHeader:
        if end - position < SHORT_HEADER_SIZE:
            raise BoxParseError(f"truncated box header at offset {position}")

        size, raw_type = struct.unpack(">I4s", self._read_at(position, SHORT_HEADER_SIZE))
        box_type = raw_type.decode("latin-1")
        header_size = SHORT_HEADER_SIZE

        if size == 1:
            if end - position < LONG_HEADER_SIZE:
                raise BoxParseError(f"truncated extended size for {box_type!r} at {position}")
            (size,) = struct.unpack(">Q", self._read_at(position + SHORT_HEADER_SIZE, 8))
            header_size = LONG_HEADER_SIZE
            if size < LONG_HEADER_SIZE:
                raise BoxParseError(
                    f"extended size {size} too small for {box_type!r} at {position}"
                )
        elif size == 0:
            size = end - position
        elif size < SHORT_HEADER_SIZE:
            raise BoxParseError(f"size {size} too small for {box_type!r} at {position}")

        if position + size > end:
            raise BoxParseError(f"{box_type!r} at {position} overruns its enclosing region")

        return BoxHeader(type=box_type, offset=position, size=size, header_size=header_size)

    def _read_payload(self, header: BoxHeader, length: int) -> bytes:
        if header.payload_size < length:
            raise BoxParseError(
                f"{header.type!r} at {header.offset} has {header.payload_size} payload bytes, "
                f"needs {length}"
            )
        return self._read_at(header.payload_offset, length)

    def _descend(self, header: BoxHeader) -> None:
        if self._depth >= MAX_NESTING_DEPTH:
            raise BoxParseError(
                f"{header.type!r} at {header.offset} nested deeper than {MAX_NESTING_DEPTH} levels"
            )
        self._depth += 1
        try:
            self._walk_region(header.payload_offset, header.end)
        finally:
            self._depth -= 1

    def _visit(self, header: BoxHeader) -> None:
        if header.type == "trak":
            self._tracks.append(_TrackState())
            self._descend(header)
            self._commit(self._tracks.pop())
            return

        if header.type in CONTAINER_TYPES:
            self._descend(header)
            return

        if header.type == "tkhd":
            self._read_track_header(header)
        elif header.type == "mdhd":
            self._read_media_header(header)
        elif header.type == "hdlr":
            self._read_handler(header)
        elif header.type == "stts":
            self._read_time_to_sample(header)
        else:
            return

        self._check_complete()

    def _version(self, header: BoxHeader) -> int:
        return self._read_payload(header, 1)[0]

    def _read_track_header(self, header: BoxHeader) -> None:
        values = self._current.values
        if values.has_dimensions:
            return
        version = self._version(header)
        layout = TRACK_HEADER_LAYOUTS.get(version)
        if layout is None:
            raise BoxParseError(f"unsupported tkhd version {version} at {header.offset}")
        width, height = layout.decode(self._read_payload(header, layout.length))
        if width and height:
            values.width, values.height = width, height

    def _read_media_header(self, header: BoxHeader) -> None:
        values = self._current.values
        if values.timescale:
            return
        version = self._version(header)
        layout = MEDIA_HEADER_LAYOUTS.get(version)
        if layout is None:
            raise BoxParseError(f"unsupported mdhd version {version} at {header.offset}")
        values.timescale = layout.decode(self._read_payload(header, layout.length)) or None

    def _read_handler(self, header: BoxHeader) -> None:
        payload = self._read_payload(header, HDLR_LENGTH)
        self._current.handler = payload[HDLR_TYPE_OFFSET:HDLR_LENGTH].decode("latin-1")

    def _read_time_to_sample(self, header: BoxHeader) -> None:
        values = self._current.values
        if values.sample_delta:
            return
        table_header = self._read_payload(header, STTS_HEADER_LENGTH)
        (entry_count,) = struct.unpack_from(">I", table_header, 4)
        if entry_count == 0:
            return
        payload = self._read_payload(header, STTS_HEADER_LENGTH + STTS_ENTRY_LENGTH)
        _sample_count, sample_delta = struct.unpack_from(">II", payload, STTS_HEADER_LENGTH)
        values.sample_delta = sample_delta or None

    def _check_complete(self) -> None:
        track = self._current
        if not track.trusted(self.handler_aware):
            return
        if self.result.complete:
            self._done = True
            return
        merged = replace(self.result)
        merged.merge(track.values)
        if merged.complete:
            self.result.merge(track.values)
            self._done = True

    def _commit(self, track: _TrackState) -> None:
        if track.trusted(self.handler_aware):
            self.result.merge(track.values)
        if self.result.complete:
            self._done = True


def walk(
    source: BinaryIO,
    offset: int = 0,
    limit: int | None = None,
    handler_aware: bool = True,
) -> ProbeResult:
    """Walk the boxes of a seekable source and collect its video properties.

    Args:
        source: Seekable binary stream
        offset: Byte offset of the region to walk
        limit: Region length; defaults to the rest of the source
        handler_aware: Skip tracks whose hdlr says they are not video

    Returns:
        ProbeResult with whichever of width/height and timescale/sample delta
        could be determined
    """
    return BoxWalker(source, handler_aware=handler_aware).walk(offset, limit)
