"""
storyreel.models - Export data types.

ExportItem and MediaFormat cross module boundaries and are validated pydantic
models; BoxHeader and ProbeResult are transient parse-time records.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storyreel.config import ExportConfig
from storyreel.sources import is_remote


class ExportItem(BaseModel):
    """One accepted clip queued for export.

    Attributes:
        name: Archive entry name, already sanitized by the caller
        source: http(s) URL, file:// URL, or local filesystem path
        duration_seconds: Clip duration in whole seconds
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    source: str = Field(min_length=1)
    duration_seconds: int = Field(gt=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if "/" in v or "\\" in v:
            raise ValueError("name must not contain path separators")
        return v

    @property
    def stem(self) -> str:
        """Name without the .mp4 suffix, used as the timeline clip name."""
        return self.name[:-4] if self.name.endswith(".mp4") else self.name

    @property
    def is_remote(self) -> bool:
        return is_remote(self.source)


class MediaFormat(BaseModel):
    """Resolution and frame duration applied to a whole timeline."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    frame_duration: str = Field(pattern=r"^\d+/\d+s$")

    @property
    def fps(self) -> float:
        numerator, denominator = self.frame_duration[:-1].split("/")
        return int(denominator) / int(numerator)

    @classmethod
    def default(cls, config: ExportConfig | None = None) -> MediaFormat:
        """Fallback format used when a clip cannot be probed."""
        config = config or ExportConfig()
        return cls(
            width=config.fallback_width,
            height=config.fallback_height,
            frame_duration=config.fallback_frame_duration,
        )


@dataclass(frozen=True)
class BoxHeader:
    """Header of one ISO base media box after size normalization."""

    type: str
    offset: int
    size: int
    header_size: int

    @property
    def payload_offset(self) -> int:
        return self.offset + self.header_size

    @property
    def payload_size(self) -> int:
        return self.size - self.header_size

    @property
    def end(self) -> int:
        return self.offset + self.size


@dataclass
class ProbeResult:
    """Partial media properties gathered while walking a container."""

    width: int | None = None
    height: int | None = None
    timescale: int | None = None
    sample_delta: int | None = None

    @property
    def has_dimensions(self) -> bool:
        return bool(self.width) and bool(self.height)

    @property
    def has_rate(self) -> bool:
        return bool(self.timescale) and bool(self.sample_delta)

    @property
    def complete(self) -> bool:
        return self.has_dimensions and self.has_rate

    def merge(self, other: ProbeResult) -> None:
        """Fill unset fields from another result; values already set win."""
        if not self.has_dimensions and other.has_dimensions:
            self.width = other.width
            self.height = other.height
        if not self.has_rate and other.has_rate:
            self.timescale = other.timescale
            self.sample_delta = other.sample_delta
