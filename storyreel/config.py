"""
storyreel.config - YAML config loading and validation.

Handles loading storyreel.yaml and validating export parameters: timeline
document constants, probe fallbacks, and transfer settings.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from storyreel.exceptions import ConfigError

CONFIG_FILENAME = "storyreel.yaml"

RATIONAL_TIME_PATTERN = re.compile(r"^\d+/\d+s$")


class ExportConfig(BaseModel):
    """Resolved configuration for an export run."""

    fcpxml_version: str = "1.9"
    event_name: str = "AI_Generated"
    timeline_filename: str = "project.fcpxml"

    fallback_width: int = Field(default=1280, gt=0)
    fallback_height: int = Field(default=720, gt=0)
    fallback_frame_duration: str = "100/2400s"
    handler_aware_probe: bool = True

    http_timeout: float = Field(default=60.0, gt=0.0)
    chunk_size: int = Field(default=64 * 1024, gt=0)
    spool_max_bytes: int = Field(default=16 * 1024 * 1024, ge=0)
    compress_media: bool = False

    @field_validator("fallback_frame_duration")
    @classmethod
    def validate_frame_duration(cls, v: str) -> str:
        if not RATIONAL_TIME_PATTERN.match(v):
            raise ValueError("fallback_frame_duration must look like 'N/Ds'")
        numerator, denominator = v[:-1].split("/")
        if int(numerator) == 0 or int(denominator) == 0:
            raise ValueError("fallback_frame_duration must be non-zero")
        return v

    @field_validator("timeline_filename")
    @classmethod
    def validate_timeline_filename(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v:
            raise ValueError("timeline_filename must be a bare file name")
        return v


def load_config(path: Path) -> ExportConfig:
    """Load and validate configuration from a YAML file.

    A directory is searched for storyreel.yaml.
    """
    config_file = path / CONFIG_FILENAME if path.is_dir() else path
    if not config_file.exists():
        raise FileNotFoundError(f"No {CONFIG_FILENAME} found at {path}")

    with open(config_file) as f:
        try:
            raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError(f"{config_file} must contain a mapping")

    try:
        return ExportConfig(**raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_file}: {e}") from e


def find_config(start: Path) -> Path | None:
    """Find storyreel.yaml in the given directory or any parent."""
    current = start.resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def create_default_config() -> dict[str, Any]:
    """Create a default config mapping."""
    return ExportConfig().model_dump()


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
