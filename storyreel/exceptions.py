"""
storyreel.exceptions - Custom exception classes.

All storyreel-specific exceptions inherit from StoryreelError.
"""


class StoryreelError(Exception):
    """Base exception for all storyreel errors."""

    pass


class ConfigError(StoryreelError):
    """Configuration loading or validation error."""

    pass


class ManifestError(StoryreelError):
    """Export manifest is missing fields or malformed."""

    pass


class NoExportableContentError(StoryreelError):
    """Export was requested with no clips."""

    pass


class ProbeError(StoryreelError):
    """Clip could not be fetched or inspected for its media format."""

    pass


class BoxParseError(ProbeError):
    """Malformed or truncated container metadata."""

    pass


class DocumentBuildError(StoryreelError):
    """Timeline document could not be serialized."""

    pass


class ClipFetchError(StoryreelError):
    """Clip source is unreachable or answered with a non-success status."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.source = source
        self.message = message
        self.status_code = status_code
        super().__init__(f"{source}: {message}")
