"""
storyreel.probe.framerate - Frame rate to FCPXML frame duration.

Snaps a measured rate onto the standard editing rates so the timeline uses
the rational frame durations NLEs expect.
"""

from __future__ import annotations

FPS_TOLERANCE = 0.01

STANDARD_RATES: list[tuple[float, str]] = [
    (23.976, "1001/24000s"),
    (24.0, "100/2400s"),
    (25.0, "100/2500s"),
    (29.97, "1001/30000s"),
    (30.0, "100/3000s"),
    (50.0, "100/5000s"),
    (59.94, "1001/60000s"),
    (60.0, "100/6000s"),
]

FORMAT_NAME_SUFFIXES: dict[str, str] = {
    "1001/24000s": "2398",
    "100/2400s": "24",
    "100/2500s": "25",
    "1001/30000s": "2997",
    "100/3000s": "30",
    "100/5000s": "50",
    "1001/60000s": "5994",
    "100/6000s": "60",
}


def resolve_frame_duration(timescale: int, sample_delta: int) -> str:
    """Convert a track timescale and sample delta to a frame duration.

    Args:
        timescale: Time units per second of the media track
        sample_delta: Duration of one sample in timescale units

    Returns:
        Rational time string like "1001/24000s"; the exact unreduced
        fraction "{sample_delta}/{timescale}s" when no standard rate is
        within tolerance
    """
    if timescale > 0 and sample_delta > 0:
        fps = timescale / sample_delta
        for rate, frame_duration in STANDARD_RATES:
            if abs(fps - rate) < FPS_TOLERANCE:
                return frame_duration

    return f"{sample_delta}/{timescale}s"


def format_name(height: int, frame_duration: str) -> str:
    """Get the FCPXML format name, e.g. FFVideoFormat1080p2997.

    Non-standard frame durations get the rate-less name FFVideoFormat{height}p.
    """
    suffix = FORMAT_NAME_SUFFIXES.get(frame_duration, "")
    return f"FFVideoFormat{height}p{suffix}"
