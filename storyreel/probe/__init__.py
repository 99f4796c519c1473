"""
storyreel.probe - Media property detection.

Reads MP4 container metadata (never pixel data) to recover the resolution
and frame rate applied to an exported timeline.
"""

from __future__ import annotations
