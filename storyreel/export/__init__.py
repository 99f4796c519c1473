"""
storyreel.export - Timeline export.

Generates the FCPXML timeline document and packages it with the clip media
into a single ZIP archive.
"""

from __future__ import annotations
