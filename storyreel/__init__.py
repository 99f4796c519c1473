"""
storyreel - Timeline export for AI-generated video takes.

Packages the accepted takes of a project into a single archive holding an
FCPXML timeline plus every clip: media probing → timeline document →
archive assembly.
"""

__version__ = "0.1.0"
