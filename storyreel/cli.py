"""
storyreel.cli - Typer CLI entry point.

Provides the export, probe and init-config subcommands.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from storyreel import __version__
from storyreel.config import (
    CONFIG_FILENAME,
    ExportConfig,
    create_default_config,
    find_config,
    load_config,
    write_config,
)
from storyreel.exceptions import (
    ClipFetchError,
    ConfigError,
    DocumentBuildError,
    ManifestError,
    NoExportableContentError,
)
from storyreel.logging import configure_logging
from storyreel.utils import archive_filename, format_size

app = typer.Typer(
    name="storyreel",
    help="Export accepted video takes as an editable timeline.\n\n"
    "Packages an FCPXML timeline together with every clip into a single ZIP "
    "for DaVinci Resolve or Final Cut Pro.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"storyreel {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """storyreel - timeline export for AI-generated video takes."""
    configure_logging(verbose)


def resolve_config(config_path: str | None) -> ExportConfig:
    """Load the config given on the command line, or the nearest storyreel.yaml."""
    if config_path:
        return load_config(Path(config_path))
    found = find_config(Path.cwd())
    if found:
        return load_config(found)
    return ExportConfig()


def _config_or_exit(config_path: str | None) -> ExportConfig:
    try:
        return resolve_config(config_path)
    except (FileNotFoundError, ConfigError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command("export")
def export_project(
    manifest: str = typer.Argument(..., help="JSON manifest listing the clips to export"),
    output: str | None = typer.Option(None, "--output", "-o", help="Output ZIP path"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help=f"Path to {CONFIG_FILENAME}"
    ),
) -> None:
    """Export a project's clips and FCPXML timeline as a ZIP archive.

    The first clip is probed for resolution and frame rate; all clips are
    placed back to back on the timeline in manifest order.
    """
    from storyreel.export.archive import export_to_path
    from storyreel.manifest import load_manifest

    config = _config_or_exit(config_path)

    try:
        project_name, items = load_manifest(Path(manifest), config.timeline_filename)
    except (FileNotFoundError, ManifestError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    output_path = Path(output) if output else Path.cwd() / archive_filename(project_name)

    console.print(f"[cyan]Exporting {len(items)} clip(s) from '{project_name}'...[/cyan]")

    try:
        summary = export_to_path(output_path, project_name, items, config)
    except NoExportableContentError:
        console.print("[red]Error: No clips to export[/red]")
        console.print("[dim]Add at least one accepted take to the manifest.[/dim]")
        raise typer.Exit(1)
    except ClipFetchError as e:
        console.print(f"[red]Error fetching clip: {e}[/red]")
        raise typer.Exit(1)
    except DocumentBuildError as e:
        console.print(f"[red]Error building timeline: {e}[/red]")
        raise typer.Exit(1)

    fmt = summary.media_format
    console.print(f"[green]✓[/green] Exported to {output_path}")
    console.print(
        f"[dim]  {fmt.width}x{fmt.height} @ {fmt.frame_duration}, "
        f"{len(summary.entries) - 1} clip(s), {format_size(summary.bytes_written)}[/dim]"
    )


@app.command("probe")
def probe_clip(
    source: str = typer.Argument(..., help="Clip URL or local path"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help=f"Path to {CONFIG_FILENAME}"
    ),
) -> None:
    """Show the resolution and frame rate read from a clip's MP4 metadata."""
    from storyreel.probe.framerate import format_name
    from storyreel.probe.prober import probe_buffer
    from storyreel.sources import materialize

    config = _config_or_exit(config_path)

    try:
        with materialize(source, config) as buffer:
            fmt = probe_buffer(buffer, config)
    except ClipFetchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Media Format")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Resolution", f"{fmt.width}x{fmt.height}")
    table.add_row("Frame duration", fmt.frame_duration)
    table.add_row("Frame rate", f"{fmt.fps:.3f} fps")
    table.add_row("Format", format_name(fmt.height, fmt.frame_duration))
    console.print(table)


@app.command("init-config")
def init_config(
    path: str = typer.Argument(".", help="Directory to write storyreel.yaml into"),
) -> None:
    """Write a storyreel.yaml with the default settings."""
    config_file = Path(path) / CONFIG_FILENAME
    if config_file.exists():
        console.print(f"[red]Error: '{config_file}' already exists[/red]")
        raise typer.Exit(1)

    write_config(create_default_config(), config_file)
    console.print(f"[green]✓[/green] Created {config_file}")


if __name__ == "__main__":
    app()
