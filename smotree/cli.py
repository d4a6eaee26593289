"""
smotree.cli - Typer CLI entry point.

Provides the review workflow on the command line: create projects, leave
comments at a position, resolve them, and export markers for Resolve.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from smotree import __version__
from smotree.config import CONFIG_FILENAME, create_default_config, load_config, write_config
from smotree.exceptions import SmoTreeError
from smotree.io import read_text, write_text
from smotree.logging import configure_logging
from smotree.models import Comment, CommentStatus, ExportFormat, Project
from smotree.review import ReviewService
from smotree.store import JsonProjectStore
from smotree.timecode import (
    format_duration,
    frame_to_timecode,
    parse_position,
    seconds_to_frame,
    timecode_to_frame,
)

app = typer.Typer(
    name="smotree",
    help="Frame-accurate video review.\n\n"
    "Attach timestamped comments to a video and export them as "
    "DaVinci Resolve markers (xmeml, EDL or CSV).",
    add_completion=False,
)
console = Console()

STATUS_STYLES = {
    CommentStatus.UNRESOLVED: "red",
    CommentStatus.IN_PROGRESS: "yellow",
    CommentStatus.RESOLVED: "green",
}


def find_workspace_dir() -> Path | None:
    """Find the workspace directory by looking for smotree.yaml."""
    current = Path.cwd()
    while True:
        if (current / CONFIG_FILENAME).exists():
            return current
        if current == current.parent:
            return None
        current = current.parent


def open_service() -> tuple[Path, ReviewService]:
    workspace = find_workspace_dir()
    if not workspace:
        console.print("[red]Error: Not in a SmoTree workspace[/red]")
        console.print("[dim]Run 'smotree init' first or cd into a workspace directory[/dim]")
        raise typer.Exit(1)

    try:
        config = load_config(workspace)
    except SmoTreeError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    store = JsonProjectStore(workspace / config.store_dir)
    return workspace, ReviewService(store, config)


def fail(e: Exception) -> typer.Exit:
    console.print(f"[red]Error: {escape(str(e))}[/red]")
    return typer.Exit(1)


def status_label(status: CommentStatus) -> str:
    return f"[{STATUS_STYLES[status]}]{status.value}[/{STATUS_STYLES[status]}]"


def version_callback(value: bool) -> None:
    if value:
        console.print(f"smotree {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """SmoTree - frame-accurate video review."""
    configure_logging(verbose)


# Workspace and projects


@app.command("init")
def init_workspace(
    path: str = typer.Argument(".", help="Directory to create the workspace in"),
    author: str | None = typer.Option(None, "--author", "-a", help="Default comment author"),
    fps: float | None = typer.Option(None, "--fps", help="Default framerate for new projects"),
) -> None:
    """Create a SmoTree workspace (smotree.yaml plus a project store)."""
    workspace = Path(path)
    config_path = workspace / CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[red]Error: '{escape(str(config_path))}' already exists[/red]")
        raise typer.Exit(1)

    config = create_default_config(author=author, framerate=fps)
    write_config(config, config_path)
    (workspace / config["store_dir"]).mkdir(parents=True, exist_ok=True)

    console.print(f"[green]✓[/green] Created workspace in {escape(str(workspace.resolve()))}")
    console.print("\nNext step: [cyan]smotree new <name> --fps 25 --duration <seconds>[/cyan]")


@app.command("new")
def new_project(
    name: str = typer.Argument(..., help="Project name"),
    fps: float | None = typer.Option(None, "--fps", help="Video framerate"),
    duration: float = typer.Option(0.0, "--duration", "-d", help="Video length in seconds"),
    video: str | None = typer.Option(None, "--video", help="Video filename"),
    url: str | None = typer.Option(None, "--url", help="Video URL"),
    description: str = typer.Option("", "--description", help="Project description"),
) -> None:
    """Create a project for one video."""
    _, service = open_service()

    try:
        project = service.create_project(
            name=name,
            framerate=fps,
            duration=duration,
            video_filename=video,
            video_url=url,
            description=description,
        )
    except (SmoTreeError, ValueError) as e:
        raise fail(e)

    console.print(
        f"[green]✓[/green] Created project {project.id} '{escape(project.name)}' "
        f"at {project.framerate:g} fps"
    )
    if fps is not None and project.framerate != fps:
        console.print(f"[dim]  Framerate {fps:g} snapped to {project.framerate:g}[/dim]")


@app.command("list")
def list_projects() -> None:
    """List projects in the workspace."""
    _, service = open_service()

    try:
        projects = service.store.list_projects()
    except SmoTreeError as e:
        raise fail(e)

    if not projects:
        console.print("[yellow]No projects yet. Run 'smotree new' first.[/yellow]")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("FPS", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Open", justify="right", style="red")
    table.add_column("Comments", justify="right")

    for project in projects:
        open_count = sum(1 for c in project.comments if c.status is not CommentStatus.RESOLVED)
        table.add_row(
            project.id,
            escape(project.name),
            f"{project.framerate:g}",
            format_duration(project.duration),
            str(open_count),
            str(len(project.comments)),
        )

    console.print(table)


def _comment_rows(project: Project) -> list[tuple[int, Comment]]:
    """Comments in timeline order, each reply directly under its thread."""
    by_parent: dict[str | None, list[Comment]] = {}
    for comment in sorted(project.comments, key=lambda c: c.frame_number):
        by_parent.setdefault(comment.parent_id, []).append(comment)

    rows: list[tuple[int, Comment]] = []

    def walk(parent_id: str | None, depth: int) -> None:
        for comment in by_parent.get(parent_id, []):
            rows.append((depth, comment))
            walk(comment.id, depth + 1)

    walk(None, 0)
    return rows


@app.command("show")
def show_project(
    project_id: str = typer.Argument(..., help="Project ID"),
) -> None:
    """Show a project's comments on the timeline."""
    _, service = open_service()

    try:
        project = service.store.get_project(project_id)
    except SmoTreeError as e:
        raise fail(e)

    console.print(f"[bold]{escape(project.name)}[/bold] ({project.id})")
    console.print(
        f"[dim]  {project.framerate:g} fps, {format_duration(project.duration)}, "
        f"{project.end_frame} frames[/dim]"
    )
    if project.video_filename or project.video_url:
        console.print(f"[dim]  {escape(project.video_filename or project.video_url or '')}[/dim]")

    if not project.comments:
        console.print("\n[yellow]No comments yet.[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="cyan")
    table.add_column("Timecode")
    table.add_column("Author")
    table.add_column("Status")
    table.add_column("Comment")

    for depth, comment in _comment_rows(project):
        table.add_row(
            comment.id,
            comment.timecode,
            escape(comment.author),
            status_label(comment.status),
            "  " * depth + ("↳ " if depth else "") + escape(comment.text),
        )

    console.print(table)


@app.command("comment")
def add_comment(
    project_id: str = typer.Argument(..., help="Project ID"),
    position: str = typer.Argument(..., help="Position in seconds or HH:MM:SS:FF"),
    text: str = typer.Argument(..., help="Comment text"),
    author: str | None = typer.Option(None, "--author", "-a", help="Comment author"),
    status: str = typer.Option("unresolved", "--status", "-s", help="Initial status"),
) -> None:
    """Add a comment at a position in the video."""
    _, service = open_service()

    try:
        project = service.store.get_project(project_id)
        seconds = parse_position(position, project.framerate)
        comment = service.add_comment(
            project_id, text=text, seconds=seconds, author=author, status=status
        )
    except (SmoTreeError, ValueError) as e:
        raise fail(e)

    console.print(
        f"[green]✓[/green] Added {comment.id} at {comment.timecode} "
        f"(frame {comment.frame_number})"
    )


@app.command("reply")
def reply_to_comment(
    project_id: str = typer.Argument(..., help="Project ID"),
    comment_id: str = typer.Argument(..., help="Comment to reply to"),
    text: str = typer.Argument(..., help="Reply text"),
    author: str | None = typer.Option(None, "--author", "-a", help="Reply author"),
) -> None:
    """Reply to a comment thread."""
    _, service = open_service()

    try:
        comment = service.reply(project_id, comment_id, text=text, author=author)
    except (SmoTreeError, ValueError) as e:
        raise fail(e)

    console.print(f"[green]✓[/green] Added reply {comment.id} to {comment_id}")


@app.command("status")
def set_status(
    project_id: str = typer.Argument(..., help="Project ID"),
    comment_id: str = typer.Argument(..., help="Comment ID"),
    status: str = typer.Argument(..., help="unresolved, in_progress or resolved"),
) -> None:
    """Change a comment's review status."""
    _, service = open_service()

    try:
        comment = service.set_status(project_id, comment_id, status)
    except (SmoTreeError, ValueError) as e:
        raise fail(e)

    console.print(f"[green]✓[/green] {comment.id} is now {status_label(comment.status)}")


@app.command("delete")
def delete(
    project_id: str = typer.Argument(..., help="Project ID"),
    comment_id: str | None = typer.Argument(None, help="Comment ID (omit to delete the project)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
) -> None:
    """Delete a comment thread, or a whole project."""
    _, service = open_service()

    try:
        if comment_id:
            removed = service.delete_comment(project_id, comment_id)
            console.print(f"[green]✓[/green] Deleted {len(removed)} comment(s)")
            return

        project = service.store.get_project(project_id)
        if not yes and not typer.confirm(
            f"Delete project '{project.name}' and its {len(project.comments)} comment(s)?"
        ):
            raise typer.Exit(1)
        service.store.delete_project(project_id)
    except SmoTreeError as e:
        raise fail(e)

    console.print(f"[green]✓[/green] Deleted project {project_id}")


# Export


@app.command("export")
def export_markers(
    project_id: str = typer.Argument(..., help="Project ID"),
    format: str = typer.Option("xml", "--format", "-f", help="Export format (xml, edl, csv)"),
    exclude_resolved: bool = typer.Option(
        False, "--exclude-resolved", help="Leave resolved comments out"
    ),
    output: str | None = typer.Option(None, "--output", "-o", help="Output directory"),
    stdout: bool = typer.Option(False, "--stdout", help="Print to stdout instead of a file"),
) -> None:
    """Export comments as markers for DaVinci Resolve.

    xmeml is the richest format (colors and round-trip metadata); EDL and
    CSV are provided for tools that read nothing else.
    """
    workspace, service = open_service()

    try:
        fmt = ExportFormat(format.lower())
    except ValueError:
        console.print(f"[red]Unknown format: {escape(format)}[/red]")
        console.print("[dim]Valid formats: xml, edl, csv[/dim]")
        raise typer.Exit(1)

    include_resolved = False if exclude_resolved else None

    try:
        if stdout:
            _, content = service.export(project_id, fmt, include_resolved=include_resolved)
            typer.echo(content, nl=False)
            return

        directory = Path(output) if output else workspace / service.config.export_dir
        output_path = service.export_to(
            project_id, fmt, directory, include_resolved=include_resolved
        )
    except SmoTreeError as e:
        raise fail(e)

    console.print(f"[green]✓[/green] Exported {fmt.value.upper()} to {escape(str(output_path))}")


@app.command("import-markers")
def import_markers(
    project_id: str = typer.Argument(..., help="Project ID"),
    xml_file: str = typer.Argument(..., help="xmeml file exported from Resolve"),
) -> None:
    """Merge markers from an xmeml round trip back into a project."""
    _, service = open_service()

    path = Path(xml_file).expanduser()
    if not path.exists():
        console.print(f"[red]Error: File not found: {escape(str(path))}[/red]")
        raise typer.Exit(1)

    try:
        counts = service.import_markers(project_id, read_text(path))
    except (SmoTreeError, ValueError) as e:
        raise fail(e)

    console.print(
        f"[green]✓[/green] Added {counts['added']}, updated {counts['updated']}, "
        f"unchanged {counts['unchanged']}, skipped {counts['skipped']}"
    )


@app.command("backup")
def backup(
    output: str = typer.Argument(..., help="JSON file to write"),
) -> None:
    """Write every project to a single JSON file."""
    _, service = open_service()

    try:
        data = service.store.export_data()
    except SmoTreeError as e:
        raise fail(e)

    write_text(Path(output), data + "\n")
    console.print(f"[green]✓[/green] Backed up {len(service.store.project_ids())} project(s)")


@app.command("restore")
def restore(
    backup_file: str = typer.Argument(..., help="JSON file written by 'smotree backup'"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
) -> None:
    """Replace all projects with the contents of a backup."""
    _, service = open_service()

    path = Path(backup_file).expanduser()
    if not path.exists():
        console.print(f"[red]Error: File not found: {escape(str(path))}[/red]")
        raise typer.Exit(1)

    if not yes and not typer.confirm("Replace all projects in this workspace?"):
        raise typer.Exit(1)

    try:
        projects = service.store.import_data(read_text(path))
    except SmoTreeError as e:
        raise fail(e)

    console.print(f"[green]✓[/green] Restored {len(projects)} project(s)")


# Utilities


@app.command("timecode")
def convert_timecode(
    value: str = typer.Argument(..., help="Seconds, or a timecode HH:MM:SS:FF"),
    fps: float = typer.Option(25.0, "--fps", help="Framerate"),
) -> None:
    """Convert between seconds, frame number and timecode."""
    try:
        if ":" in value:
            frame = timecode_to_frame(value, fps)
        else:
            frame = seconds_to_frame(parse_position(value, fps), fps)
        timecode = frame_to_timecode(frame, fps)
    except ValueError as e:
        raise fail(e)

    console.print(f"Timecode: [cyan]{timecode}[/cyan]")
    console.print(f"Frame:    {frame}")
    console.print(f"Seconds:  {frame / fps:.6g}")
