"""
smotree.export.edl - CMX-style EDL marker export.

Writes one zero-duration event per comment for NLEs that only read EDLs.
Timecode is always declared non-drop-frame, even for 29.97 and 59.94.
"""

from __future__ import annotations

from collections.abc import Sequence

from smotree.export.markers import EdlColumns, ExportOptions, prepare_comments, status_color
from smotree.models import Comment, Project


def _column(value: str, width: int) -> str:
    if len(value) < width:
        return value.ljust(width)
    return value + " "


def event_line(number: int, timecode: str, columns: EdlColumns) -> str:
    """Format an event line with source and record in/out all at ``timecode``."""
    return (
        f"{number:03d}  "
        f"{_column(flatten(columns.reel), columns.reel_width)}"
        f"{_column(flatten(columns.track), columns.track_width)}"
        f"{_column(flatten(columns.transition), columns.transition_width)}"
        f"{timecode} {timecode} {timecode} {timecode}"
    )


def flatten(text: str) -> str:
    """Join the lines of text with spaces; an EDL field must stay on one line."""
    return " ".join(text.splitlines())


def truncate_comment(text: str, limit: int = 255) -> str:
    """Flatten line breaks and cut the text to the EDL comment limit."""
    return flatten(text)[:limit]


def render_edl(
    project: Project,
    comments: Sequence[Comment] | None = None,
    options: ExportOptions | None = None,
) -> str:
    """Generate an EDL with one marker event per comment.

    Args:
        project: Project supplying the title and clip name
        comments: Comments to export (default: all of the project's)
        options: Export options (prefix, colors, column layout)

    Returns:
        EDL content as string
    """
    options = options or ExportOptions()
    columns = options.edl

    lines = [
        f"TITLE: {flatten(options.marker_prefix)} Export - {flatten(project.name)}",
        "FCM: NON-DROP FRAME",
        "",
    ]

    events = prepare_comments(project.comments if comments is None else comments, options)
    clip_name = flatten(project.clip_name)
    for i, comment in enumerate(events, 1):
        timecode = comment.timecode
        color = status_color(comment.status, options).value.upper()

        lines.append(event_line(i, timecode, columns))
        lines.append(f"* FROM CLIP NAME: {clip_name}")
        text = truncate_comment(comment.text, columns.comment_limit)
        lines.append(f"* COMMENT: {flatten(comment.author)} - {text}")
        lines.append(f"* MARKER: {timecode} {color}")
        lines.append("")

    return "\n".join(lines)
