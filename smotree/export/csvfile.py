"""
smotree.export.csvfile - Semicolon-separated comment dump.

Semicolons rather than commas so spreadsheets in decimal-comma locales open
the file without an import dialog.
"""

from __future__ import annotations

from collections.abc import Sequence

from smotree.export.markers import ExportOptions, prepare_comments
from smotree.models import Comment, Project

CSV_HEADER = ("CommentID", "ParentID", "Timecode", "Author", "Text", "Status", "CreatedAt")
DELIMITER = ";"


def quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _field(value: str) -> str:
    if any(ch in value for ch in (DELIMITER, '"', "\n", "\r")):
        return quote(value)
    return value


def render_csv(
    project: Project,
    comments: Sequence[Comment] | None = None,
    options: ExportOptions | None = None,
) -> str:
    """Generate the CSV export.

    The Text column is always quoted; other columns only when they contain
    the delimiter, a quote or a line break. Every row ends with a newline.
    """
    rows = [DELIMITER.join(CSV_HEADER)]

    for comment in prepare_comments(project.comments if comments is None else comments, options):
        row = [
            _field(comment.id),
            _field(comment.parent_id or ""),
            _field(comment.timecode),
            _field(comment.author),
            quote(comment.text),
            comment.status.value,
            _field(comment.created_at),
        ]
        rows.append(DELIMITER.join(row))

    return "".join(f"{row}\n" for row in rows)
