"""
smotree.export - Marker export for DaVinci Resolve.

Renders a project's comments as:
- xmeml (FCP 7 XML) - markers with colors and round-trip metadata
- EDL - legacy text format, one event per comment
- CSV - semicolon-separated dump for spreadsheets
"""

from __future__ import annotations

from collections.abc import Sequence

from smotree.export.csvfile import render_csv
from smotree.export.edl import render_edl
from smotree.export.markers import EdlColumns, ExportOptions, escape_xml, export_filename
from smotree.export.xmeml import MarkerRecord, parse_edit_xml, render_edit_xml
from smotree.models import Comment, ExportFormat, Project

RENDERERS = {
    ExportFormat.XML: render_edit_xml,
    ExportFormat.EDL: render_edl,
    ExportFormat.CSV: render_csv,
}


def render(
    project: Project,
    fmt: ExportFormat | str,
    comments: Sequence[Comment] | None = None,
    options: ExportOptions | None = None,
) -> str:
    """Render comments in the given export format."""
    return RENDERERS[ExportFormat(fmt)](project, comments, options)


__all__ = [
    "EdlColumns",
    "ExportOptions",
    "MarkerRecord",
    "escape_xml",
    "export_filename",
    "parse_edit_xml",
    "render",
    "render_csv",
    "render_edit_xml",
    "render_edl",
]
