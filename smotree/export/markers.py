"""
smotree.export.markers - Shared marker export rules.

Status-to-color mapping, comment ordering and filtering, XML escaping,
and the export filename convention used by every output format.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator

from smotree.models import (
    DEFAULT_COLOR_SCHEME,
    Comment,
    CommentStatus,
    ExportFormat,
    MarkerColor,
    Project,
)

# Code points XML 1.0 does not allow in character data, even escaped.
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def parse_color_scheme(scheme: Any) -> Any:
    """Key a status-to-color mapping by CommentStatus, filling in the defaults.

    Keys may use any spelling CommentStatus.parse accepts (``open: blue``).
    Anything but a mapping is returned unchanged for pydantic to reject.
    """
    if not isinstance(scheme, dict):
        return scheme
    parsed = {CommentStatus.parse(status): color for status, color in scheme.items()}
    return {**DEFAULT_COLOR_SCHEME, **parsed}


class EdlColumns(BaseModel):
    """Column layout of an EDL event line.

    Widths include the padding after each value, so the defaults produce
    ``001  AX       V     C        <tc> <tc> <tc> <tc>``.
    """

    reel: str = "AX"
    reel_width: int = Field(default=9, ge=1)
    track: str = "V"
    track_width: int = Field(default=6, ge=1)
    transition: str = "C"
    transition_width: int = Field(default=9, ge=1)
    comment_limit: int = Field(default=255, gt=0)


class ExportOptions(BaseModel):
    """Options shared by the xmeml, EDL and CSV renderers."""

    include_resolved: bool = True
    include_metadata: bool = True
    marker_prefix: str = "SmoTree"
    color_scheme: dict[CommentStatus, MarkerColor] = Field(
        default_factory=lambda: dict(DEFAULT_COLOR_SCHEME)
    )
    edl: EdlColumns = Field(default_factory=EdlColumns)

    @field_validator("color_scheme", mode="before")
    @classmethod
    def fill_color_scheme(cls, v: Any) -> Any:
        return parse_color_scheme(v)


def escape_xml(text: str) -> str:
    """Escape the five XML metacharacters.

    ``&`` is replaced first so entities produced by the later replacements
    are not escaped twice.
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def xml_text(value: str) -> str:
    """Escape text for an XML element, dropping characters XML cannot carry."""
    return escape_xml(_INVALID_XML_CHARS.sub("", value))


def status_color(status: CommentStatus, options: ExportOptions | None = None) -> MarkerColor:
    scheme = options.color_scheme if options else DEFAULT_COLOR_SCHEME
    return scheme[CommentStatus.parse(status)]


def color_status(color: str, options: ExportOptions | None = None) -> CommentStatus | None:
    """Reverse lookup of status_color; None for a color no status maps to."""
    scheme = options.color_scheme if options else DEFAULT_COLOR_SCHEME
    for status, mapped in scheme.items():
        if mapped.value == color.strip().lower():
            return status
    return None


def prepare_comments(
    comments: Sequence[Comment],
    options: ExportOptions | None = None,
) -> list[Comment]:
    """Filter comments for export and order them by frame number.

    The sort is stable: comments on the same frame keep their original
    order.
    """
    include_resolved = options.include_resolved if options else True
    kept = [c for c in comments if include_resolved or c.status is not CommentStatus.RESOLVED]
    return sorted(kept, key=lambda c: c.frame_number)


def format_rate(framerate: float) -> str:
    """Render a framerate as a literal: 25 -> "25", 29.97 -> "29.97"."""
    if float(framerate).is_integer():
        return str(int(framerate))
    return repr(float(framerate))


def sanitize_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_]", "_", name)


def export_filename(
    project: Project,
    fmt: ExportFormat | str,
    on: date | None = None,
) -> str:
    """Build the download filename for an export.

    Args:
        project: Exported project
        fmt: Export format
        on: Date for the stamp (default: today)

    Returns:
        ``<SanitizedProjectName>_<YYYY-MM-DD>.<ext>``
    """
    fmt = ExportFormat(fmt)
    stamp = (on or date.today()).isoformat()
    return f"{sanitize_name(project.name)}_{stamp}.{fmt.extension}"
