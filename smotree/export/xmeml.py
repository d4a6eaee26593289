"""
smotree.export.xmeml - xmeml (Final Cut Pro 7 XML) marker export.

Generates an xmeml v5 sequence with one clip spanning the whole video and
one marker per comment, for import into DaVinci Resolve. Tag names and
nesting are what Resolve's importer expects and must not change.

Also reads markers back out of such a document so a project can pick up
changes made after a round trip through the NLE.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Sequence

from pydantic import BaseModel

from smotree.exceptions import ExportError
from smotree.export.markers import (
    ExportOptions,
    color_status,
    format_rate,
    prepare_comments,
    status_color,
    xml_text,
)
from smotree.models import Comment, CommentStatus, Project

METADATA_TAGS = {
    "comment_id": "smoTreeCommentId",
    "author": "smoTreeAuthor",
    "created_at": "smoTreeTimestamp",
    "status": "smoTreeStatus",
    "parent_id": "smoTreeParentId",
}


def _element(tag: str, value: object, indent: str) -> str:
    return f"{indent}<{tag}>{xml_text(str(value))}</{tag}>"


def _rate_lines(timebase: str, indent: str) -> list[str]:
    return [
        f"{indent}<rate>",
        f"{indent}  <timebase>{timebase}</timebase>",
        f"{indent}  <ntsc>FALSE</ntsc>",
        f"{indent}</rate>",
    ]


def _marker_lines(comment: Comment, options: ExportOptions, indent: str) -> list[str]:
    inner = indent + "  "
    lines = [
        f"{indent}<marker>",
        _element("comment", comment.text, inner),
        _element("in", comment.frame_number, inner),
        _element("out", comment.frame_number + 1, inner),
        _element("name", f"{options.marker_prefix} - {comment.author}", inner),
        _element("color", status_color(comment.status, options).value, inner),
    ]

    if options.include_metadata:
        meta = inner + "  "
        lines.append(f"{inner}<metadata>")
        lines.append(_element(METADATA_TAGS["comment_id"], comment.id, meta))
        lines.append(_element(METADATA_TAGS["author"], comment.author, meta))
        lines.append(_element(METADATA_TAGS["created_at"], comment.created_at, meta))
        lines.append(_element(METADATA_TAGS["status"], comment.status.value, meta))
        if comment.parent_id:
            lines.append(_element(METADATA_TAGS["parent_id"], comment.parent_id, meta))
        lines.append(f"{inner}</metadata>")

    lines.append(f"{indent}</marker>")
    return lines


def render_edit_xml(
    project: Project,
    comments: Sequence[Comment] | None = None,
    options: ExportOptions | None = None,
) -> str:
    """Generate an xmeml document with one marker per comment.

    Each marker is one frame wide (``out = in + 1``). Resolved comments are
    left out when ``options.include_resolved`` is False.

    Args:
        project: Project supplying name, framerate and duration
        comments: Comments to export (default: all of the project's)
        options: Export options

    Returns:
        xmeml content as string
    """
    options = options or ExportOptions()
    markers = prepare_comments(project.comments if comments is None else comments, options)

    timebase = format_rate(project.framerate)
    end_frame = project.end_frame

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<xmeml version="5">',
        '  <sequence id="sequence-1">',
        _element("name", f"{options.marker_prefix}_Export_{project.name}", "    "),
        *_rate_lines(timebase, "    "),
        "    <timecode>",
        *_rate_lines(timebase, "      "),
        "      <string>00:00:00:00</string>",
        "    </timecode>",
        "    <media>",
        "      <video>",
        "        <track>",
        '          <clipitem id="clipitem-1">',
        _element("name", project.clip_name, "            "),
        "            <start>0</start>",
        f"            <end>{end_frame}</end>",
        "            <in>0</in>",
        f"            <out>{end_frame}</out>",
    ]

    for comment in markers:
        lines.extend(_marker_lines(comment, options, "            "))

    lines.extend(
        [
            "          </clipitem>",
            "        </track>",
            "      </video>",
            "    </media>",
            "  </sequence>",
            "</xmeml>",
        ]
    )

    return "\n".join(lines) + "\n"


class MarkerRecord(BaseModel):
    """A marker read back from an xmeml document."""

    comment_id: str | None = None
    parent_id: str | None = None
    author: str
    text: str
    frame_number: int
    status: CommentStatus
    created_at: str | None = None


def _meta_text(meta: ET.Element | None, key: str) -> str | None:
    if meta is None:
        return None
    value = (meta.findtext(METADATA_TAGS[key]) or "").strip()
    return value or None


def _author_from_name(name: str | None) -> str:
    name = name or ""
    if " - " in name:
        return name.split(" - ", 1)[1].strip()
    return name.strip()


def parse_edit_xml(content: str, options: ExportOptions | None = None) -> list[MarkerRecord]:
    """Read markers from an xmeml document.

    Metadata written by render_edit_xml wins when present. Markers added in
    the NLE have none, so author comes from the marker name and status from
    its color.

    Raises:
        ExportError: If the document is not well-formed or a marker has no
            usable ``in`` frame
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ExportError(f"Invalid xmeml document: {e}") from e

    records = []
    for marker in root.iter("marker"):
        raw_in = (marker.findtext("in") or "").strip()
        try:
            frame_number = int(raw_in)
        except ValueError:
            raise ExportError(f"Marker has an invalid <in> frame: {raw_in!r}") from None
        if frame_number < 0:
            raise ExportError(f"Marker has a negative <in> frame: {frame_number}")

        meta = marker.find("metadata")

        status_value = _meta_text(meta, "status")
        if status_value:
            try:
                status = CommentStatus.parse(status_value)
            except ValueError as e:
                raise ExportError(str(e)) from e
        else:
            color = marker.findtext("color") or ""
            status = color_status(color, options) or CommentStatus.UNRESOLVED

        records.append(
            MarkerRecord(
                comment_id=_meta_text(meta, "comment_id"),
                parent_id=_meta_text(meta, "parent_id"),
                author=_meta_text(meta, "author") or _author_from_name(marker.findtext("name")),
                text=marker.findtext("comment") or "",
                frame_number=frame_number,
                status=status,
                created_at=_meta_text(meta, "created_at"),
            )
        )

    return records
