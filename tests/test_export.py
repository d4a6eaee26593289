"""Tests for smotree.export modules."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import date

import pytest

from smotree.exceptions import ExportError
from smotree.export import (
    EdlColumns,
    ExportOptions,
    escape_xml,
    export_filename,
    parse_edit_xml,
    render,
    render_csv,
    render_edit_xml,
    render_edl,
)
from smotree.export.edl import event_line, truncate_comment
from smotree.export.markers import color_status, format_rate, prepare_comments, status_color
from smotree.models import CommentStatus, MarkerColor, Project


def _markers(xml: str) -> list[ET.Element]:
    return list(ET.fromstring(xml).iter("marker"))


class TestEscapeXml:
    def test_all_metacharacters(self) -> None:
        assert escape_xml('<hello & "world">') == "&lt;hello &amp; &quot;world&quot;&gt;"
        assert escape_xml("it's") == "it&apos;s"

    def test_ampersand_not_double_escaped(self) -> None:
        assert escape_xml("&lt;") == "&amp;lt;"

    def test_plain_text_unchanged(self) -> None:
        assert escape_xml("Nothing to see") == "Nothing to see"


class TestMarkerRules:
    def test_status_colors(self) -> None:
        assert status_color(CommentStatus.UNRESOLVED) is MarkerColor.RED
        assert status_color(CommentStatus.IN_PROGRESS) is MarkerColor.YELLOW
        assert status_color(CommentStatus.RESOLVED) is MarkerColor.GREEN

    def test_custom_color_scheme(self) -> None:
        options = ExportOptions(color_scheme={"resolved": "blue"})
        assert status_color(CommentStatus.RESOLVED, options) is MarkerColor.BLUE
        assert status_color(CommentStatus.UNRESOLVED, options) is MarkerColor.RED

    def test_color_scheme_accepts_status_aliases(self) -> None:
        options = ExportOptions(color_scheme={"open": "blue", "closed": "cyan"})
        assert status_color(CommentStatus.UNRESOLVED, options) is MarkerColor.BLUE
        assert status_color(CommentStatus.RESOLVED, options) is MarkerColor.CYAN
        assert status_color(CommentStatus.IN_PROGRESS, options) is MarkerColor.YELLOW

    def test_color_scheme_unknown_status(self) -> None:
        with pytest.raises(ValueError):
            ExportOptions(color_scheme={"wontfix": "blue"})

    def test_color_status_reverse_lookup(self) -> None:
        assert color_status("Green") is CommentStatus.RESOLVED
        assert color_status("purple") is None

    def test_prepare_sorts_stably(self, make_comment) -> None:
        first = make_comment(10, text="first")
        second = make_comment(3)
        third = make_comment(10, text="second")
        ordered = prepare_comments([first, second, third])
        assert [c.id for c in ordered] == [second.id, first.id, third.id]

    def test_prepare_excludes_resolved(self, sample_project: Project) -> None:
        ordered = prepare_comments(sample_project.comments, ExportOptions(include_resolved=False))
        assert [c.frame_number for c in ordered] == [5, 20]

    def test_format_rate(self) -> None:
        assert format_rate(25.0) == "25"
        assert format_rate(29.97) == "29.97"
        assert format_rate(23.976) == "23.976"


class TestExportFilename:
    def test_sanitizes_name(self) -> None:
        project = Project(id="p", name="My Project: v2!", framerate=25)
        assert export_filename(project, "xml", date(2024, 3, 5)) == "My_Project__v2__2024-03-05.xml"

    def test_extension_per_format(self, sample_project: Project) -> None:
        on = date(2026, 2, 15)
        assert export_filename(sample_project, "edl", on) == "Demo_2026-02-15.edl"
        assert export_filename(sample_project, "csv", on) == "Demo_2026-02-15.csv"

    def test_unknown_format(self, sample_project: Project) -> None:
        with pytest.raises(ValueError):
            export_filename(sample_project, "aaf")


class TestRenderEditXml:
    def test_well_formed(self, sample_project: Project) -> None:
        xml = render_edit_xml(sample_project)
        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<xmeml version="5">')
        root = ET.fromstring(xml)
        assert root.tag == "xmeml"
        assert root.get("version") == "5"

    def test_sequence_and_clip(self, sample_project: Project) -> None:
        root = ET.fromstring(render_edit_xml(sample_project))
        sequence = root.find("sequence")
        assert sequence.get("id") == "sequence-1"
        assert sequence.findtext("name") == "SmoTree_Export_Demo"
        assert sequence.findtext("rate/timebase") == "25"
        assert sequence.findtext("rate/ntsc") == "FALSE"
        assert sequence.findtext("timecode/string") == "00:00:00:00"

        clip = sequence.find("media/video/track/clipitem")
        assert clip.get("id") == "clipitem-1"
        assert clip.findtext("name") == "demo.mov"
        assert clip.findtext("start") == "0"
        assert clip.findtext("end") == "3000"
        assert clip.findtext("in") == "0"
        assert clip.findtext("out") == "3000"

    def test_markers_sorted_and_colored(self, sample_project: Project) -> None:
        markers = _markers(render_edit_xml(sample_project))
        assert [m.findtext("in") for m in markers] == ["5", "10", "20"]
        assert [m.findtext("out") for m in markers] == ["6", "11", "21"]
        assert [m.findtext("color") for m in markers] == ["red", "green", "yellow"]
        assert markers[0].findtext("name") == "SmoTree - Ben"
        assert markers[0].findtext("comment") == "Audio pop"

    def test_fractional_timebase(self) -> None:
        project = Project(id="p", name="NTSC", framerate=29.97, duration=10)
        root = ET.fromstring(render_edit_xml(project))
        assert root.findtext("sequence/rate/timebase") == "29.97"
        assert root.findtext("sequence/media/video/track/clipitem/end") == "299"

    def test_clip_name_falls_back_to_project_name(self) -> None:
        project = Project(id="p", name="Rough cut", framerate=24)
        root = ET.fromstring(render_edit_xml(project))
        assert root.findtext("sequence/media/video/track/clipitem/name") == "Rough cut"

    def test_escapes_text(self, make_comment) -> None:
        project = Project(
            id="p",
            name="A & B",
            framerate=25,
            duration=10,
            comments=[make_comment(1, text='<hello & "world">')],
        )
        xml = render_edit_xml(project)
        assert "&lt;hello &amp; &quot;world&quot;&gt;" in xml
        assert _markers(xml)[0].findtext("comment") == '<hello & "world">'
        assert ET.fromstring(xml).findtext("sequence/name") == "SmoTree_Export_A & B"

    def test_metadata(self, sample_project: Project) -> None:
        marker = _markers(render_edit_xml(sample_project))[0]
        meta = marker.find("metadata")
        assert meta.findtext("smoTreeCommentId") == "comment_002"
        assert meta.findtext("smoTreeAuthor") == "Ben"
        assert meta.findtext("smoTreeTimestamp") == "2026-02-15T12:00:00"
        assert meta.findtext("smoTreeStatus") == "unresolved"
        assert meta.find("smoTreeParentId") is None

    def test_without_metadata(self, sample_project: Project) -> None:
        xml = render_edit_xml(sample_project, options=ExportOptions(include_metadata=False))
        assert "<metadata>" not in xml
        assert len(_markers(xml)) == 3

    def test_exclude_resolved(self, sample_project: Project) -> None:
        xml = render_edit_xml(sample_project, options=ExportOptions(include_resolved=False))
        assert [m.findtext("in") for m in _markers(xml)] == ["5", "20"]

    def test_custom_prefix(self, sample_project: Project) -> None:
        xml = render_edit_xml(sample_project, options=ExportOptions(marker_prefix="Review"))
        assert ET.fromstring(xml).findtext("sequence/name") == "Review_Export_Demo"
        assert _markers(xml)[0].findtext("name") == "Review - Ben"

    def test_no_comments(self) -> None:
        project = Project(id="p", name="Empty", framerate=25, duration=1)
        xml = render_edit_xml(project)
        assert _markers(xml) == []
        assert xml.endswith("</xmeml>\n")

    def test_control_characters_dropped(self, make_comment) -> None:
        project = Project(
            id="p",
            name="a&b\x0c",
            framerate=25,
            duration=10,
            comments=[
                make_comment(1, text="bell\x07 char", author="Ana\x1b"),
                make_comment(2, text="line one\nline\ttwo"),
            ],
        )
        xml = render_edit_xml(project)

        root = ET.fromstring(xml)
        assert root.findtext("sequence/name") == "SmoTree_Export_a&b"
        markers = _markers(xml)
        assert markers[0].findtext("comment") == "bell char"
        assert markers[0].findtext("name") == "SmoTree - Ana"
        assert markers[0].findtext("metadata/smoTreeAuthor") == "Ana"
        assert markers[1].findtext("comment") == "line one\nline\ttwo"
        assert [r.text for r in parse_edit_xml(xml)] == ["bell char", "line one\nline\ttwo"]

    def test_deterministic(self, sample_project: Project) -> None:
        assert render_edit_xml(sample_project) == render_edit_xml(sample_project)


class TestParseEditXml:
    def test_reads_back_rendered_markers(self, sample_project: Project) -> None:
        records = parse_edit_xml(render_edit_xml(sample_project))
        assert [r.comment_id for r in records] == ["comment_002", "comment_001", "comment_003"]
        assert [r.status for r in records] == [
            CommentStatus.UNRESOLVED,
            CommentStatus.RESOLVED,
            CommentStatus.IN_PROGRESS,
        ]
        assert records[0].author == "Ben"
        assert records[0].text == "Audio pop"
        assert records[0].frame_number == 5

    def test_marker_without_metadata(self) -> None:
        xml = (
            "<xmeml><sequence><marker>"
            "<comment>Added in Resolve</comment><in>42</in><out>43</out>"
            "<name>SmoTree - Cleo</name><color>Yellow</color>"
            "</marker></sequence></xmeml>"
        )
        [record] = parse_edit_xml(xml)
        assert record.comment_id is None
        assert record.author == "Cleo"
        assert record.status is CommentStatus.IN_PROGRESS
        assert record.frame_number == 42

    def test_unknown_color_is_unresolved(self) -> None:
        xml = "<xmeml><marker><comment>x</comment><in>1</in><color>purple</color></marker></xmeml>"
        assert parse_edit_xml(xml)[0].status is CommentStatus.UNRESOLVED

    def test_malformed_document(self) -> None:
        with pytest.raises(ExportError):
            parse_edit_xml("<xmeml><sequence>")

    def test_bad_in_frame(self) -> None:
        with pytest.raises(ExportError):
            parse_edit_xml("<xmeml><marker><in>soon</in></marker></xmeml>")
        with pytest.raises(ExportError):
            parse_edit_xml("<xmeml><marker><in>-4</in></marker></xmeml>")


class TestRenderEdl:
    def test_header(self, sample_project: Project) -> None:
        lines = render_edl(sample_project).split("\n")
        assert lines[0] == "TITLE: SmoTree Export - Demo"
        assert lines[1] == "FCM: NON-DROP FRAME"
        assert lines[2] == ""

    def test_event_block(self, sample_project: Project) -> None:
        lines = render_edl(sample_project).split("\n")
        assert lines[3] == (
            "001  AX       V     C        00:00:00:05 00:00:00:05 00:00:00:05 00:00:00:05"
        )
        assert lines[4] == "* FROM CLIP NAME: demo.mov"
        assert lines[5] == "* COMMENT: Ben - Audio pop"
        assert lines[6] == "* MARKER: 00:00:00:05 RED"
        assert lines[7] == ""

    def test_events_numbered_in_frame_order(self, sample_project: Project) -> None:
        edl = render_edl(sample_project)
        assert "002  AX" in edl
        assert "* MARKER: 00:00:00:10 GREEN" in edl
        assert "* MARKER: 00:00:00:20 YELLOW" in edl
        assert edl.index("00:00:00:10 GREEN") < edl.index("00:00:00:20 YELLOW")

    def test_no_comments(self) -> None:
        project = Project(id="p", name="Demo", framerate=25)
        assert render_edl(project) == "TITLE: SmoTree Export - Demo\nFCM: NON-DROP FRAME\n"

    def test_truncates_long_comment(self, make_comment) -> None:
        comment = make_comment(0, text="x" * 300)
        project = Project(id="p", name="Demo", framerate=25, comments=[comment])
        comment_line = next(
            line for line in render_edl(project).split("\n") if line.startswith("* COMMENT:")
        )
        assert comment_line == "* COMMENT: Ana - " + "x" * 255

    def test_truncate_flattens_line_breaks(self) -> None:
        assert truncate_comment("one\ntwo\r\nthree") == "one two three"
        assert truncate_comment("abcdef", limit=3) == "abc"

    def test_line_breaks_in_names_stay_on_one_line(self, make_comment) -> None:
        project = Project(
            id="p",
            name="Cut\nFCM: DROP FRAME",
            framerate=25,
            video_filename="a\r\nb.mov",
            comments=[make_comment(4, author="Ann\nBob", text="Fine")],
        )
        lines = render_edl(project).split("\n")

        assert len(lines) == 8
        assert lines[0] == "TITLE: SmoTree Export - Cut FCM: DROP FRAME"
        assert lines[1] == "FCM: NON-DROP FRAME"
        assert lines[4] == "* FROM CLIP NAME: a b.mov"
        assert lines[5] == "* COMMENT: Ann Bob - Fine"

    def test_custom_columns(self) -> None:
        columns = EdlColumns(reel="BL", reel_width=4, track="A", track_width=2)
        assert event_line(7, "00:00:01:00", columns).startswith("007  BL  A C        00:00:01:00")

    def test_long_column_value_keeps_separator(self) -> None:
        columns = EdlColumns(reel="LONGREEL01", reel_width=9)
        assert event_line(1, "00:00:00:00", columns).startswith("001  LONGREEL01 V")


class TestRenderCsv:
    def test_header_and_rows(self, sample_project: Project) -> None:
        lines = render_csv(sample_project).split("\n")
        assert lines[0] == "CommentID;ParentID;Timecode;Author;Text;Status;CreatedAt"
        assert lines[1] == 'comment_002;;00:00:00:05;Ben;"Audio pop";unresolved;2026-02-15T12:00:00'
        assert lines[2].startswith("comment_001;")
        assert lines[3].startswith("comment_003;")
        assert lines[4] == ""

    def test_quotes_text(self, make_comment) -> None:
        comment = make_comment(2, text='Say "cut"; then fade')
        csv = render_csv(Project(id="p", name="x", framerate=25, comments=[comment]))
        assert '"Say ""cut""; then fade"' in csv

    def test_quotes_other_fields_when_needed(self, make_comment) -> None:
        comment = make_comment(2, author="Smith; J.")
        csv = render_csv(Project(id="p", name="x", framerate=25, comments=[comment]))
        assert ';"Smith; J.";' in csv

    def test_reply_parent_column(self, make_comment) -> None:
        parent = make_comment(2)
        reply = make_comment(2, parent_id=parent.id)
        csv = render_csv(Project(id="p", name="x", framerate=25, comments=[parent, reply]))
        assert f"{reply.id};{parent.id};" in csv

    def test_no_comments(self) -> None:
        csv = render_csv(Project(id="p", name="x", framerate=25))
        assert csv == "CommentID;ParentID;Timecode;Author;Text;Status;CreatedAt\n"


class TestRender:
    def test_dispatch(self, sample_project: Project) -> None:
        assert render(sample_project, "xml") == render_edit_xml(sample_project)
        assert render(sample_project, "edl") == render_edl(sample_project)
        assert render(sample_project, "csv") == render_csv(sample_project)

    def test_unknown_format(self, sample_project: Project) -> None:
        with pytest.raises(ValueError):
            render(sample_project, "aaf")
