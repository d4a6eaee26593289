"""
smotree.review - Review workflow over a project store.

Turns playback positions into comment records (frame number plus display
timecode), moves comments through the review states, and produces export
files. The store is injected, so nothing here touches global state.
"""

from __future__ import annotations

import math
from datetime import date
from pathlib import Path
from typing import Any

from smotree.config import SmoTreeConfig
from smotree.exceptions import InvalidArgumentError, ProjectError
from smotree.export import export_filename, parse_edit_xml, render
from smotree.io import write_text
from smotree.logging import logger
from smotree.models import Comment, CommentStatus, ExportFormat, Project, now_iso
from smotree.store import ProjectStore
from smotree.timecode import frame_to_timecode, normalize_framerate, seconds_to_frame

EDITABLE_PROJECT_FIELDS = {
    "name",
    "description",
    "duration",
    "video_filename",
    "video_url",
    "width",
    "height",
}


class ReviewService:
    """Project and comment operations for one store and config."""

    def __init__(self, store: ProjectStore, config: SmoTreeConfig | None = None) -> None:
        self.store = store
        self.config = config or SmoTreeConfig()

    def _author(self, author: str | None) -> str:
        name = author or self.config.author
        if not name or not name.strip():
            raise ProjectError("No author given and no default author configured")
        return name

    def create_project(
        self,
        name: str,
        framerate: float | None = None,
        duration: float = 0.0,
        video_filename: str | None = None,
        video_url: str | None = None,
        description: str = "",
        created_by: str | None = None,
        width: int | None = None,
        height: int | None = None,
    ) -> Project:
        """Create and store a project.

        The framerate defaults to the configured one and is snapped to the
        nearest common rate when ``snap_framerate`` is enabled.
        """
        rate = self.config.default_framerate if framerate is None else framerate
        if self.config.snap_framerate:
            rate = normalize_framerate(rate)

        project = Project(
            id=self.store.next_project_id(),
            name=name,
            framerate=rate,
            duration=duration,
            video_filename=video_filename,
            video_url=video_url,
            description=description,
            created_by=created_by or self.config.author,
            width=width,
            height=height,
        )
        self.store.save_project(project)
        logger.debug("Created project %s at %s fps", project.id, project.framerate)
        return project

    def update_project(self, project_id: str, **changes: Any) -> Project:
        """Update editable project fields.

        The framerate is fixed once set: existing frame numbers depend on it.
        """
        if "framerate" in changes:
            raise ProjectError("A project's framerate cannot change after creation")
        unknown = set(changes) - EDITABLE_PROJECT_FIELDS
        if unknown:
            raise ProjectError(f"Cannot update project field(s): {', '.join(sorted(unknown))}")

        project = self.store.get_project(project_id)
        updated = Project.model_validate({**project.model_dump(), **changes})
        return self.store.save_project(updated)

    def frame_at(self, project: Project, seconds: float) -> int:
        """Frame showing at a playback position, clamped to the video.

        Negative positions clamp to frame 0 and positions at or past the end
        clamp to the last frame (when the duration is known).
        """
        if not math.isfinite(seconds):
            raise InvalidArgumentError(f"Position must be finite, got {seconds}")
        frame = seconds_to_frame(max(0.0, seconds), project.framerate)
        if project.end_frame > 0:
            frame = min(frame, project.end_frame - 1)
        return frame

    def add_comment(
        self,
        project_id: str,
        text: str,
        seconds: float,
        author: str | None = None,
        status: CommentStatus | str = CommentStatus.UNRESOLVED,
        parent_id: str | None = None,
    ) -> Comment:
        """Attach a comment at a playback position."""
        project = self.store.get_project(project_id)
        frame = self.frame_at(project, seconds)

        comment = Comment(
            id=project.next_comment_id(),
            author=self._author(author),
            text=text,
            frame_number=frame,
            timecode=frame_to_timecode(frame, project.framerate),
            status=CommentStatus.parse(status),
            parent_id=parent_id,
        )
        project.add_comment(comment)
        self.store.save_project(project)
        logger.debug("Added %s to %s at %s", comment.id, project_id, comment.timecode)
        return comment

    def reply(
        self,
        project_id: str,
        parent_id: str,
        text: str,
        author: str | None = None,
    ) -> Comment:
        """Reply in a thread; the reply sits on the parent's frame."""
        project = self.store.get_project(project_id)
        parent = project.get_comment(parent_id)

        comment = Comment(
            id=project.next_comment_id(),
            author=self._author(author),
            text=text,
            frame_number=parent.frame_number,
            timecode=parent.timecode,
            parent_id=parent.id,
        )
        project.add_comment(comment)
        self.store.save_project(project)
        return comment

    def set_status(self, project_id: str, comment_id: str, status: CommentStatus | str) -> Comment:
        return self.store.update_comment(project_id, comment_id, status=CommentStatus.parse(status))

    def resolve(self, project_id: str, comment_id: str) -> Comment:
        return self.set_status(project_id, comment_id, CommentStatus.RESOLVED)

    def edit_comment(self, project_id: str, comment_id: str, text: str) -> Comment:
        return self.store.update_comment(project_id, comment_id, text=text)

    def delete_comment(self, project_id: str, comment_id: str) -> list[Comment]:
        return self.store.delete_comment(project_id, comment_id)

    def export(
        self,
        project_id: str,
        fmt: ExportFormat | str,
        include_resolved: bool | None = None,
        on: date | None = None,
    ) -> tuple[str, str]:
        """Render a project's comments for download.

        Returns:
            (filename, content)
        """
        project = self.store.get_project(project_id)
        options = self.config.export_options(include_resolved=include_resolved)
        content = render(project, fmt, options=options)
        return export_filename(project, fmt, on), content

    def export_to(
        self,
        project_id: str,
        fmt: ExportFormat | str,
        directory: Path,
        include_resolved: bool | None = None,
        on: date | None = None,
    ) -> Path:
        """Render and write an export file into ``directory``."""
        filename, content = self.export(project_id, fmt, include_resolved=include_resolved, on=on)
        output_path = directory / filename
        write_text(output_path, content)
        logger.debug("Wrote %s export to %s", ExportFormat(fmt).value, output_path)
        return output_path

    def import_markers(self, project_id: str, content: str) -> dict[str, int]:
        """Merge markers from an xmeml document back into a project.

        Markers carrying a known comment id update that comment's status.
        Markers without an id become new comments. Markers whose id no
        longer exists (deleted here) and markers with no text are skipped.

        Returns:
            Counts for 'updated', 'added', 'unchanged' and 'skipped'
        """
        project = self.store.get_project(project_id)
        records = parse_edit_xml(content, self.config.export_options())
        existing = {c.id: c for c in project.comments}
        counts = {"updated": 0, "added": 0, "unchanged": 0, "skipped": 0}

        for record in records:
            if record.comment_id is not None:
                comment = existing.get(record.comment_id)
                if comment is None:
                    counts["skipped"] += 1
                elif comment.status is record.status:
                    counts["unchanged"] += 1
                else:
                    comment.status = record.status
                    comment.updated_at = now_iso()
                    counts["updated"] += 1
                continue

            if not record.text.strip():
                counts["skipped"] += 1
                continue

            frame = record.frame_number
            if project.end_frame > 0:
                frame = min(frame, project.end_frame - 1)
            parent_id = record.parent_id if record.parent_id in existing else None

            comment = Comment(
                id=project.next_comment_id(),
                author=record.author or self.config.author or "Resolve",
                text=record.text,
                frame_number=frame,
                timecode=frame_to_timecode(frame, project.framerate),
                status=record.status,
                parent_id=parent_id,
                **({"created_at": record.created_at} if record.created_at else {}),
            )
            project.add_comment(comment)
            existing[comment.id] = comment
            counts["added"] += 1

        self.store.save_project(project)
        logger.debug("Imported markers into %s: %s", project_id, counts)
        return counts
