"""
smotree.models - Project and comment data model.

A Project wraps one video and exclusively owns its comments. Comments store
both the canonical frame number and the display timecode computed from it.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from smotree.exceptions import CommentNotFoundError
from smotree.timecode import seconds_to_frame

_COMMENT_ID = re.compile(r"comment_(\d+)")


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


class CommentStatus(str, Enum):
    """Review state of a comment."""

    UNRESOLVED = "unresolved"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"

    @classmethod
    def parse(cls, value: str | CommentStatus) -> CommentStatus:
        """Parse a status, accepting the legacy two-state vocabulary.

        Raises:
            ValueError: For an unknown status name
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        key = STATUS_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown status {value!r} (expected one of: {valid})") from None


STATUS_ALIASES: dict[str, str] = {
    "open": "unresolved",
    "closed": "resolved",
    "in-progress": "in_progress",
    "inprogress": "in_progress",
}


class MarkerColor(str, Enum):
    """Marker colors understood by DaVinci Resolve's xmeml importer."""

    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    CYAN = "cyan"
    PINK = "pink"
    PURPLE = "purple"


DEFAULT_COLOR_SCHEME: dict[CommentStatus, MarkerColor] = {
    CommentStatus.UNRESOLVED: MarkerColor.RED,
    CommentStatus.IN_PROGRESS: MarkerColor.YELLOW,
    CommentStatus.RESOLVED: MarkerColor.GREEN,
}


class ExportFormat(str, Enum):
    XML = "xml"
    EDL = "edl"
    CSV = "csv"

    @property
    def extension(self) -> str:
        return self.value


class Comment(BaseModel):
    """A timestamped review comment (exported as a marker)."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    author: str = Field(min_length=1)
    text: str = Field(min_length=1)
    frame_number: int = Field(ge=0)
    timecode: str
    status: CommentStatus = CommentStatus.UNRESOLVED
    created_at: str = Field(default_factory=now_iso)
    updated_at: str | None = None
    parent_id: str | None = None

    @field_validator("author")
    @classmethod
    def strip_author(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("text")
    @classmethod
    def check_text(cls, v: str) -> str:
        # Stored as written; exports decide how to lay it out.
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> CommentStatus:
        return CommentStatus.parse(v)

    @property
    def is_reply(self) -> bool:
        return self.parent_id is not None


class Project(BaseModel):
    """A reviewed video and the comments attached to it."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str = Field(min_length=1)
    framerate: float = Field(gt=0, allow_inf_nan=False, frozen=True)
    duration: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    video_filename: str | None = None
    video_url: str | None = None
    description: str = ""
    created_at: str = Field(default_factory=now_iso)
    created_by: str | None = None
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)
    comments: list[Comment] = Field(default_factory=list)

    @property
    def end_frame(self) -> int:
        """Last frame boundary of the clip: ``floor(duration * framerate)``."""
        return seconds_to_frame(self.duration, self.framerate)

    @property
    def clip_name(self) -> str:
        return self.video_filename or self.name

    def get_comment(self, comment_id: str) -> Comment:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        raise CommentNotFoundError(self.id, comment_id)

    def replies_to(self, comment_id: str) -> list[Comment]:
        return [c for c in self.comments if c.parent_id == comment_id]

    def add_comment(self, comment: Comment) -> Comment:
        if any(c.id == comment.id for c in self.comments):
            raise ValueError(f"Duplicate comment id: {comment.id}")
        if comment.parent_id is not None:
            self.get_comment(comment.parent_id)
        self.comments.append(comment)
        return comment

    def remove_comment(self, comment_id: str) -> list[Comment]:
        """Remove a comment and, recursively, all replies to it.

        Returns:
            The removed comments, the requested one first
        """
        self.get_comment(comment_id)

        doomed = [comment_id]
        index = 0
        while index < len(doomed):
            doomed.extend(c.id for c in self.replies_to(doomed[index]))
            index += 1

        removed = sorted(
            (c for c in self.comments if c.id in doomed),
            key=lambda c: doomed.index(c.id),
        )
        self.comments = [c for c in self.comments if c.id not in doomed]
        return removed

    def next_comment_id(self) -> str:
        """Generate a comment id not used in this project."""
        numbers = [
            int(match.group(1))
            for match in (_COMMENT_ID.fullmatch(c.id) for c in self.comments)
            if match
        ]
        return f"comment_{max(numbers, default=0) + 1:03d}"
