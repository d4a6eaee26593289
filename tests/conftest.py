"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
import yaml

from smotree.config import SmoTreeConfig
from smotree.models import Comment, Project
from smotree.review import ReviewService
from smotree.store import MemoryProjectStore
from smotree.timecode import frame_to_timecode


@pytest.fixture
def make_comment() -> Callable[..., Comment]:
    """Build a comment whose timecode matches its frame at 25 fps."""
    counter = iter(range(1, 1000))

    def factory(
        frame: int,
        status: str = "unresolved",
        text: str = "Check this shot",
        author: str = "Ana",
        framerate: float = 25.0,
        **kwargs,
    ) -> Comment:
        return Comment(
            id=kwargs.pop("id", f"comment_{next(counter):03d}"),
            author=author,
            text=text,
            frame_number=frame,
            timecode=frame_to_timecode(frame, framerate),
            status=status,
            created_at=kwargs.pop("created_at", "2026-02-15T12:00:00"),
            **kwargs,
        )

    return factory


@pytest.fixture
def sample_project(make_comment: Callable[..., Comment]) -> Project:
    """A 2-minute 25 fps project with three comments out of frame order."""
    return Project(
        id="project_001",
        name="Demo",
        framerate=25.0,
        duration=120.0,
        video_filename="demo.mov",
        created_at="2026-02-15T10:00:00",
        comments=[
            make_comment(10, status="resolved", text="Color shift"),
            make_comment(5, status="unresolved", text="Audio pop", author="Ben"),
            make_comment(20, status="in_progress", text="Trim tail"),
        ],
    )


@pytest.fixture
def store() -> MemoryProjectStore:
    return MemoryProjectStore()


@pytest.fixture
def service(store: MemoryProjectStore) -> ReviewService:
    return ReviewService(store, SmoTreeConfig(author="Ana"))


@pytest.fixture
def tmp_workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with a config and an empty store."""
    workspace = tmp_path / "review"
    workspace.mkdir()
    (workspace / "projects").mkdir()

    config = {"author": "Ana", "default_framerate": 25.0}
    with open(workspace / "smotree.yaml", "w") as f:
        yaml.dump(config, f)

    return workspace
