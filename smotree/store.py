"""
smotree.store - Project persistence.

A ProjectStore owns every project and, through them, every comment. The
review service receives a store instead of reaching for global state, so
the same code runs against memory in tests and JSON files on disk.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from smotree.exceptions import ProjectNotFoundError, StorageError
from smotree.io import read_json, write_json
from smotree.logging import logger
from smotree.models import Comment, Project, now_iso


class ProjectStore(ABC):
    """Base class for project repositories.

    Subclasses implement raw load/save/delete; comment operations are built
    on top and always persist the whole project.
    """

    @abstractmethod
    def _load(self, project_id: str) -> Project | None: ...

    @abstractmethod
    def _save(self, project: Project) -> None: ...

    @abstractmethod
    def _delete(self, project_id: str) -> bool: ...

    @abstractmethod
    def project_ids(self) -> list[str]: ...

    def list_projects(self) -> list[Project]:
        projects = [self.get_project(pid) for pid in self.project_ids()]
        return sorted(projects, key=lambda p: (p.created_at, p.id))

    def get_project(self, project_id: str) -> Project:
        project = self._load(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def has_project(self, project_id: str) -> bool:
        return project_id in self.project_ids()

    def save_project(self, project: Project) -> Project:
        """Insert or replace a project."""
        self._save(project)
        logger.debug("Saved project %s (%d comments)", project.id, len(project.comments))
        return project

    def delete_project(self, project_id: str) -> None:
        """Delete a project together with all of its comments."""
        if not self._delete(project_id):
            raise ProjectNotFoundError(project_id)
        logger.debug("Deleted project %s", project_id)

    def next_project_id(self) -> str:
        """Generate a project id not used in this store."""
        existing = set(self.project_ids())
        counter = 1
        while True:
            project_id = f"project_{counter:03d}"
            if project_id not in existing:
                return project_id
            counter += 1

    def add_comment(self, project_id: str, comment: Comment) -> Comment:
        project = self.get_project(project_id)
        project.add_comment(comment)
        self.save_project(project)
        return comment

    def update_comment(self, project_id: str, comment_id: str, **updates: Any) -> Comment:
        """Apply field updates to a comment and stamp updated_at.

        Raises:
            ProjectNotFoundError: If the project doesn't exist
            CommentNotFoundError: If the comment doesn't exist
            pydantic.ValidationError: If an update is invalid
        """
        project = self.get_project(project_id)
        comment = project.get_comment(comment_id)
        values = {**comment.model_dump(), **updates}
        values["updated_at"] = updates.get("updated_at") or now_iso()
        updated = Comment.model_validate(values)
        project.comments[project.comments.index(comment)] = updated
        self.save_project(project)
        return updated

    def delete_comment(self, project_id: str, comment_id: str) -> list[Comment]:
        """Delete a comment and its replies; returns what was removed."""
        project = self.get_project(project_id)
        removed = project.remove_comment(comment_id)
        self.save_project(project)
        return removed

    def export_data(self) -> str:
        """Serialize every project as a JSON array."""
        data = [p.model_dump(mode="json") for p in self.list_projects()]
        return json.dumps(data, indent=2, ensure_ascii=False)

    def import_data(self, payload: str) -> list[Project]:
        """Replace the store contents with projects from export_data output.

        Nothing is changed unless the whole payload validates.

        Raises:
            StorageError: If the payload is not a JSON array of projects
        """
        try:
            raw = json.loads(payload)
            if not isinstance(raw, list):
                raise StorageError("Invalid JSON data: expected a list of projects")
            projects = [Project.model_validate(item) for item in raw]
        except (json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Invalid JSON data: {e}") from e

        ids = [p.id for p in projects]
        if len(ids) != len(set(ids)):
            raise StorageError("Invalid JSON data: duplicate project ids")

        self.clear()
        for project in projects:
            self._save(project)
        logger.debug("Imported %d project(s)", len(projects))
        return projects

    def clear(self) -> None:
        for project_id in self.project_ids():
            self._delete(project_id)


class MemoryProjectStore(ProjectStore):
    """In-process store; projects are copied in and out."""

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}

    def _load(self, project_id: str) -> Project | None:
        project = self._projects.get(project_id)
        return project.model_copy(deep=True) if project else None

    def _save(self, project: Project) -> None:
        self._projects[project.id] = project.model_copy(deep=True)

    def _delete(self, project_id: str) -> bool:
        return self._projects.pop(project_id, None) is not None

    def project_ids(self) -> list[str]:
        return list(self._projects)


class JsonProjectStore(ProjectStore):
    """Stores each project as ``<root>/<project_id>.json``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _path(self, project_id: str) -> Path:
        if not project_id or "/" in project_id or "\\" in project_id or project_id.startswith("."):
            raise ProjectNotFoundError(project_id)
        return self.root / f"{project_id}.json"

    def _load(self, project_id: str) -> Project | None:
        path = self._path(project_id)
        if not path.exists():
            return None
        try:
            return Project.model_validate(read_json(path))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Corrupt project file {path}: {e}") from e

    def _save(self, project: Project) -> None:
        write_json(self._path(project.id), project.model_dump(mode="json"))

    def _delete(self, project_id: str) -> bool:
        path = self._path(project_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def project_ids(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))
