"""
Context data sources.

A data source returns the raw rows for one project. The builder only reads
from it; persistence of challenges and insights lives elsewhere.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from .models import ProjectRows

logger = logging.getLogger(__name__)


class ProjectNotFoundError(LookupError):
    """Raised when a data source has no rows for the requested project."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


@runtime_checkable
class ContextDataSource(Protocol):
    """Protocol for anything that can supply project rows."""

    async def fetch_project_rows(self, project_id: str) -> ProjectRows:
        """
        Fetch the raw rows for a project.

        Raises:
            ProjectNotFoundError: If the project does not exist
        """
        ...


class InMemorySource:
    """Data source over pre-loaded rows (tests, embedding in other services)."""

    def __init__(self, projects: dict[str, ProjectRows] | None = None):
        self.projects: dict[str, ProjectRows] = dict(projects or {})

    def add(self, rows: ProjectRows) -> None:
        self.projects[rows.project.id] = rows

    async def fetch_project_rows(self, project_id: str) -> ProjectRows:
        rows = self.projects.get(project_id)
        if rows is None:
            raise ProjectNotFoundError(project_id)
        return rows


class JsonDirectorySource:
    """
    Reads `<data_dir>/<project_id>.json` files.

    Each file holds a JSON object with the ProjectRows keys:
    project, challenges, insights, challenge_insights, asks, owners.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def _path_for(self, project_id: str) -> Path:
        # Project ids are used as file names; refuse anything path-like
        if not project_id or "/" in project_id or "\\" in project_id or project_id.startswith("."):
            raise ProjectNotFoundError(project_id)
        return self.data_dir / f"{project_id}.json"

    def _load(self, project_id: str) -> ProjectRows:
        path = self._path_for(project_id)
        if not path.exists():
            raise ProjectNotFoundError(project_id)

        data = json.loads(path.read_text(encoding="utf-8"))
        try:
            rows = ProjectRows.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid project data in {path}: {e}") from e

        if rows.project.id != project_id:
            logger.warning(
                f"Project file {path.name} declares id {rows.project.id}, expected {project_id}"
            )
        return rows

    async def fetch_project_rows(self, project_id: str) -> ProjectRows:
        return await asyncio.to_thread(self._load, project_id)
