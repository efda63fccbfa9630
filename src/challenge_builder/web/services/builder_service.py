"""
Builder service backing the web API.

Owns the ChallengeBuilder and the ResultStore for the lifetime of the app.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ...agents.factory import create_agent_service
from ...backlog.source import JsonDirectorySource
from ...config import load_config
from ...orchestrator.core import ChallengeBuilder, RunOptions
from ...orchestrator.mapping import ChallengeBuilderReport
from ...storage import ResultStore, StoredResult

logger = logging.getLogger(__name__)


class BuilderService:
    """Runs the builder and keeps the last report per project."""

    def __init__(self, builder: ChallengeBuilder, store: ResultStore):
        self.builder = builder
        self.store = store

    @classmethod
    def from_config_path(cls, config_path: Path) -> BuilderService:
        """
        Build the service from a challenge-builder.toml file.

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the config is invalid or the API key is missing
        """
        config = load_config(config_path).resolve_paths(config_path.parent)
        builder = ChallengeBuilder.from_config(
            config,
            source=JsonDirectorySource(config.storage.data_dir),
            invoker=create_agent_service(config),
        )
        return cls(builder=builder, store=ResultStore(config.storage.results_db_path))

    async def initialize(self) -> None:
        await self.store.initialize()

    async def close(self) -> None:
        await self.store.close()

    async def run(self, project_id: str, options: RunOptions | None = None) -> ChallengeBuilderReport:
        """
        Run the builder and save the report.

        Raises:
            ProjectNotFoundError: Unknown project
            PlanningError: Planning failed; nothing is saved
        """
        report = await self.builder.run(project_id, options)
        await self.store.save(project_id, report)
        return report

    async def get_results(self, project_id: str) -> StoredResult | None:
        return await self.store.get(project_id)

    async def save_results(self, project_id: str, report: ChallengeBuilderReport) -> StoredResult:
        return await self.store.save(project_id, report)
