"""
Pipeline facade: one builder run for one project.

ChallengeBuilder ties the stages together:
- fetch rows from the context data source and build the ProjectContext
- plan (hard failure on PlanningError; nothing is executed)
- execute every directive concurrently (per-task failures are collected)
- assemble the report
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field

from ..agents.protocol import AgentInvoker
from ..backlog.context import ProjectContext
from ..backlog.source import ContextDataSource
from ..config import AgentSlugsConfig, BuilderConfig
from ..utils.logging import StructuredLogger
from .execution import ExecutionCoordinator
from .mapping import ChallengeBuilderReport, assemble_report
from .planning import RevisionPlanner

logger = logging.getLogger(__name__)


@dataclass
class AgentOverrides:
    """Per-run agent slug overrides; None keeps the configured slug."""

    planner: str | None = None
    updater: str | None = None
    creator: str | None = None


@dataclass
class RunOptions:
    agents: AgentOverrides = field(default_factory=AgentOverrides)
    temperature: float | None = None
    max_output_tokens: int | None = None

    def __post_init__(self) -> None:
        if self.temperature is not None and not 0 <= self.temperature <= 2:
            raise ValueError(f"temperature must be between 0 and 2, got {self.temperature}")
        if self.max_output_tokens is not None and self.max_output_tokens <= 0:
            raise ValueError(f"max_output_tokens must be positive, got {self.max_output_tokens}")


class ChallengeBuilder:
    """Runs the plan-then-execute pipeline for a project."""

    def __init__(
        self,
        source: ContextDataSource,
        invoker: AgentInvoker,
        agents: AgentSlugsConfig | None = None,
        call_timeout: float | None = None,
        max_concurrency: int = 0,
    ):
        """
        Initialize the builder.

        Args:
            source: Where project rows come from
            invoker: Agent invocation service
            agents: Default agent slugs (environment overrides already applied)
            call_timeout: Per-call timeout in seconds (None or 0 disables)
            max_concurrency: Maximum execution calls in flight (0 means unbounded)
        """
        self.source = source
        self.invoker = invoker
        self.agents = agents or AgentSlugsConfig()
        self.call_timeout = call_timeout or None
        self.max_concurrency = max_concurrency

    @classmethod
    def from_config(
        cls,
        config: BuilderConfig,
        source: ContextDataSource,
        invoker: AgentInvoker,
    ) -> ChallengeBuilder:
        return cls(
            source=source,
            invoker=invoker,
            agents=config.agents,
            call_timeout=config.execution.call_timeout_seconds,
            max_concurrency=config.execution.max_concurrency,
        )

    def resolve_agents(self, overrides: AgentOverrides) -> AgentSlugsConfig:
        """Request overrides win over the configured slugs."""
        return AgentSlugsConfig(
            planner=overrides.planner or self.agents.planner,
            updater=overrides.updater or self.agents.updater,
            creator=overrides.creator or self.agents.creator,
        )

    async def run(self, project_id: str, options: RunOptions | None = None) -> ChallengeBuilderReport:
        """
        Run the builder for one project.

        Args:
            project_id: Project to review
            options: Agent overrides and generation settings

        Returns:
            Report with every suggestion, per-task errors and plan warnings

        Raises:
            ProjectNotFoundError: The data source does not know the project
            PlanningError: The planning step failed; nothing was executed
        """
        options = options or RunOptions()
        run_log = StructuredLogger(__name__, project=project_id, run=uuid.uuid4().hex[:8])
        started = time.monotonic()

        rows = await self.source.fetch_project_rows(project_id)
        context = ProjectContext.from_rows(rows)
        for warning in context.hierarchy.warnings:
            run_log.warning(
                f"Ignored parent {warning.requested_parent_id} of challenge "
                f"{warning.challenge_id}: {warning.reason}"
            )
        run_log.info(
            f"Context: {len(context.hierarchy)} challenges, {len(context.evidence)} insights"
        )

        slugs = self.resolve_agents(options.agents)
        planner = RevisionPlanner(self.invoker, agent_slug=slugs.planner, timeout=self.call_timeout)
        planning = await planner.plan(
            context,
            temperature=options.temperature,
            max_output_tokens=options.max_output_tokens,
        )

        coordinator = ExecutionCoordinator(
            self.invoker,
            context,
            updater_slug=slugs.updater,
            creator_slug=slugs.creator,
            timeout=self.call_timeout,
            max_concurrency=self.max_concurrency,
            temperature=options.temperature,
            max_output_tokens=options.max_output_tokens,
        )
        outcome = await coordinator.execute(planning.plan)

        report = assemble_report(
            planning.plan,
            outcome.update_suggestions,
            outcome.new_challenge_suggestions,
            outcome.errors,
            warnings=planning.warnings,
        )
        run_log.info(
            f"Run finished in {time.monotonic() - started:.1f}s: "
            f"{len(report.challenge_suggestions)} update suggestions, "
            f"{len(report.new_challenge_suggestions)} new challenges, "
            f"{len(report.errors or [])} errors, {len(report.warnings)} warnings"
        )
        return report
