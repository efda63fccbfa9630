"""
Execution coordinator: fans the plan's directives out as independent agent calls.

Every update and creation directive becomes one task. All tasks run in a
single asyncio.gather group; each task is wrapped so that any exception turns
into an ExecutionError tagged with its directive id. The group always waits
for every task, and the outcome carries successes and failures side by side.

Optional hardening: a per-call timeout and a concurrency bound. Tasks are
started in descending directive priority so that, under a bound, the most
important directives go first. Results are reported in plan order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from ..agents.prompts import CREATION_INTERACTION, CREATOR_SLUG, UPDATE_INTERACTION, UPDATER_SLUG
from ..agents.protocol import AgentInvocation, AgentInvoker
from ..backlog.context import GlobalContext, ProjectContext, to_agent_json
from ..backlog.models import ChallengeNode, impact_rank
from .decoder import decode_or_raise
from .errors import DirectiveKind, ExecutionError, ReferentialFailure
from .invoke import invoke_agent
from .mapping import (
    NewChallengeSuggestion,
    UpdateSuggestion,
    map_detailed_creation,
    map_detailed_update,
)
from .schemas import DetailedCreation, DetailedUpdate, PlanCreation, PlanUpdate, RevisionPlan

logger = logging.getLogger(__name__)


@dataclass
class ExecutionOutcome:
    """Collected results of one fan-out."""

    update_suggestions: list[UpdateSuggestion] = field(default_factory=list)
    new_challenge_suggestions: list[NewChallengeSuggestion] = field(default_factory=list)
    errors: list[ExecutionError] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.update_suggestions) + len(self.new_challenge_suggestions)


@dataclass
class DirectiveTask:
    """One unit of fan-out work."""

    index: int
    kind: DirectiveKind
    directive_id: str
    priority: str
    run: Callable[[], Awaitable[Any]]


@dataclass
class TaskResult:
    task: DirectiveTask
    value: Any = None
    error: ExecutionError | None = None


def build_update_variables(
    context: ProjectContext,
    challenge: ChallengeNode,
    directive: PlanUpdate,
) -> dict[str, str]:
    project = context.project
    return {
        "project_name": project.name,
        "project_goal": project.goal or "",
        "project_status": project.status or "",
        "challenge_id": challenge.id,
        "challenge_title": challenge.title,
        "challenge_status": challenge.status,
        "challenge_impact": challenge.impact,
        "challenge_context_json": to_agent_json(context.build_scoped_context(challenge)),
        "available_owner_options_json": to_agent_json(list(context.owners)),
        "estimated_changes": directive.estimated_changes,
        "priority": directive.priority,
        "reason": directive.reason,
    }


def build_creation_variables(
    context: ProjectContext,
    directive: PlanCreation,
    global_context: GlobalContext,
) -> dict[str, str]:
    project = context.project
    return {
        "project_name": project.name,
        "project_goal": project.goal or "",
        "project_status": project.status or "",
        "reference_id": directive.reference_id,
        "suggested_title": directive.suggested_title,
        "suggested_parent_id": directive.suggested_parent_id or "",
        "estimated_impact": directive.estimated_impact,
        "reason": directive.reason,
        "key_themes": ", ".join(directive.key_themes or []),
        "related_insights_json": to_agent_json(context.evidence_for(directive.related_insight_ids)),
        "project_context_json": to_agent_json(global_context),
        "available_owner_options_json": to_agent_json(list(context.owners)),
    }


class ExecutionCoordinator:
    """Runs update and creation directives concurrently against one project context."""

    def __init__(
        self,
        invoker: AgentInvoker,
        context: ProjectContext,
        *,
        updater_slug: str = UPDATER_SLUG,
        creator_slug: str = CREATOR_SLUG,
        timeout: float | None = None,
        max_concurrency: int = 0,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            invoker: Agent invocation service
            context: Project context built for this run
            updater_slug: Agent used for update directives
            creator_slug: Agent used for creation directives
            timeout: Per-call timeout in seconds (None or 0 disables)
            max_concurrency: Maximum calls in flight (0 means unbounded)
            temperature: Sampling temperature passed to every call
            max_output_tokens: Output cap passed to every call
        """
        self.invoker = invoker
        self.context = context
        self.updater_slug = updater_slug
        self.creator_slug = creator_slug
        self.timeout = timeout or None
        self.max_concurrency = max_concurrency
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._global_context: GlobalContext | None = None

    def _project_context(self) -> GlobalContext:
        if self._global_context is None:
            self._global_context = self.context.build_global_context()
        return self._global_context

    async def _invoke(
        self, agent_slug: str, interaction_type: str, variables: dict[str, str]
    ) -> AgentInvocation:
        return await invoke_agent(
            self.invoker,
            agent_slug,
            interaction_type,
            variables,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            timeout=self.timeout,
        )

    async def run_update(self, directive: PlanUpdate) -> UpdateSuggestion:
        """
        Produce the detailed update for one challenge.

        Raises:
            ReferentialFailure: The challenge is not in the context
            InvocationFailure, DecodeFailure, SchemaFailure: The agent call failed
        """
        challenge = self.context.hierarchy.get(directive.challenge_id)
        if challenge is None:
            raise ReferentialFailure("challenge", directive.challenge_id)

        invocation = await self._invoke(
            self.updater_slug,
            UPDATE_INTERACTION,
            build_update_variables(self.context, challenge, directive),
        )
        response = decode_or_raise(
            invocation.content, DetailedUpdate, context=f"updater ({challenge.id})"
        )
        return map_detailed_update(response, directive, challenge, self.context, invocation)

    async def run_creation(self, directive: PlanCreation) -> list[NewChallengeSuggestion]:
        """
        Produce the detailed new challenge(s) for one creation directive.

        Raises:
            ReferentialFailure: The suggested parent is not in the context
            InvocationFailure, DecodeFailure, SchemaFailure: The agent call failed
        """
        parent_id = directive.suggested_parent_id
        if parent_id and not self.context.has_challenge(parent_id):
            raise ReferentialFailure("challenge", parent_id)

        invocation = await self._invoke(
            self.creator_slug,
            CREATION_INTERACTION,
            build_creation_variables(self.context, directive, self._project_context()),
        )
        response = decode_or_raise(
            invocation.content, DetailedCreation, context=f"creator ({directive.reference_id})"
        )
        return map_detailed_creation(response, directive, self.context, invocation)

    def build_tasks(self, plan: RevisionPlan) -> list[DirectiveTask]:
        """One task per directive, in plan order (updates, then creations)."""
        tasks: list[DirectiveTask] = []
        for update in plan.updates:
            tasks.append(
                DirectiveTask(
                    index=len(tasks),
                    kind="update",
                    directive_id=update.challenge_id,
                    priority=update.priority,
                    run=lambda d=update: self.run_update(d),
                )
            )
        for creation in plan.creations:
            tasks.append(
                DirectiveTask(
                    index=len(tasks),
                    kind="creation",
                    directive_id=creation.reference_id,
                    priority=creation.priority,
                    run=lambda d=creation: self.run_creation(d),
                )
            )
        return tasks

    async def _guard(
        self, task: DirectiveTask, semaphore: asyncio.Semaphore | None
    ) -> TaskResult:
        try:
            if semaphore is not None:
                async with semaphore:
                    value = await task.run()
            else:
                value = await task.run()
        except Exception as e:
            error = ExecutionError.from_exception(e, task.directive_id, task.kind)
            logger.warning(
                f"{task.kind.capitalize()} {task.directive_id} failed ({error.failure}): {error.message}"
            )
            return TaskResult(task=task, error=error)
        return TaskResult(task=task, value=value)

    async def execute(self, plan: RevisionPlan) -> ExecutionOutcome:
        """
        Run every directive of the plan and collect all outcomes.

        Never raises for a task failure; one failing directive does not affect
        the others.
        """
        tasks = self.build_tasks(plan)
        if not tasks:
            logger.info("Nothing to execute")
            return ExecutionOutcome()

        scheduled = sorted(tasks, key=lambda t: (-impact_rank(t.priority), t.index))
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency > 0 else None

        logger.info(
            f"Executing {len(tasks)} directives "
            f"({len(plan.updates)} updates, {len(plan.creations)} creations)"
        )
        results = await asyncio.gather(*(self._guard(task, semaphore) for task in scheduled))

        outcome = ExecutionOutcome()
        for result in sorted(results, key=lambda r: r.task.index):
            if result.error is not None:
                outcome.errors.append(result.error)
            elif result.task.kind == "update":
                outcome.update_suggestions.append(result.value)
            else:
                outcome.new_challenge_suggestions.extend(result.value)

        logger.info(
            f"Execution finished: {len(outcome.update_suggestions)} updates, "
            f"{len(outcome.new_challenge_suggestions)} new challenges, {len(outcome.errors)} errors"
        )
        return outcome
