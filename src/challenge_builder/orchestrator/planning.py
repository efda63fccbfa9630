"""
Planning step: one global planner call that decides what to update and create.

The planner sees the whole project. Its answer is decoded into a RevisionPlan
and then checked against the context:

- updates / noChangeNeeded naming an unknown challenge are dropped
- creations naming an unknown suggested parent are dropped
- a challenge id claimed twice keeps its first occurrence (updates first)
- duplicate creation reference ids keep their first occurrence
- unknown evidence ids are pruned from surviving directives

Each drop or prune yields a PlanWarning; none of them aborts the run. Only
invocation, decode and schema failures do, as PlanningError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from ..agents.prompts import PLANNER_SLUG, PLANNING_INTERACTION
from ..agents.protocol import AgentInvocation, AgentInvoker
from ..backlog.context import ProjectContext, to_agent_json
from ..backlog.models import CamelModel
from .decoder import DecodeFailed, decode
from .errors import ChallengeBuilderError, PlanningError
from .invoke import invoke_agent
from .schemas import PlanCreation, PlanNoChange, PlanUpdate, RevisionPlan

logger = logging.getLogger(__name__)

PlanDirectiveKind = Literal["update", "creation", "no_change"]


class PlanWarning(CamelModel):
    """A directive that was dropped or trimmed by the referential pass."""

    directive_kind: PlanDirectiveKind
    directive_id: str
    message: str


@dataclass
class ValidatedPlan:
    """Plan whose every id exists in the context, plus what was removed."""

    plan: RevisionPlan
    warnings: list[PlanWarning] = field(default_factory=list)


@dataclass
class PlanningResult:
    plan: RevisionPlan
    warnings: list[PlanWarning]
    invocation: AgentInvocation


def _prune_evidence(
    directive: PlanUpdate | PlanCreation,
    kind: PlanDirectiveKind,
    directive_id: str,
    context: ProjectContext,
    warnings: list[PlanWarning],
) -> PlanUpdate | PlanCreation:
    kept: list[str] = []
    unknown: list[str] = []
    for evidence_id in directive.related_insight_ids:
        if not context.has_evidence(evidence_id):
            unknown.append(evidence_id)
        elif evidence_id not in kept:
            kept.append(evidence_id)

    if unknown:
        warnings.append(
            PlanWarning(
                directive_kind=kind,
                directive_id=directive_id,
                message=f"Pruned unknown insight ids: {', '.join(unknown)}",
            )
        )
    if kept == list(directive.related_insight_ids):
        return directive
    return directive.model_copy(update={"related_insight_ids": kept})


def validate_plan_references(plan: RevisionPlan, context: ProjectContext) -> ValidatedPlan:
    """
    Make the plan referentially consistent with the context.

    Pure: returns a new plan and the warnings, never raises for bad ids.
    """
    warnings: list[PlanWarning] = []
    claimed: set[str] = set()

    def drop(kind: PlanDirectiveKind, directive_id: str, message: str) -> None:
        warnings.append(PlanWarning(directive_kind=kind, directive_id=directive_id, message=message))

    updates: list[PlanUpdate] = []
    for update in plan.updates:
        if not context.has_challenge(update.challenge_id):
            drop("update", update.challenge_id, f"Challenge {update.challenge_id} not found; update dropped")
        elif update.challenge_id in claimed:
            drop("update", update.challenge_id, "Challenge already planned; duplicate update dropped")
        else:
            claimed.add(update.challenge_id)
            updates.append(_prune_evidence(update, "update", update.challenge_id, context, warnings))

    no_change: list[PlanNoChange] = []
    for record in plan.no_change_needed:
        if not context.has_challenge(record.challenge_id):
            drop("no_change", record.challenge_id, f"Challenge {record.challenge_id} not found; record dropped")
        elif record.challenge_id in claimed:
            drop("no_change", record.challenge_id, "Challenge already planned; no-change record dropped")
        else:
            claimed.add(record.challenge_id)
            no_change.append(record)

    creations: list[PlanCreation] = []
    seen_references: set[str] = set()
    for creation in plan.creations:
        reference_id = creation.reference_id
        if reference_id in seen_references:
            drop("creation", reference_id, "Duplicate reference id; creation dropped")
        elif creation.suggested_parent_id and not context.has_challenge(creation.suggested_parent_id):
            drop(
                "creation",
                reference_id,
                f"Suggested parent {creation.suggested_parent_id} not found; creation dropped",
            )
        else:
            seen_references.add(reference_id)
            creations.append(_prune_evidence(creation, "creation", reference_id, context, warnings))

    for warning in warnings:
        logger.warning(f"Plan {warning.directive_kind} {warning.directive_id}: {warning.message}")

    validated = plan.model_copy(
        update={"updates": updates, "creations": creations, "no_change_needed": no_change}
    )
    return ValidatedPlan(plan=validated, warnings=warnings)


def build_planner_variables(context: ProjectContext) -> dict[str, str]:
    project = context.project
    return {
        "project_name": project.name,
        "project_goal": project.goal or "",
        "project_status": project.status or "",
        "project_timeframe": project.timeframe or "",
        "challenge_context_json": to_agent_json(context.build_global_context()),
    }


class RevisionPlanner:
    """Runs the planner agent and returns a validated plan."""

    def __init__(
        self,
        invoker: AgentInvoker,
        agent_slug: str = PLANNER_SLUG,
        timeout: float | None = None,
    ):
        self.invoker = invoker
        self.agent_slug = agent_slug
        self.timeout = timeout

    async def plan(
        self,
        context: ProjectContext,
        *,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> PlanningResult:
        """
        Produce the revision plan for a project.

        Raises:
            PlanningError: The planner call failed or its answer could not be decoded
        """
        try:
            invocation = await invoke_agent(
                self.invoker,
                self.agent_slug,
                PLANNING_INTERACTION,
                build_planner_variables(context),
                temperature=temperature,
                max_output_tokens=max_output_tokens,
                timeout=self.timeout,
            )
        except ChallengeBuilderError as e:
            logger.error(f"Planner invocation failed: {e}")
            raise PlanningError(e) from e

        result = decode(invocation.content, RevisionPlan, context="planner")
        if isinstance(result, DecodeFailed):
            cause = result.to_exception()
            logger.error(f"Planner response rejected: {cause}")
            raise PlanningError(cause) from cause

        validated = validate_plan_references(result.value, context)
        plan = validated.plan
        logger.info(
            f"Plan: {len(plan.updates)} updates, {len(plan.creations)} creations, "
            f"{len(plan.no_change_needed)} unchanged, {len(validated.warnings)} warnings"
        )
        if plan.summary:
            logger.info(f"Plan summary: {plan.summary}")

        return PlanningResult(plan=plan, warnings=validated.warnings, invocation=invocation)
