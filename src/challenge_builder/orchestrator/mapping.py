"""
Result mapping: decoded agent answers to reviewable suggestions.

Provides:
- normalise_status / normalise_impact: map free-text values to the allowed sets
- resolve_owners: match owner suggestions against the project roster
- map_detailed_update / map_detailed_creation: pure mapping with fallbacks
- assemble_report: the final ChallengeBuilderReport

Mapping never mutates its inputs and never drops a partial result.
"""

from __future__ import annotations

import logging

from pydantic import Field

from ..agents.protocol import AgentInvocation
from ..backlog.context import ProjectContext
from ..backlog.models import (
    CHALLENGE_STATUS_VALUES,
    IMPACT_LEVELS,
    CamelModel,
    ChallengeNode,
    Impact,
    OwnerOption,
    Priority,
)
from .errors import ExecutionError
from .planning import PlanWarning
from .schemas import (
    DetailedCreation,
    DetailedUpdate,
    FoundationInsight,
    OwnerSuggestion,
    PlanCreation,
    PlanUpdate,
    RevisionPlan,
    SubChallengeCreate,
)

logger = logging.getLogger(__name__)


class ResolvedOwner(CamelModel):
    """Owner suggestion after matching against the roster."""

    id: str
    name: str
    role: str | None = None
    resolved: bool = False


class FoundationEvidence(CamelModel):
    """Evidence item used to justify a suggestion."""

    insight_id: str
    title: str
    reason: str
    priority: Priority


class AgentMetadata(CamelModel):
    log_id: str
    agent_id: str | None = None
    model_id: str | None = None


class ChallengeChanges(CamelModel):
    """Proposed field changes; None means unchanged."""

    title: str | None = None
    description: str | None = None
    status: str | None = None
    impact: Impact | None = None
    owners: list[ResolvedOwner] | None = None


class SubChallengeUpdateSuggestion(CamelModel):
    id: str
    title: str | None = None
    description: str | None = None
    status: str | None = None
    impact: Impact | None = None
    summary: str | None = None


class NewChallengeSuggestion(CamelModel):
    """A challenge proposed for creation (top-level or sub-challenge)."""

    reference_id: str | None = None
    parent_id: str | None = None
    title: str
    description: str | None = None
    status: str | None = None
    impact: Impact | None = None
    owners: list[ResolvedOwner] = Field(default_factory=list)
    summary: str | None = None
    foundation_insights: list[FoundationEvidence] = Field(default_factory=list)
    agent_metadata: AgentMetadata | None = None


class UpdateSuggestion(CamelModel):
    """Detailed revision of one existing challenge."""

    challenge_id: str
    challenge_title: str
    summary: str | None = None
    foundation_insights: list[FoundationEvidence] = Field(default_factory=list)
    updates: ChallengeChanges | None = None
    sub_challenge_updates: list[SubChallengeUpdateSuggestion] = Field(default_factory=list)
    new_sub_challenges: list[NewChallengeSuggestion] = Field(default_factory=list)
    agent_metadata: AgentMetadata | None = None
    raw_response: str | None = None
    errors: list[str] | None = None


class ChallengeBuilderReport(CamelModel):
    """Everything one builder run produced."""

    challenge_suggestions: list[UpdateSuggestion] = Field(default_factory=list)
    new_challenge_suggestions: list[NewChallengeSuggestion] = Field(default_factory=list)
    errors: list[ExecutionError] | None = None
    plan_summary: str | None = None
    global_recommendations: str | None = None
    warnings: list[PlanWarning] = Field(default_factory=list)


def normalise_status(value: str | None) -> str | None:
    """Map a status to one of CHALLENGE_STATUS_VALUES, or None."""
    if not value:
        return None
    candidate = value.strip().lower().replace(" ", "_").replace("-", "_")
    return candidate if candidate in CHALLENGE_STATUS_VALUES else None


def normalise_impact(value: str | None) -> Impact | None:
    """Map an impact to one of IMPACT_LEVELS, or None."""
    if not value:
        return None
    candidate = value.strip().lower()
    return candidate if candidate in IMPACT_LEVELS else None  # type: ignore[return-value]


def resolve_owners(
    suggestions: list[OwnerSuggestion] | None,
    roster: list[OwnerOption],
) -> list[ResolvedOwner]:
    """
    Resolve owner suggestions by id, then by case-insensitive name.

    Unresolved suggestions are kept with resolved=False and id set to the
    suggested id (or the name when no id was given).
    """
    by_id = {owner.id: owner for owner in roster}
    by_name = {owner.name.strip().lower(): owner for owner in reversed(roster)}

    resolved: list[ResolvedOwner] = []
    seen: set[str] = set()
    for suggestion in suggestions or []:
        match = by_id.get(suggestion.id) if suggestion.id else None
        if match is None:
            match = by_name.get(suggestion.name.strip().lower())

        if match is not None:
            owner = ResolvedOwner(
                id=match.id,
                name=match.name,
                role=match.role or suggestion.role,
                resolved=True,
            )
        else:
            owner = ResolvedOwner(
                id=suggestion.id or suggestion.name,
                name=suggestion.name,
                role=suggestion.role,
                resolved=False,
            )

        if owner.id in seen:
            continue
        seen.add(owner.id)
        resolved.append(owner)
    return resolved


def map_foundation_insights(
    insights: list[FoundationInsight] | None,
    context: ProjectContext,
) -> list[FoundationEvidence]:
    """Fill missing titles from the evidence lookup, falling back to the id."""
    mapped = []
    for insight in insights or []:
        title = insight.title
        if not title:
            evidence = context.evidence.get(insight.insight_id)
            title = evidence.title if evidence else insight.insight_id
        mapped.append(
            FoundationEvidence(
                insight_id=insight.insight_id,
                title=title,
                reason=insight.reason,
                priority=insight.priority,
            )
        )
    return mapped


def _agent_metadata(invocation: AgentInvocation) -> AgentMetadata:
    return AgentMetadata(
        log_id=invocation.log_id,
        agent_id=invocation.agent_id,
        model_id=invocation.model_id,
    )


def _map_new_challenge(
    item: SubChallengeCreate,
    *,
    reference_id: str | None,
    parent_id: str | None,
    default_impact: Impact | None,
    summary: str | None,
    context: ProjectContext,
    metadata: AgentMetadata | None = None,
) -> NewChallengeSuggestion:
    return NewChallengeSuggestion(
        reference_id=item.reference_id or reference_id,
        parent_id=item.parent_id or parent_id,
        title=item.title,
        description=item.description,
        status=normalise_status(item.status),
        impact=normalise_impact(item.impact) or default_impact,
        owners=resolve_owners(item.owners, context.owners),
        summary=item.summary or summary,
        foundation_insights=map_foundation_insights(item.foundation_insights, context),
        agent_metadata=metadata,
    )


def map_detailed_update(
    response: DetailedUpdate,
    directive: PlanUpdate,
    challenge: ChallengeNode,
    context: ProjectContext,
    invocation: AgentInvocation,
) -> UpdateSuggestion:
    """
    Map an updater answer to an UpdateSuggestion.

    The suggestion always targets the directive's challenge; the summary falls
    back to the directive reason and new sub-challenges default their parent
    to the updated challenge.
    """
    if response.challenge_id and response.challenge_id != challenge.id:
        logger.debug(
            f"Updater answered for {response.challenge_id}, expected {challenge.id}; using {challenge.id}"
        )

    changes = None
    if response.updates is not None:
        block = response.updates
        changes = ChallengeChanges(
            title=block.title,
            description=block.description,
            status=normalise_status(block.status),
            impact=normalise_impact(block.impact),
            owners=resolve_owners(block.owners, context.owners) if block.owners is not None else None,
        )

    sub_block = response.sub_challenges
    sub_updates = [
        SubChallengeUpdateSuggestion(
            id=item.id,
            title=item.title,
            description=item.description,
            status=normalise_status(item.status),
            impact=normalise_impact(item.impact),
            summary=item.summary,
        )
        for item in (sub_block.update if sub_block and sub_block.update else [])
    ]
    new_subs = [
        _map_new_challenge(
            item,
            reference_id=None,
            parent_id=challenge.id,
            default_impact=None,
            summary=None,
            context=context,
        )
        for item in (sub_block.create if sub_block and sub_block.create else [])
    ]

    return UpdateSuggestion(
        challenge_id=challenge.id,
        challenge_title=challenge.title,
        summary=response.summary or directive.reason,
        foundation_insights=map_foundation_insights(response.foundation_insights, context),
        updates=changes,
        sub_challenge_updates=sub_updates,
        new_sub_challenges=new_subs,
        agent_metadata=_agent_metadata(invocation),
        raw_response=invocation.content,
        errors=list(response.errors) if response.errors else None,
    )


def map_detailed_creation(
    response: DetailedCreation,
    directive: PlanCreation,
    context: ProjectContext,
    invocation: AgentInvocation,
) -> list[NewChallengeSuggestion]:
    """
    Map a creator answer to new-challenge suggestions.

    Reference id, parent id and impact fall back to the directive's; the
    summary falls back to the response summary, then the directive reason.
    """
    metadata = _agent_metadata(invocation)
    suggestions = [
        _map_new_challenge(
            item,
            reference_id=directive.reference_id,
            parent_id=directive.suggested_parent_id,
            default_impact=directive.estimated_impact,
            summary=response.summary or directive.reason,
            context=context,
            metadata=metadata,
        )
        for item in response.new_challenges or []
    ]
    if not suggestions:
        logger.warning(f"Creator returned no challenges for {directive.reference_id}")
    return suggestions


def assemble_report(
    plan: RevisionPlan,
    updates: list[UpdateSuggestion],
    creations: list[NewChallengeSuggestion],
    errors: list[ExecutionError],
    warnings: list[PlanWarning] | None = None,
) -> ChallengeBuilderReport:
    """Combine everything a run produced; errors is None when there were none."""
    return ChallengeBuilderReport(
        challenge_suggestions=list(updates),
        new_challenge_suggestions=list(creations),
        errors=list(errors) or None,
        plan_summary=plan.summary or None,
        global_recommendations=plan.global_recommendations,
        warnings=list(warnings or []),
    )
