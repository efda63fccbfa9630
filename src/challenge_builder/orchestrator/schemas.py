"""
Response schemas for the planner, updater and creator agents.

Agents answer in camelCase JSON. Scalars are validated strictly: a number
where a string is expected is a schema error, not something to coerce.
Enum fields use Literal types so an unknown priority fails validation.

Sub-challenge blocks use the canonical `update` / `create` keys and creator
responses use `newChallenges`; other key variants are ignored.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, Strict, StringConstraints
from pydantic.alias_generators import to_camel

from ..backlog.models import Impact, Priority

NonEmptyStr = Annotated[str, Strict(), StringConstraints(strip_whitespace=True, min_length=1)]
TrimmedStr = Annotated[str, Strict(), StringConstraints(strip_whitespace=True)]
Count = Annotated[int, Strict(), Field(ge=0)]


class AgentSchema(BaseModel):
    """Base for agent response schemas (camelCase on the wire, extra keys ignored)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# Planner


class PlanUpdate(AgentSchema):
    """Directive to revise an existing challenge."""

    challenge_id: NonEmptyStr
    challenge_title: NonEmptyStr
    reason: NonEmptyStr
    priority: Priority
    estimated_changes: TrimmedStr
    new_insights_count: Count | None = None
    related_insight_ids: list[NonEmptyStr]


class PlanCreation(AgentSchema):
    """Directive to create a new challenge."""

    reference_id: NonEmptyStr
    suggested_title: NonEmptyStr
    reason: NonEmptyStr
    priority: Priority
    suggested_parent_id: NonEmptyStr | None = None
    related_insight_ids: list[NonEmptyStr]
    key_themes: list[TrimmedStr] | None = None
    estimated_impact: Impact


class PlanNoChange(AgentSchema):
    """Record of a challenge that needs no revision."""

    challenge_id: NonEmptyStr
    challenge_title: NonEmptyStr
    reason: TrimmedStr


class RevisionPlan(AgentSchema):
    """Global revision plan produced by the planner."""

    summary: TrimmedStr
    global_recommendations: TrimmedStr | None = None
    updates: list[PlanUpdate]
    creations: list[PlanCreation]
    no_change_needed: list[PlanNoChange]


# Updater / creator


class FoundationInsight(AgentSchema):
    """Evidence used to justify a suggestion."""

    insight_id: NonEmptyStr
    title: NonEmptyStr | None = None
    reason: NonEmptyStr
    priority: Priority


class OwnerSuggestion(AgentSchema):
    id: NonEmptyStr | None = None
    name: NonEmptyStr
    role: TrimmedStr | None = None


class ChallengeUpdateBlock(AgentSchema):
    """Proposed field changes for the challenge under review."""

    title: NonEmptyStr | None = None
    description: TrimmedStr | None = None
    status: NonEmptyStr | None = None
    impact: NonEmptyStr | None = None
    owners: list[OwnerSuggestion] | None = None


class SubChallengeUpdate(AgentSchema):
    id: NonEmptyStr
    title: NonEmptyStr | None = None
    description: TrimmedStr | None = None
    status: NonEmptyStr | None = None
    impact: NonEmptyStr | None = None
    summary: TrimmedStr | None = None


class SubChallengeCreate(AgentSchema):
    reference_id: NonEmptyStr | None = None
    parent_id: NonEmptyStr | None = None
    title: NonEmptyStr
    description: TrimmedStr | None = None
    status: NonEmptyStr | None = None
    impact: NonEmptyStr | None = None
    owners: list[OwnerSuggestion] | None = None
    summary: TrimmedStr | None = None
    foundation_insights: list[FoundationInsight] | None = None


class SubChallengeBlock(AgentSchema):
    update: list[SubChallengeUpdate] | None = None
    create: list[SubChallengeCreate] | None = None


class DetailedUpdate(AgentSchema):
    """Updater response for one challenge."""

    challenge_id: NonEmptyStr | None = None
    summary: TrimmedStr | None = None
    foundation_insights: list[FoundationInsight] | None = None
    updates: ChallengeUpdateBlock | None = None
    sub_challenges: SubChallengeBlock | None = None
    errors: list[TrimmedStr] | None = None


class DetailedCreation(AgentSchema):
    """Creator response for one creation directive."""

    summary: TrimmedStr | None = None
    new_challenges: list[SubChallengeCreate] | None = None
