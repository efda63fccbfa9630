"""
Data models for the challenge backlog.

This module defines two families of structures:
- Raw rows as returned by the context data source (snake_case, lenient)
- Domain entities built from those rows for a single builder run
  (ChallengeNode, EvidenceItem, OwnerOption, ProjectInfo)

Domain entities are frozen: a run never mutates them in place.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Impact = Literal["low", "medium", "high", "critical"]
Priority = Impact
EvidenceCategory = Literal["pain", "gain", "signal", "idea"]

# Ordered from least to most severe
IMPACT_LEVELS: tuple[Impact, ...] = ("low", "medium", "high", "critical")

CHALLENGE_STATUS_VALUES: frozenset[str] = frozenset(
    {"open", "in_progress", "active", "closed", "archived"}
)


def impact_rank(value: str | None) -> int:
    """Position of an impact/priority value in IMPACT_LEVELS (-1 if unknown)."""
    try:
        return IMPACT_LEVELS.index(value)  # type: ignore[arg-type]
    except ValueError:
        return -1


class CamelModel(BaseModel):
    """Base for models serialized to camelCase JSON for agents and API clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Raw rows


class ProjectRow(BaseModel):
    """Project record."""

    id: str
    name: str
    goal: str | None = None
    description: str | None = None
    status: str | None = None
    start_date: date | datetime | None = None
    end_date: date | datetime | None = None


class ChallengeRow(BaseModel):
    """Challenge record with a parent pointer."""

    id: str
    name: str
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    parent_challenge_id: str | None = None
    assigned_to: str | None = None


class InsightRow(BaseModel):
    """Insight (evidence) record captured during a conversation."""

    id: str
    ask_session_id: str | None = None
    summary: str | None = None
    content: str | None = None
    status: str | None = None
    insight_type: str | None = None


class ChallengeInsightRow(BaseModel):
    """Link between a challenge and an insight that evidences it."""

    challenge_id: str
    insight_id: str


class AskRow(BaseModel):
    """Conversation ("ask session") from which insights originate."""

    id: str
    name: str | None = None
    ask_key: str | None = None
    description: str | None = None
    question: str | None = None
    status: str | None = None
    start_date: str | None = None
    end_date: str | None = None


class OwnerRow(BaseModel):
    """Project member who can own challenges."""

    id: str
    full_name: str | None = None
    email: str | None = None
    role: str | None = None


class ProjectRows(BaseModel):
    """Everything the context data source returns for one project."""

    project: ProjectRow
    challenges: list[ChallengeRow] = Field(default_factory=list)
    insights: list[InsightRow] = Field(default_factory=list)
    challenge_insights: list[ChallengeInsightRow] = Field(default_factory=list)
    asks: list[AskRow] = Field(default_factory=list)
    owners: list[OwnerRow] = Field(default_factory=list)


# Domain entities


class OwnerOption(CamelModel):
    """Owner entry from the available-owner roster."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    role: str = ""


class ProjectInfo(CamelModel):
    """Project-level descriptive fields passed to every agent."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    goal: str | None = None
    status: str | None = None
    timeframe: str | None = None


class ChallengeNode(CamelModel):
    """
    A challenge in the backlog hierarchy.

    Children are referenced by id; the owning ChallengeHierarchy resolves them.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    status: str = "open"
    impact: Impact = "medium"
    owners: tuple[OwnerOption, ...] = ()
    evidence_ids: tuple[str, ...] = ()
    child_ids: tuple[str, ...] = ()


class EvidenceItem(CamelModel):
    """An insight as seen by agents."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    category: EvidenceCategory = "signal"
    status: str = "new"
    is_completed: bool = False
    conversation_id: str | None = None
    conversation_title: str | None = None
    challenge_ids: tuple[str, ...] = ()


class ConversationSummary(CamelModel):
    """Compact description of an originating conversation."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    summary: str = ""
    status: str = "active"
    due_date: str | None = None
