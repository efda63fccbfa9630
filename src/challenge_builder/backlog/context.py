"""
Context aggregation for builder runs.

Turns raw project rows into:
- ProjectContext: the hierarchy, evidence lookup, conversations and owner roster
- GlobalContext: everything the planning agent sees
- ScopedContext: one challenge with its children, evidence and conversations
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime

from pydantic import Field

from .hierarchy import ChallengeHierarchy
from .models import (
    CamelModel,
    ChallengeNode,
    ConversationSummary,
    EvidenceCategory,
    EvidenceItem,
    Impact,
    OwnerOption,
    OwnerRow,
    ProjectInfo,
    ProjectRow,
    ProjectRows,
)

logger = logging.getLogger(__name__)

COMPLETED_INSIGHT_STATUSES = frozenset({"implemented", "archived", "resolved", "closed"})
EVIDENCE_CATEGORIES: frozenset[str] = frozenset({"pain", "gain", "signal", "idea"})


def _short_id(value: str) -> str:
    return str(value)[:8]


def normalize_category(value: str | None) -> EvidenceCategory:
    """Map a stored insight type to an evidence category (fallback: signal)."""
    if not value:
        return "signal"
    normalized = value.strip().lower()
    if normalized in EVIDENCE_CATEGORIES:
        return normalized  # type: ignore[return-value]
    return "signal"


def format_timeframe(
    start: date | datetime | None,
    end: date | datetime | None,
) -> str | None:
    """Render a project timeframe such as 'Jan 2025 – Jun 2025'."""
    start_label = start.strftime("%b %Y") if start else None
    end_label = end.strftime("%b %Y") if end else None
    if start_label and end_label:
        return f"{start_label} – {end_label}"
    return start_label or end_label


def owner_option_from_row(row: OwnerRow) -> OwnerOption:
    name = row.full_name or row.email or "Participant"
    return OwnerOption(id=row.id, name=name, role=row.role or "")


def project_info_from_row(row: ProjectRow) -> ProjectInfo:
    return ProjectInfo(
        id=row.id,
        name=row.name,
        goal=row.goal or row.description,
        status=row.status,
        timeframe=format_timeframe(row.start_date, row.end_date),
    )


# Payloads sent to agents


class ChallengeBrief(CamelModel):
    """Challenge as listed in the global context."""

    id: str
    title: str
    description: str
    status: str
    impact: Impact
    parent_id: str | None = None
    related_insight_count: int = 0


class ChallengeDetail(CamelModel):
    """Challenge as described in a scoped context."""

    id: str
    title: str
    description: str
    status: str
    impact: Impact
    parent_id: str | None = None
    owners: list[OwnerOption] = Field(default_factory=list)


class SubChallengeDetail(CamelModel):
    id: str
    title: str
    description: str
    status: str
    impact: Impact
    owners: list[OwnerOption] = Field(default_factory=list)


class GlobalContext(CamelModel):
    """Project-wide context for the planning agent."""

    project: ProjectInfo
    existing_challenges: list[ChallengeBrief]
    all_insights: list[EvidenceItem]
    all_asks: list[ConversationSummary]
    available_owners: list[OwnerOption]


class ScopedContext(CamelModel):
    """Per-challenge context for the updater agent."""

    project: ProjectInfo
    challenge: ChallengeDetail
    sub_challenges: list[SubChallengeDetail]
    insights: list[EvidenceItem]
    related_asks: list[ConversationSummary]
    available_owners: list[OwnerOption]


def build_conversations(rows: ProjectRows) -> dict[str, ConversationSummary]:
    """Index conversations (ask sessions) by id."""
    conversations: dict[str, ConversationSummary] = {}
    for row in rows.asks:
        title = row.name or row.ask_key or f"ASK {_short_id(row.id)}"
        conversations[row.id] = ConversationSummary(
            id=row.id,
            title=title,
            summary=row.description or row.question or "",
            status=row.status or "active",
            due_date=row.end_date or row.start_date,
        )
    return conversations


def build_evidence_lookup(
    rows: ProjectRows,
    conversations: dict[str, ConversationSummary],
) -> dict[str, EvidenceItem]:
    """
    Build evidence items from insight rows.

    Challenge links come from the challenge-insight link rows. Links that point
    to unknown insights are ignored.
    """
    challenge_ids_by_insight: dict[str, list[str]] = {}
    for link in rows.challenge_insights:
        linked = challenge_ids_by_insight.setdefault(link.insight_id, [])
        if link.challenge_id not in linked:
            linked.append(link.challenge_id)

    lookup: dict[str, EvidenceItem] = {}
    for row in rows.insights:
        if row.id in lookup:
            continue

        if row.summary and row.summary.strip():
            title = row.summary.strip()
        elif row.content:
            title = row.content[:80]
        else:
            title = f"Insight {_short_id(row.id)}"

        conversation = conversations.get(row.ask_session_id) if row.ask_session_id else None
        status = row.status or "new"

        lookup[row.id] = EvidenceItem(
            id=row.id,
            title=title,
            description=row.content or row.summary or "",
            category=normalize_category(row.insight_type),
            status=status,
            is_completed=status.lower() in COMPLETED_INSIGHT_STATUSES,
            conversation_id=row.ask_session_id,
            conversation_title=conversation.title if conversation else None,
            challenge_ids=tuple(challenge_ids_by_insight.get(row.id, [])),
        )

    return lookup


@dataclass
class ProjectContext:
    """Everything a builder run knows about a project, built once per run."""

    project: ProjectInfo
    hierarchy: ChallengeHierarchy
    evidence: dict[str, EvidenceItem]
    conversations: dict[str, ConversationSummary]
    owners: list[OwnerOption]

    @classmethod
    def from_rows(cls, rows: ProjectRows) -> ProjectContext:
        owners = [owner_option_from_row(row) for row in rows.owners]
        owners_by_id = {owner.id: owner for owner in owners}

        conversations = build_conversations(rows)
        evidence = build_evidence_lookup(rows, conversations)

        evidence_by_challenge: dict[str, list[str]] = {}
        for link in rows.challenge_insights:
            if link.insight_id not in evidence:
                continue
            linked = evidence_by_challenge.setdefault(link.challenge_id, [])
            if link.insight_id not in linked:
                linked.append(link.insight_id)

        hierarchy = ChallengeHierarchy.from_rows(
            rows.challenges,
            evidence_by_challenge=evidence_by_challenge,
            owners_by_id=owners_by_id,
        )

        context = cls(
            project=project_info_from_row(rows.project),
            hierarchy=hierarchy,
            evidence=evidence,
            conversations=conversations,
            owners=owners,
        )
        logger.debug(
            f"Built context for project {context.project.id}: "
            f"{len(hierarchy)} challenges, {len(evidence)} insights, "
            f"{len(conversations)} conversations, {len(owners)} owners"
        )
        return context

    def has_challenge(self, challenge_id: str) -> bool:
        return challenge_id in self.hierarchy

    def has_evidence(self, evidence_id: str) -> bool:
        return evidence_id in self.evidence

    def evidence_for(self, evidence_ids: list[str] | tuple[str, ...]) -> list[EvidenceItem]:
        """Resolve evidence ids in order, skipping unknown ids."""
        return [self.evidence[eid] for eid in evidence_ids if eid in self.evidence]

    def build_global_context(self) -> GlobalContext:
        challenges = [
            ChallengeBrief(
                id=node.id,
                title=node.title,
                description=node.description,
                status=node.status,
                impact=node.impact,
                parent_id=self.hierarchy.parent_of(node.id),
                related_insight_count=len(node.evidence_ids),
            )
            for node in self.hierarchy.flatten()
        ]
        return GlobalContext(
            project=self.project,
            existing_challenges=challenges,
            all_insights=list(self.evidence.values()),
            all_asks=list(self.conversations.values()),
            available_owners=list(self.owners),
        )

    def build_scoped_context(self, challenge: ChallengeNode) -> ScopedContext:
        insights = self.evidence_for(challenge.evidence_ids)

        conversation_ids: list[str] = []
        for insight in insights:
            if insight.conversation_id and insight.conversation_id not in conversation_ids:
                conversation_ids.append(insight.conversation_id)

        return ScopedContext(
            project=self.project,
            challenge=ChallengeDetail(
                id=challenge.id,
                title=challenge.title,
                description=challenge.description,
                status=challenge.status,
                impact=challenge.impact,
                parent_id=self.hierarchy.parent_of(challenge.id),
                owners=list(challenge.owners),
            ),
            sub_challenges=[
                SubChallengeDetail(
                    id=child.id,
                    title=child.title,
                    description=child.description,
                    status=child.status,
                    impact=child.impact,
                    owners=list(child.owners),
                )
                for child in self.hierarchy.children_of(challenge.id)
            ],
            insights=insights,
            related_asks=[
                self.conversations[cid] for cid in conversation_ids if cid in self.conversations
            ],
            available_owners=list(self.owners),
        )


def to_agent_json(payload: CamelModel | list[CamelModel]) -> str:
    """Serialize a context payload the way agents receive it (camelCase JSON)."""
    if isinstance(payload, list):
        return json.dumps([item.model_dump(mode="json", by_alias=True) for item in payload])
    return payload.model_dump_json(by_alias=True)
