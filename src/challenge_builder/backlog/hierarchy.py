"""
Challenge hierarchy built from flat rows with parent pointers.

The hierarchy is an arena of nodes indexed by id plus a separate map of
committed parent edges. Every parent edge is checked for cycles before it is
committed, so traversal never depends on the input being a tree.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .models import (
    IMPACT_LEVELS,
    ChallengeNode,
    ChallengeRow,
    Impact,
    OwnerOption,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HierarchyWarning:
    """A parent edge that was not committed."""

    challenge_id: str
    requested_parent_id: str
    reason: str


def normalize_impact(priority: str | None) -> Impact:
    """Map a stored priority to an impact level, defaulting to medium."""
    if not priority:
        return "medium"
    normalized = priority.strip().lower()
    if normalized in IMPACT_LEVELS:
        return normalized  # type: ignore[return-value]
    return "medium"


def would_create_cycle(
    child_id: str,
    candidate_parent_id: str,
    parent_map: Mapping[str, str | None],
) -> bool:
    """
    Check whether committing child -> candidate_parent closes a cycle.

    Walks the committed parent chain upward from the candidate parent and
    reports a cycle if the child's own id reappears.
    """
    if child_id == candidate_parent_id:
        return True

    current: str | None = candidate_parent_id
    seen: set[str] = set()
    while current:
        if current == child_id:
            return True
        if current in seen:
            # Committed edges are acyclic, this only guards against a corrupt map
            return True
        seen.add(current)
        current = parent_map.get(current)

    return False


@dataclass
class ChallengeHierarchy:
    """Arena of challenge nodes plus committed parent edges."""

    nodes: dict[str, ChallengeNode]
    parent_map: dict[str, str | None]
    order: list[str]
    warnings: list[HierarchyWarning] = field(default_factory=list)

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[ChallengeRow],
        evidence_by_challenge: Mapping[str, list[str]] | None = None,
        owners_by_id: Mapping[str, OwnerOption] | None = None,
    ) -> ChallengeHierarchy:
        """
        Build the hierarchy from flat challenge rows.

        Args:
            rows: Challenge rows in source order
            evidence_by_challenge: Challenge id -> linked evidence ids
            owners_by_id: Owner id -> roster entry, used to resolve assignees

        Returns:
            ChallengeHierarchy with cycle-free parent edges
        """
        evidence_by_challenge = evidence_by_challenge or {}
        owners_by_id = owners_by_id or {}

        rows = list(rows)
        nodes: dict[str, ChallengeNode] = {}
        requested: dict[str, str | None] = {}
        parent_map: dict[str, str | None] = {}
        order: list[str] = []

        for row in rows:
            if row.id in nodes:
                logger.warning(f"Duplicate challenge row ignored: {row.id}")
                continue

            owners: tuple[OwnerOption, ...] = ()
            if row.assigned_to and row.assigned_to in owners_by_id:
                owners = (owners_by_id[row.assigned_to],)

            nodes[row.id] = ChallengeNode(
                id=row.id,
                title=row.name,
                description=row.description or "",
                status=row.status or "open",
                impact=normalize_impact(row.priority),
                owners=owners,
                evidence_ids=tuple(evidence_by_challenge.get(row.id, [])),
            )
            requested[row.id] = row.parent_challenge_id
            parent_map[row.id] = None
            order.append(row.id)

        warnings: list[HierarchyWarning] = []
        children: dict[str, list[str]] = {node_id: [] for node_id in order}

        for node_id in order:
            parent_id = requested[node_id]
            if not parent_id:
                continue

            if parent_id not in nodes:
                logger.debug(f"Challenge {node_id} references unknown parent {parent_id}, kept as root")
                continue

            if would_create_cycle(node_id, parent_id, parent_map):
                warnings.append(
                    HierarchyWarning(
                        challenge_id=node_id,
                        requested_parent_id=parent_id,
                        reason="parent assignment would create a cycle",
                    )
                )
                continue

            parent_map[node_id] = parent_id
            children[parent_id].append(node_id)

        if warnings:
            logger.warning(
                "Detected circular challenge hierarchy, treating affected challenges as roots: "
                + ", ".join(w.challenge_id for w in warnings)
            )

        for node_id, child_ids in children.items():
            if child_ids:
                nodes[node_id] = nodes[node_id].model_copy(update={"child_ids": tuple(child_ids)})

        return cls(nodes=nodes, parent_map=parent_map, order=order, warnings=warnings)

    def get(self, challenge_id: str) -> ChallengeNode | None:
        return self.nodes.get(challenge_id)

    def __contains__(self, challenge_id: object) -> bool:
        return challenge_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def parent_of(self, challenge_id: str) -> str | None:
        return self.parent_map.get(challenge_id)

    def roots(self) -> list[ChallengeNode]:
        """Root nodes in source order."""
        return [self.nodes[node_id] for node_id in self.order if not self.parent_map.get(node_id)]

    def children_of(self, challenge_id: str) -> list[ChallengeNode]:
        node = self.nodes.get(challenge_id)
        if node is None:
            return []
        return [self.nodes[child_id] for child_id in node.child_ids]

    def flatten(self) -> list[ChallengeNode]:
        """
        Depth-first, pre-order listing of every node.

        Each node is visited exactly once regardless of depth.
        """
        visited: set[str] = set()
        result: list[ChallengeNode] = []
        stack = [node.id for node in reversed(self.roots())]

        while stack:
            node_id = stack.pop()
            if node_id in visited:
                continue
            visited.add(node_id)
            node = self.nodes[node_id]
            result.append(node)
            stack.extend(reversed(node.child_ids))

        return result
