"""Backlog models, hierarchy and context aggregation."""

from .context import GlobalContext, ProjectContext, ScopedContext
from .hierarchy import ChallengeHierarchy, HierarchyWarning
from .models import ChallengeNode, EvidenceItem, OwnerOption, ProjectInfo, ProjectRows
from .source import ContextDataSource, InMemorySource, JsonDirectorySource, ProjectNotFoundError

__all__ = [
    "ChallengeHierarchy",
    "ChallengeNode",
    "ContextDataSource",
    "EvidenceItem",
    "GlobalContext",
    "HierarchyWarning",
    "InMemorySource",
    "JsonDirectorySource",
    "OwnerOption",
    "ProjectContext",
    "ProjectInfo",
    "ProjectNotFoundError",
    "ProjectRows",
    "ScopedContext",
]
