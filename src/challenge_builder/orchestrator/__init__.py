"""Plan-then-execute orchestration of the challenge builder agents."""

from .core import AgentOverrides, ChallengeBuilder, RunOptions
from .decoder import DecodeFailed, Decoded, decode, decode_or_raise
from .errors import (
    ChallengeBuilderError,
    DecodeFailure,
    ExecutionError,
    InvocationFailure,
    PlanningError,
    ReferentialFailure,
    SchemaFailure,
)
from .execution import ExecutionCoordinator, ExecutionOutcome
from .mapping import ChallengeBuilderReport, assemble_report
from .planning import PlanWarning, RevisionPlanner, validate_plan_references

__all__ = [
    "AgentOverrides",
    "ChallengeBuilder",
    "ChallengeBuilderError",
    "ChallengeBuilderReport",
    "DecodeFailed",
    "DecodeFailure",
    "Decoded",
    "ExecutionCoordinator",
    "ExecutionError",
    "ExecutionOutcome",
    "InvocationFailure",
    "PlanWarning",
    "PlanningError",
    "ReferentialFailure",
    "RevisionPlanner",
    "RunOptions",
    "SchemaFailure",
    "assemble_report",
    "decode",
    "decode_or_raise",
    "validate_plan_references",
]
