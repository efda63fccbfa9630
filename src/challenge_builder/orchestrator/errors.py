"""
Error taxonomy for builder runs.

Exceptions:
- DecodeFailure: no parse attempt produced well-formed data
- SchemaFailure: data parsed but did not match the expected shape
- ReferentialFailure: a directive points at an id missing from the context
- InvocationFailure: the remote agent call failed or timed out
- PlanningError: any of the above during planning (aborts the run)

ExecutionError is not an exception: it records one failed fan-out task.
"""

from typing import Literal

from pydantic import Field

from ..backlog.models import CamelModel

FailureKind = Literal["decode", "schema", "referential", "invocation", "unexpected"]
DirectiveKind = Literal["update", "creation"]


class ChallengeBuilderError(Exception):
    """Base class for builder errors."""

    kind: FailureKind = "unexpected"


class DecodeFailure(ChallengeBuilderError):
    """Raised when agent text could not be turned into well-formed data."""

    kind: FailureKind = "decode"

    def __init__(self, context: str, stage: str, message: str, attempts: list[str] | None = None):
        self.context = context
        self.stage = stage
        self.attempts = attempts or []
        super().__init__(f"Invalid JSON response from {context} ({stage}): {message}")


class SchemaFailure(ChallengeBuilderError):
    """Raised when parsed agent data does not match the expected schema."""

    kind: FailureKind = "schema"

    def __init__(self, context: str, message: str, attempt: str | None = None):
        self.context = context
        self.attempt = attempt
        super().__init__(f"Unexpected response shape from {context}: {message}")


class ReferentialFailure(ChallengeBuilderError):
    """Raised when an id referenced by a directive is not in the context."""

    kind: FailureKind = "referential"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} {entity_id} not found")


class InvocationFailure(ChallengeBuilderError):
    """Raised when the agent invocation itself fails."""

    kind: FailureKind = "invocation"

    def __init__(self, agent_slug: str, message: str):
        self.agent_slug = agent_slug
        super().__init__(f"Agent {agent_slug} failed: {message}")


class PlanningError(ChallengeBuilderError):
    """Raised when the planning step cannot produce a plan. Nothing was executed."""

    def __init__(self, cause: ChallengeBuilderError):
        self.cause = cause
        self.kind = cause.kind
        super().__init__(str(cause))


class ExecutionError(CamelModel):
    """A fan-out task that failed; never blocks the rest of the batch."""

    directive_id: str | None = None
    directive_kind: DirectiveKind | None = None
    failure: FailureKind = "unexpected"
    message: str = Field(..., min_length=1)

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        directive_id: str | None,
        directive_kind: DirectiveKind | None,
    ) -> "ExecutionError":
        failure: FailureKind = exc.kind if isinstance(exc, ChallengeBuilderError) else "unexpected"
        message = str(exc) or exc.__class__.__name__
        return cls(
            directive_id=directive_id,
            directive_kind=directive_kind,
            failure=failure,
            message=message,
        )
