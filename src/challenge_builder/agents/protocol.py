"""
Protocol definitions for agent invocation.

An agent is a named prompt configuration ("slug") that a model answers with
free text. The builder only talks to agents through AgentInvoker; how prompts
are rendered and which model answers is the invoker's business.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class Completion:
    """Raw text returned by a model client."""

    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


@dataclass
class AgentInvocation:
    """
    Result of invoking an agent.

    `content` is the model's free-text answer; it still has to be decoded.
    """

    content: str
    log_id: str
    agent_id: str | None = None
    model_id: str | None = None
    interaction_type: str | None = None
    duration_seconds: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    variables: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class ModelClient(Protocol):
    """Protocol for the transport that sends one prompt to a model."""

    @property
    def name(self) -> str:
        """Human-readable client name (e.g., 'anthropic:claude-sonnet-4-20250514')."""
        ...

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> Completion:
        """
        Send a single prompt and return the answer text.

        No retries: one call, one answer or one exception.
        """
        ...


@runtime_checkable
class AgentInvoker(Protocol):
    """Protocol for the agent invocation service."""

    async def invoke(
        self,
        agent_slug: str,
        interaction_type: str,
        variables: dict[str, Any],
        *,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> AgentInvocation:
        """
        Invoke an agent by slug.

        Args:
            agent_slug: Registered agent name
            interaction_type: Label recorded with the interaction log
            variables: Template variables for the agent's prompts
            temperature: Sampling temperature override (0-2)
            max_output_tokens: Output cap override

        Returns:
            AgentInvocation with the raw response text

        Raises:
            Exception: Any failure; callers wrap it into InvocationFailure
        """
        ...
