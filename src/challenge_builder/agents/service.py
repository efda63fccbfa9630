"""
Template-based agent invocation service.

Resolves an agent slug to its AgentDefinition, renders the system and user
prompts with the call's variables and sends them through a ModelClient.
Every interaction gets a fresh log id and is logged with its duration.
"""

import logging
import time
import uuid
from typing import Any

from .prompts import DEFAULT_AGENTS, AgentDefinition, render_template
from .protocol import AgentInvocation, ModelClient

logger = logging.getLogger(__name__)


class UnknownAgentError(LookupError):
    """Raised when no agent definition is registered under a slug."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Agent not found: {slug}")


class TemplateAgentService:
    """AgentInvoker backed by registered prompt templates and one model client."""

    def __init__(
        self,
        client: ModelClient,
        definitions: dict[str, AgentDefinition] | None = None,
        default_temperature: float | None = None,
        default_max_output_tokens: int | None = None,
    ):
        """
        Initialize the service.

        Args:
            client: Transport used for every agent
            definitions: Agent definitions by slug (defaults to the built-in agents)
            default_temperature: Used when neither the call nor the agent sets one
            default_max_output_tokens: Used when neither the call nor the agent sets one
        """
        self.client = client
        self.definitions: dict[str, AgentDefinition] = dict(
            DEFAULT_AGENTS if definitions is None else definitions
        )
        self.default_temperature = default_temperature
        self.default_max_output_tokens = default_max_output_tokens

    def register(self, definition: AgentDefinition) -> None:
        """Add or replace an agent definition."""
        self.definitions[definition.slug] = definition

    def get_definition(self, slug: str) -> AgentDefinition:
        definition = self.definitions.get(slug)
        if definition is None:
            raise UnknownAgentError(slug)
        return definition

    async def invoke(
        self,
        agent_slug: str,
        interaction_type: str,
        variables: dict[str, Any],
        *,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> AgentInvocation:
        definition = self.get_definition(agent_slug)

        missing = [name for name in definition.available_variables if name not in variables]
        if missing:
            logger.debug(f"Agent {agent_slug} called without variables: {', '.join(missing)}")

        system_prompt = render_template(definition.system_prompt, variables)
        user_prompt = render_template(definition.user_prompt, variables)

        effective_temperature = next(
            (t for t in (temperature, definition.temperature, self.default_temperature) if t is not None),
            None,
        )
        effective_max_tokens = next(
            (
                m
                for m in (
                    max_output_tokens,
                    definition.max_output_tokens,
                    self.default_max_output_tokens,
                )
                if m is not None
            ),
            None,
        )

        log_id = uuid.uuid4().hex
        started = time.monotonic()
        try:
            completion = await self.client.complete(
                system_prompt,
                user_prompt,
                temperature=effective_temperature,
                max_output_tokens=effective_max_tokens,
            )
        except Exception as e:
            duration = time.monotonic() - started
            logger.warning(
                f"Agent {agent_slug} ({interaction_type}) failed after {duration:.1f}s "
                f"[log {log_id}]: {e}"
            )
            raise

        duration = time.monotonic() - started
        logger.info(
            f"Agent {agent_slug} ({interaction_type}) answered in {duration:.1f}s "
            f"[log {log_id}, {completion.input_tokens} in / {completion.output_tokens} out]"
        )

        return AgentInvocation(
            content=completion.text,
            log_id=log_id,
            agent_id=definition.slug,
            model_id=completion.model,
            interaction_type=interaction_type,
            duration_seconds=duration,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
            cost_usd=completion.cost_usd,
            variables={k: "" if v is None else str(v) for k, v in variables.items()},
        )
