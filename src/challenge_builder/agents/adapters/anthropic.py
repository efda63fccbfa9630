"""
Anthropic Claude model client.

Sends one system + user prompt pair per call through the official SDK.
SDK-level retries are disabled: a builder run makes exactly one attempt per
agent call.
"""

import logging

import anthropic

from ..protocol import Completion
from .base import AgentAuthenticationError, BaseClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT_TOKENS = 4096


class AnthropicClient(BaseClient):
    """ModelClient for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        timeout: float = 120,
        api_key_env: str = "ANTHROPIC_API_KEY",
    ):
        super().__init__(model, api_key, timeout)
        if not api_key:
            raise ValueError(f"api_key required (set {api_key_env})")

        self.api_key_env = api_key_env
        self.client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0, timeout=timeout)

    @property
    def name(self) -> str:
        return f"anthropic:{self.model}"

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> Completion:
        max_tokens = max_output_tokens or DEFAULT_MAX_OUTPUT_TOKENS
        kwargs = {}
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            response = await self.client.messages.create(
                model=self.model,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                max_tokens=max_tokens,
                **kwargs,
            )
        except anthropic.AuthenticationError as e:
            raise AgentAuthenticationError(provider="Anthropic", api_key_env=self.api_key_env) from e

        text = "".join(block.text for block in response.content if hasattr(block, "text"))
        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        logger.debug(
            f"[{self.name}] {response.stop_reason}, {input_tokens} in / {output_tokens} out"
        )
        if response.stop_reason == "max_tokens":
            logger.warning(f"[{self.name}] Response truncated at {max_tokens} tokens")

        return Completion(
            text=text,
            model=response.model or self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=self._calculate_cost(input_tokens, output_tokens),
        )
