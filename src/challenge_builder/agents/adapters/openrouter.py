"""
OpenRouter model client.

OpenRouter exposes many models through one OpenAI-compatible chat completions
API. Content may come back as a plain string or as a list of content parts;
both are flattened to text.
"""

import logging
from typing import Any

import httpx

from ..protocol import Completion
from .base import AgentAuthenticationError, BaseClient

logger = logging.getLogger(__name__)


def _message_text(message: dict[str, Any]) -> str:
    """Flatten an assistant message's content to text."""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
            elif isinstance(part, str):
                parts.append(part)
        return "".join(parts)
    return ""


class OpenRouterClient(BaseClient):
    """ModelClient for the OpenRouter API."""

    base_url = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        model: str,
        api_key: str,
        timeout: float = 120,
        api_key_env: str = "OPENROUTER_API_KEY",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            model: OpenRouter model id (e.g. "anthropic/claude-sonnet-4")
            api_key: API key
            timeout: Request timeout in seconds
            api_key_env: Variable name reported in authentication errors
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        super().__init__(model, api_key, timeout)
        self.api_key_env = api_key_env
        self._transport = transport

    @property
    def name(self) -> str:
        return f"openrouter:{self.model}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": "Challenge Builder",
        }

    def _http_client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    def _raise_for_auth(self, response: httpx.Response) -> None:
        if response.status_code in (401, 403):
            raise AgentAuthenticationError(provider="OpenRouter", api_key_env=self.api_key_env)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> Completion:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_output_tokens is not None:
            payload["max_tokens"] = max_output_tokens

        async with self._http_client(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=payload,
            )

        self._raise_for_auth(response)
        if response.status_code != 200:
            raise RuntimeError(f"OpenRouter API error ({response.status_code}): {response.text}")

        result = response.json()
        if result.get("error"):
            raise RuntimeError(f"OpenRouter API error: {result['error']}")

        choices = result.get("choices") or []
        if not choices:
            raise RuntimeError("OpenRouter returned no choices")

        text = _message_text(choices[0].get("message") or {})
        usage = result.get("usage") or {}
        input_tokens = usage.get("prompt_tokens", 0)
        output_tokens = usage.get("completion_tokens", 0)

        logger.debug(f"[{self.name}] {input_tokens} in / {output_tokens} out")

        return Completion(
            text=text,
            model=result.get("model") or self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=self._calculate_cost(input_tokens, output_tokens),
        )
