"""
Base utilities shared across model clients.

Provides:
- AgentAuthenticationError
- Cost calculation from token usage
"""

import logging

logger = logging.getLogger(__name__)


class AgentAuthenticationError(Exception):
    """Raised when a model client fails due to invalid or missing API key."""

    def __init__(self, provider: str, api_key_env: str):
        self.provider = provider
        self.api_key_env = api_key_env
        super().__init__(
            f"{provider} authentication failed. "
            f"Check that {api_key_env} is set to a valid API key."
        )


class BaseClient:
    """Base class with shared client utilities."""

    # Model pricing (per 1M tokens)
    PRICING = {
        "claude-opus-4-20250514": {"input": 15.0, "output": 75.0},
        "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
        "claude-3-5-haiku-20241022": {"input": 0.8, "output": 4.0},
        "default": {"input": 1.0, "output": 3.0},
    }

    def __init__(self, model: str, api_key: str | None = None, timeout: float = 120):
        """
        Initialize base client.

        Args:
            model: Model identifier
            api_key: API key for authentication
            timeout: Request timeout in seconds
        """
        self.model = model
        self.api_key = api_key
        self.timeout = timeout

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        """
        Calculate API cost based on token usage.

        Returns:
            Cost in USD
        """
        pricing = self.PRICING.get(self.model, self.PRICING["default"])

        input_cost = (input_tokens / 1_000_000) * pricing["input"]
        output_cost = (output_tokens / 1_000_000) * pricing["output"]

        total_cost = input_cost + output_cost
        logger.debug(
            f"Cost calculation: {input_tokens:,} input + {output_tokens:,} output = ${total_cost:.6f}"
        )
        return total_cost
