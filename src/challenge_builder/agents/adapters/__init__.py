"""Model clients for supported LLM providers."""

from .anthropic import AnthropicClient
from .base import AgentAuthenticationError
from .openrouter import OpenRouterClient

__all__ = ["AgentAuthenticationError", "AnthropicClient", "OpenRouterClient"]
