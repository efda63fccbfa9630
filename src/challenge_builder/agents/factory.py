"""Build model clients and the agent service from configuration."""

import logging

from ..config import BuilderConfig, ModelConfig
from .adapters.anthropic import AnthropicClient
from .adapters.openrouter import OpenRouterClient
from .prompts import DEFAULT_AGENTS
from .protocol import ModelClient
from .service import TemplateAgentService

logger = logging.getLogger(__name__)


def create_model_client(model_config: ModelConfig) -> ModelClient:
    """
    Create the client for the configured provider.

    Raises:
        ValueError: If the API key is missing or the provider is unsupported
    """
    api_key = model_config.get_api_key()

    if model_config.provider == "anthropic":
        return AnthropicClient(
            model=model_config.model,
            api_key=api_key,
            timeout=model_config.timeout_seconds,
            api_key_env=model_config.api_key_env,
        )
    if model_config.provider == "openrouter":
        return OpenRouterClient(
            model=model_config.model,
            api_key=api_key,
            timeout=model_config.timeout_seconds,
            api_key_env=model_config.api_key_env,
        )
    raise ValueError(f"Unsupported provider: {model_config.provider}")


def create_agent_service(
    config: BuilderConfig,
    client: ModelClient | None = None,
) -> TemplateAgentService:
    """
    Create the agent service with built-in agents plus configured definitions.

    Args:
        config: Builder configuration
        client: Model client to use (created from config.model when omitted)
    """
    definitions = dict(DEFAULT_AGENTS)
    for definition in config.agent_definitions:
        if definition.slug in definitions:
            logger.info(f"Replacing built-in agent {definition.slug}")
        definitions[definition.slug] = definition

    return TemplateAgentService(
        client=client or create_model_client(config.model),
        definitions=definitions,
        default_temperature=config.model.default_temperature,
        default_max_output_tokens=config.model.default_max_output_tokens,
    )
