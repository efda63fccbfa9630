"""
Configuration loading and validation for challenge-builder.

Loads challenge-builder.toml files and validates settings using Pydantic.
Agent slugs can be overridden with environment variables; per-request
overrides win over both.
"""

import os
import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .agents.prompts import CREATOR_SLUG, PLANNER_SLUG, UPDATER_SLUG, AgentDefinition

PLANNER_SLUG_ENV = "CHALLENGE_PLANNER_AGENT_SLUG"
UPDATER_SLUG_ENV = "CHALLENGE_UPDATER_AGENT_SLUG"
CREATOR_SLUG_ENV = "CHALLENGE_CREATOR_AGENT_SLUG"

DEFAULT_CONFIG_FILENAME = "challenge-builder.toml"


class AgentSlugsConfig(BaseModel):
    """Which agent handles each phase."""

    planner: str = Field(default=PLANNER_SLUG, min_length=1)
    updater: str = Field(default=UPDATER_SLUG, min_length=1)
    creator: str = Field(default=CREATOR_SLUG, min_length=1)

    def with_env_overrides(self, environ: dict[str, str] | None = None) -> "AgentSlugsConfig":
        """Apply CHALLENGE_*_AGENT_SLUG environment variables."""
        env = os.environ if environ is None else environ
        overrides = {
            field: env[name].strip()
            for field, name in (
                ("planner", PLANNER_SLUG_ENV),
                ("updater", UPDATER_SLUG_ENV),
                ("creator", CREATOR_SLUG_ENV),
            )
            if env.get(name, "").strip()
        }
        return self.model_copy(update=overrides) if overrides else self


class ModelConfig(BaseModel):
    """Model used for every agent call."""

    provider: Literal["anthropic", "openrouter"] = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    api_key_env: str = "ANTHROPIC_API_KEY"
    timeout_seconds: int = Field(default=120, gt=0)
    default_temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    default_max_output_tokens: int | None = Field(default=4096, gt=0)

    def get_api_key(self) -> str:
        """
        Get the API key from the environment.

        Raises:
            ValueError: If the variable is not set
        """
        api_key = os.environ.get(self.api_key_env)
        if not api_key:
            raise ValueError(
                f"API key not found in environment: {self.api_key_env} "
                f"(required for {self.provider}:{self.model})"
            )
        return api_key


class ExecutionConfig(BaseModel):
    """Fan-out settings."""

    call_timeout_seconds: float = Field(default=180, ge=0)  # 0 disables
    max_concurrency: int = Field(default=0, ge=0)  # 0 = unbounded


class StorageConfig(BaseModel):
    """Storage configuration."""

    data_dir: Path = Path("data")
    results_db_path: Path = Path(".challenge-builder/results.db")


class BuilderConfig(BaseModel):
    """Complete challenge-builder configuration."""

    agents: AgentSlugsConfig = Field(default_factory=AgentSlugsConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    agent_definitions: list[AgentDefinition] = Field(default_factory=list)

    @field_validator("agent_definitions")
    @classmethod
    def validate_unique_slugs(cls, v: list[AgentDefinition]) -> list[AgentDefinition]:
        slugs = [definition.slug for definition in v]
        duplicates = sorted({slug for slug in slugs if slugs.count(slug) > 1})
        if duplicates:
            raise ValueError(f"Duplicate agent definitions: {', '.join(duplicates)}")
        return v

    def resolve_paths(self, base_path: Path) -> "BuilderConfig":
        """Make relative storage paths relative to the config file's directory."""
        storage = self.storage
        data_dir = storage.data_dir if storage.data_dir.is_absolute() else base_path / storage.data_dir
        db_path = (
            storage.results_db_path
            if storage.results_db_path.is_absolute()
            else base_path / storage.results_db_path
        )
        return self.model_copy(
            update={"storage": StorageConfig(data_dir=data_dir, results_db_path=db_path)}
        )


def load_config(config_path: Path, apply_env: bool = True) -> BuilderConfig:
    """
    Load builder configuration from a TOML file.

    Args:
        config_path: Path to challenge-builder.toml
        apply_env: Apply CHALLENGE_*_AGENT_SLUG overrides

    Returns:
        Validated BuilderConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            config_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

    try:
        config = BuilderConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    if apply_env:
        config = config.model_copy(update={"agents": config.agents.with_env_overrides()})

    return config


def create_default_config(
    output_path: Path,
    provider: str = "anthropic",
    model: str | None = None,
) -> None:
    """
    Write a challenge-builder.toml with default settings.

    Args:
        output_path: Where to write the file
        provider: "anthropic" or "openrouter"
        model: Model id (defaults per provider)
    """
    if provider == "openrouter":
        model = model or "anthropic/claude-sonnet-4"
        api_key_env = "OPENROUTER_API_KEY"
    else:
        model = model or "claude-sonnet-4-20250514"
        api_key_env = "ANTHROPIC_API_KEY"

    template = f'''[agents]
planner = "{PLANNER_SLUG}"
updater = "{UPDATER_SLUG}"
creator = "{CREATOR_SLUG}"

[model]
provider = "{provider}"  # anthropic | openrouter
model = "{model}"
api_key_env = "{api_key_env}"
timeout_seconds = 120
default_temperature = 0.2
default_max_output_tokens = 4096

[execution]
call_timeout_seconds = 180  # 0 disables the per-call timeout
max_concurrency = 0  # 0 = all directives in flight at once

[storage]
data_dir = "data"  # <project_id>.json files
results_db_path = ".challenge-builder/results.db"

# Replace a built-in prompt:
# [[agent_definitions]]
# slug = "{PLANNER_SLUG}"
# name = "Challenge Revision Planner"
# system_prompt = "..."
# user_prompt = "..."
'''

    output_path.write_text(template, encoding="utf-8")
