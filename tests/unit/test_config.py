from pathlib import Path

import pytest

from challenge_builder.agents.prompts import CREATOR_SLUG, PLANNER_SLUG, UPDATER_SLUG
from challenge_builder.config import (
    CREATOR_SLUG_ENV,
    PLANNER_SLUG_ENV,
    UPDATER_SLUG_ENV,
    AgentSlugsConfig,
    BuilderConfig,
    create_default_config,
    load_config,
)


@pytest.fixture(autouse=True)
def clear_slug_env(monkeypatch):
    for name in (PLANNER_SLUG_ENV, UPDATER_SLUG_ENV, CREATOR_SLUG_ENV):
        monkeypatch.delenv(name, raising=False)


def test_default_config_round_trips(tmp_path):
    path = tmp_path / "challenge-builder.toml"

    create_default_config(path, provider="openrouter")
    config = load_config(path)

    assert config.model.provider == "openrouter"
    assert config.model.api_key_env == "OPENROUTER_API_KEY"
    assert config.agents == AgentSlugsConfig()
    assert config.execution.call_timeout_seconds == 180
    assert config.agent_definitions == []


def test_env_overrides_slugs(tmp_path, monkeypatch):
    path = tmp_path / "challenge-builder.toml"
    create_default_config(path)
    monkeypatch.setenv(PLANNER_SLUG_ENV, "planner-v2")
    monkeypatch.setenv(CREATOR_SLUG_ENV, "   ")

    config = load_config(path)

    assert config.agents.planner == "planner-v2"
    assert config.agents.updater == UPDATER_SLUG
    assert config.agents.creator == CREATOR_SLUG


def test_env_overrides_can_be_skipped(tmp_path, monkeypatch):
    path = tmp_path / "challenge-builder.toml"
    create_default_config(path)
    monkeypatch.setenv(PLANNER_SLUG_ENV, "planner-v2")

    assert load_config(path, apply_env=False).agents.planner == PLANNER_SLUG


def test_with_env_overrides_explicit_mapping():
    slugs = AgentSlugsConfig().with_env_overrides({UPDATER_SLUG_ENV: "updater-x"})

    assert slugs.updater == "updater-x"
    assert slugs.planner == PLANNER_SLUG


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config(Path("/nonexistent/challenge-builder.toml"))


def test_invalid_values(tmp_path):
    path = tmp_path / "challenge-builder.toml"
    path.write_text('[model]\nprovider = "bedrock"\n')

    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(path)


def test_invalid_toml(tmp_path):
    path = tmp_path / "challenge-builder.toml"
    path.write_text("[model\n")

    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(path)


def test_duplicate_agent_definitions_rejected():
    definition = {"slug": "x", "name": "X", "system_prompt": "s", "user_prompt": "u"}

    with pytest.raises(ValueError, match="Duplicate agent definitions: x"):
        BuilderConfig.model_validate({"agent_definitions": [definition, definition]})


def test_resolve_paths(tmp_path):
    config = BuilderConfig().resolve_paths(tmp_path)

    assert config.storage.data_dir == tmp_path / "data"
    assert config.storage.results_db_path == tmp_path / ".challenge-builder" / "results.db"


def test_get_api_key(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")

    assert BuilderConfig().model.get_api_key() == "sk-test"
