"""Tests for config/config_loader.py."""

from pathlib import Path

import pytest
import yaml

from config.config_loader import (
    RUBRIC_CRITERIA,
    AppConfig,
    ModelConfig,
    PromptsConfig,
    RubricConfig,
    load_config,
)


@pytest.fixture
def minimal_settings(tmp_path: Path) -> Path:
    """Write a minimal valid settings.yaml to a temp path."""
    settings = {
        "defaults": {
            "output_dir": "./output",
            "classifier": "claude",
            "judge": "claude",
            "fast_provider": "claude",
            "phase_timeout_sec": 12,
            "max_retries": 1,
            "backoff_base_sec": 0.5,
        },
        "models": {
            "claude": {
                "sdk": "anthropic",
                "model": "claude-sonnet-4-20250514",
                "api_key_env": "TEST_CLAUDE_KEY",
                "max_tokens": 2048,
                "strengths": ["Careful reasoning"],
            }
        },
        "model_plans": {
            "standard": {"claude": "claude-haiku"},
            "advanced": {"claude": "claude-opus"},
        },
        "prompts": {
            "system": "You are on a team.",
            "phases": {
                "answerer": "Round 1",
                "critic": "Round 2",
                "researcher": "Round 3",
                "synthesizer": "Round 4",
            },
            "fast": "Answer directly.",
            "classification": "Classify.",
            "judge": "Judge.",
        },
    }
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(settings), encoding="utf-8")
    return path


def test_load_config_returns_app_config(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config, AppConfig)


def test_load_config_defaults(minimal_settings):
    config = load_config(minimal_settings)
    assert config.defaults.classifier == "claude"
    assert config.defaults.phase_timeout_sec == 12.0
    assert config.defaults.max_retries == 1
    assert config.defaults.backoff_base_sec == 0.5
    assert isinstance(config.defaults.output_dir, Path)


def test_load_config_defaults_fill_missing_values(minimal_settings):
    config = load_config(minimal_settings)
    assert config.defaults.judge_timeout_sec == 30.0
    assert config.defaults.max_query_chars == 2000
    assert config.defaults.source_max_concurrency == 8


def test_load_config_models(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.models["claude"], ModelConfig)
    assert config.models["claude"].model == "claude-sonnet-4-20250514"
    assert config.models["claude"].strengths == ["Careful reasoning"]


def test_model_config_display_name_defaults_to_title(minimal_settings):
    config = load_config(minimal_settings)
    assert config.models["claude"].display_name == "Claude"


def test_model_config_base_url_optional(minimal_settings):
    config = load_config(minimal_settings)
    assert config.models["claude"].base_url is None


def test_load_config_prompts(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.prompts, PromptsConfig)
    assert config.prompts.phases["critic"] == "Round 2"
    assert config.prompts.domains == {}
    assert config.prompts.persona.level == {}


def test_load_config_model_plans(minimal_settings):
    config = load_config(minimal_settings)
    assert config.model_plans["advanced"] == {"claude": "claude-opus"}


def test_load_config_rubric_defaults_when_missing(minimal_settings):
    config = load_config(minimal_settings)
    assert config.rubric.fallback_score == 70
    assert set(config.rubric.weights) == set(RUBRIC_CRITERIA)


def test_load_config_available_providers_with_key(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "sk-test-key")
    config = load_config(minimal_settings)
    assert "claude" in config.available_providers


def test_load_config_no_available_providers_without_key(minimal_settings, monkeypatch):
    monkeypatch.delenv("TEST_CLAUDE_KEY", raising=False)
    config = load_config(minimal_settings)
    assert "claude" not in config.available_providers


def test_load_config_blank_key_is_not_available(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "   ")
    config = load_config(minimal_settings)
    assert config.available_providers == set()


def test_load_config_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config(Path("/nonexistent/settings.yaml"))


def test_shipped_settings_load():
    config = load_config()
    assert set(config.models) == {"openai", "gemini", "claude", "grok"}
    assert config.models["grok"].base_url == "https://api.x.ai/v1"
    assert set(config.model_plans) == {"standard", "advanced"}
    assert set(config.prompts.phases) == {"answerer", "critic", "researcher", "synthesizer"}
    assert "general" in config.prompts.domains


def test_rubric_weights_normalize_to_100():
    rubric = RubricConfig(weights={"accuracy": 2, "evidence": 1, "logic": 1, "practicality": 0})
    weights = rubric.normalized_weights()
    assert weights["accuracy"] == pytest.approx(50.0)
    assert weights["practicality"] == 0.0
    assert sum(weights.values()) == pytest.approx(100.0)


def test_rubric_zero_weights_fall_back_to_equal():
    rubric = RubricConfig(weights={c: 0 for c in RUBRIC_CRITERIA})
    assert rubric.normalized_weights() == {c: 25.0 for c in RUBRIC_CRITERIA}
