"""Shared pytest fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    ModelConfig,
    PersonaDirectives,
    PromptsConfig,
    RubricConfig,
)
from synapse.models import (
    ClassificationResult,
    Complexity,
    ErrorKind,
    Persona,
    ProviderReply,
    Query,
    TokenUsage,
)
from synapse.providers.base import AIProvider, ProviderError
from synapse.sources import SourceValidator

PROVIDER_NAMES = ["openai", "gemini", "claude", "grok"]

FACTUAL_ANSWER = (
    "Paris is the capital of France and has been the seat of its national government "
    "for most of the last 1000 years. The city of Paris proper had about 2.1 million "
    "residents in 2023, while the wider Ile-de-France region holds roughly 12 million "
    "people. Paris hosts the National Assembly, the Senate and the official residence "
    "of the President at the Elysee Palace. [Source 1: https://www.insee.fr/en/statistiques] "
    "It is also the country's largest city and economic centre."
)


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        system="You are part of an expert team.",
        phases={
            "answerer": "Round 1: Answerer. Draft an answer.",
            "critic": "Round 2: Critic. Criticise the answers.",
            "researcher": "Round 3: Researcher. Find evidence.",
            "synthesizer": "Round 4: Synthesizer. Write the final answer.",
        },
        fast="Answer the question directly and concisely.",
        classification="You classify questions by complexity. Reply with JSON.",
        judge="You are the meta-judge. Reply with JSON scores.",
        persona=PersonaDirectives(
            level={"beginner": "Explain for a beginner.", "intermediate": "Key points.", "expert": "Expert depth."},
            tone={"casual": "Be casual.", "formal": "Be formal.", "academic": "Be academic."},
            length={"brief": "Be brief.", "detailed": "Be detailed.", "comprehensive": "Be comprehensive."},
        ),
        domains={"general": "Be evidence-based.", "medical": "Do not diagnose."},
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        output_dir=tmp_path / "output",
        classifier="openai",
        judge="openai",
        fast_provider="gemini",
        phase_timeout_sec=5.0,
        max_retries=2,
        backoff_base_sec=0.0,
        fast_path_timeout_sec=5.0,
        classifier_timeout_sec=5.0,
        judge_timeout_sec=5.0,
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    models = {
        name: ModelConfig(
            name=name,
            sdk="test",
            model=f"{name}-default",
            api_key_env=f"{name.upper()}_API_KEY",
            max_tokens=1024,
            strengths=[f"{name} strength"],
        )
        for name in PROVIDER_NAMES
    }
    return AppConfig(
        defaults=sample_defaults_config,
        models=models,
        prompts=sample_prompts_config,
        model_plans={
            "standard": {name: f"{name}-standard" for name in PROVIDER_NAMES},
            "advanced": {name: f"{name}-advanced" for name in PROVIDER_NAMES},
        },
        rubric=RubricConfig(),
        available_providers=set(PROVIDER_NAMES),
    )


@pytest.fixture
def sample_question() -> Query:
    return Query(text="Should we use YAML or JSON for config?")


@pytest.fixture
def sample_classification() -> ClassificationResult:
    return ClassificationResult(
        complexity=Complexity.STANDARD,
        confidence=0.8,
        reasoning="test",
        estimated_processing_time_sec=10.0,
        suggested_persona=Persona(),
        recommended_model_plan={name: f"{name}-standard" for name in PROVIDER_NAMES},
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        self.invoke = AsyncMock(  # type: ignore[assignment]
            return_value=ProviderReply(
                text=response_content,
                model="mock-model",
                usage=TokenUsage(total_tokens=10),
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def invoke(self, prompt: str, model: str) -> ProviderReply:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ProviderReply(text=self._response_content, model=model)


class ScriptedProvider(AIProvider):
    """Provider that answers according to which step of the pipeline is asking."""

    def __init__(
        self,
        provider_name: str,
        answer: str | None = None,
        fast_answer: str = "It depends.",
        classification: str = "not json",
        verdict: str = "not json",
        fail_kind: ErrorKind | None = None,
    ) -> None:
        self._name = provider_name
        self.answer = answer or f"### Summary\n- {provider_name} final point\n### Checklist\n1. {provider_name} step"
        self.fast_answer = fast_answer
        self.classification = classification
        self.verdict = verdict
        self.fail_kind = fail_kind
        self.calls: list[tuple[str, str]] = []

    def name(self) -> str:
        return self._name

    def display_name(self) -> str:
        return self._name.upper()

    def model_string(self) -> str:
        return f"{self._name}-default"

    async def invoke(self, prompt: str, model: str) -> ProviderReply:
        self.calls.append((prompt, model))
        if self.fail_kind is not None:
            raise ProviderError(self._name, self.fail_kind, "scripted failure")
        if "classify questions by complexity" in prompt:
            text = self.classification
        elif "meta-judge" in prompt:
            text = self.verdict
        elif "Answer the question directly" in prompt:
            text = self.fast_answer
        else:
            text = self.answer
        return ProviderReply(text=text, model=model, usage=TokenUsage(total_tokens=7))

    def phase_calls(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if "Round " in c[0] and "meta-judge" not in c[0]]


def judge_reply(scores: dict[str, int], best: str, **extra) -> str:
    """Judge JSON with per-criterion marks set to score/10 each."""
    body = {
        "scores": {p: {c: s / 10 for c in ("accuracy", "evidence", "logic", "practicality")} for p, s in scores.items()},
        "best": best,
        "reasoning": "scripted",
    }
    body.update(extra)
    return "Here is my verdict:\n" + json.dumps(body)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def two_mock_providers() -> list[MockProvider]:
    return [MockProvider("provider_a", "Response from A"), MockProvider("provider_b", "Response from B")]


@pytest.fixture
def ok_validator() -> SourceValidator:
    """Validator whose probes always succeed, without touching the network."""
    transport = httpx.MockTransport(lambda request: httpx.Response(200))
    return SourceValidator(timeout_sec=1.0, max_concurrency=4, transport=transport)
