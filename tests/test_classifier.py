"""Tests for synapse/classifier.py."""

import json

import pytest

from synapse.classifier import (
    AI_CONFIDENCE_CAP,
    Judgement,
    QueryClassifier,
    combine,
    default_persona,
    heuristic_classification,
    parse_ai_classification,
    select_model_plan,
)
from synapse.models import Complexity, ErrorKind, Length, Level, Persona, Query, Tone, UserContext
from synapse.providers.base import ProviderError
from synapse.resilience import CallBudget
from tests.conftest import MockProvider

PLANS = {
    "standard": {"openai": "gpt-small", "gemini": "flash"},
    "advanced": {"openai": "gpt-big"},
}
DEFAULTS = {"openai": "gpt-default", "gemini": "gemini-default"}


def _ai_reply(complexity: str, confidence: float, **extra) -> str:
    return json.dumps({"complexity": complexity, "confidence": confidence, "reasoning": "because", **extra})


def _classifier(prompts, provider=None) -> QueryClassifier:
    return QueryClassifier(
        prompts=prompts,
        model_plans=PLANS,
        default_models=DEFAULTS,
        provider=provider,
        budget=CallBudget(timeout_sec=1.0, max_retries=0),
    )


# --- heuristic ---

def test_heuristic_short_plain_question_is_standard():
    result = heuristic_classification("What is the capital of France?")
    assert result.complexity is Complexity.STANDARD
    assert result.confidence == 0.6


def test_heuristic_two_standard_terms():
    result = heuristic_classification("What is a lemon and where does it grow?")
    assert result.complexity is Complexity.STANDARD
    assert result.confidence == 0.8


def test_heuristic_one_advanced_term_without_standard_terms():
    result = heuristic_classification("Compare sorting algorithm choices")
    assert result.complexity is Complexity.ADVANCED
    assert result.confidence == 0.7


def test_heuristic_three_advanced_terms():
    result = heuristic_classification("research methodology and framework for this")
    assert result.complexity is Complexity.ADVANCED
    assert result.confidence == 0.8


def test_heuristic_long_korean_query_is_advanced():
    text = ("분산 시스템의 아키텍처를 설계할 때 고려해야 할 사항을 알려주세요. " * 10)[:250]
    assert len(text) == 250
    result = heuristic_classification(text)
    assert result.complexity is Complexity.ADVANCED
    assert result.confidence == 0.8


def test_heuristic_time_estimate_is_clamped():
    assert heuristic_classification("hi").estimated_time_sec == 8.0
    assert heuristic_classification("x" * 1000).estimated_time_sec == 45.0


def test_heuristic_english_terms_match_whole_words():
    # "whole" is not "who"
    result = heuristic_classification("Describe the whole system architecture")
    assert result.complexity is Complexity.ADVANCED
    assert result.confidence == 0.7


def test_heuristic_korean_terms_match_inside_words():
    result = heuristic_classification("시스템 아키텍처를 알려줘")
    assert result.complexity is Complexity.ADVANCED


# --- AI reply parsing ---

def test_parse_ai_classification_full_reply():
    reply = "Result:\n" + _ai_reply(
        "ADVANCED", 0.9, estimatedProcessingTime=30,
        suggestedPersona={"level": "expert", "tone": "academic", "length": "comprehensive"},
    )
    judgement = parse_ai_classification(reply)
    assert judgement.complexity is Complexity.ADVANCED
    assert judgement.confidence == 0.9
    assert judgement.estimated_time_sec == 30.0
    assert judgement.persona == Persona(Level.EXPERT, Tone.ACADEMIC, Length.COMPREHENSIVE)


def test_parse_ai_classification_caps_confidence():
    assert parse_ai_classification(_ai_reply("standard", 1.0)).confidence == AI_CONFIDENCE_CAP


def test_parse_ai_classification_bad_persona_is_dropped():
    reply = _ai_reply("standard", 0.7, suggestedPersona={"level": "wizard"})
    assert parse_ai_classification(reply).persona is None


def test_parse_ai_classification_non_finite_numbers_are_ignored():
    judgement = parse_ai_classification(
        '{"complexity": "advanced", "confidence": NaN, "estimatedProcessingTime": Infinity}'
    )
    assert judgement.complexity is Complexity.ADVANCED
    assert judgement.confidence == 0.6
    assert judgement.estimated_time_sec is None


@pytest.mark.parametrize("reply", ["no json at all", '{"complexity": "medium"}', '{"confidence": 0.9}'])
def test_parse_ai_classification_unusable(reply):
    assert parse_ai_classification(reply) is None


# --- combination ---

def test_combine_agreement_takes_max_confidence():
    h = Judgement(Complexity.STANDARD, 0.6, "h")
    a = Judgement(Complexity.STANDARD, 0.9, "a")
    assert combine(h, a) == (Complexity.STANDARD, 0.9)


def test_combine_disagreement_takes_min_confidence_and_ai_complexity():
    h = Judgement(Complexity.ADVANCED, 0.8, "h")
    a = Judgement(Complexity.STANDARD, 0.9, "a")
    assert combine(h, a) == (Complexity.STANDARD, 0.8)


def test_combine_without_ai_uses_heuristic():
    h = Judgement(Complexity.ADVANCED, 0.7, "h")
    assert combine(h, None) == (Complexity.ADVANCED, 0.7)


# --- plan and persona ---

def test_select_model_plan_uses_tier_and_defaults():
    assert select_model_plan(Complexity.ADVANCED, PLANS, DEFAULTS) == {
        "openai": "gpt-big",
        "gemini": "gemini-default",
    }


def test_select_model_plan_only_active_providers():
    plan = select_model_plan(Complexity.STANDARD, PLANS, {"gemini": "g"})
    assert plan == {"gemini": "flash"}


def test_default_persona_by_tier():
    assert default_persona(Complexity.ADVANCED).level is Level.EXPERT
    assert default_persona(Complexity.STANDARD) == Persona()


# --- QueryClassifier ---

async def test_classify_agreement(sample_prompts_config):
    provider = MockProvider("openai", _ai_reply("standard", 0.9))
    result = await _classifier(sample_prompts_config, provider).classify(Query("What is the capital of France?"))
    assert result.complexity is Complexity.STANDARD
    assert result.confidence == 0.9
    assert result.recommended_model_plan == {"openai": "gpt-small", "gemini": "flash"}
    assert result.ai_error is None


async def test_classify_disagreement(sample_prompts_config):
    provider = MockProvider("openai", _ai_reply("advanced", 0.9))
    result = await _classifier(sample_prompts_config, provider).classify(Query("What is the capital of France?"))
    assert result.complexity is Complexity.ADVANCED
    assert result.confidence == 0.6
    assert result.recommended_model_plan["openai"] == "gpt-big"


async def test_classify_falls_back_on_unparseable_reply(sample_prompts_config):
    provider = MockProvider("openai", "I think this is fairly simple.")
    result = await _classifier(sample_prompts_config, provider).classify(Query("What is the capital of France?"))
    assert result.complexity is Complexity.STANDARD
    assert result.confidence == 0.6
    assert "no usable JSON" in result.ai_error


async def test_classify_falls_back_on_provider_failure(sample_prompts_config):
    provider = MockProvider("openai")
    provider.invoke.side_effect = ProviderError("openai", ErrorKind.UNAUTHORIZED, "401")
    text = "Design a distributed architecture with an optimization strategy"
    result = await _classifier(sample_prompts_config, provider).classify(Query(text))
    assert result.complexity is Complexity.ADVANCED
    assert result.ai_error.startswith("classifier call failed")
    assert result.suggested_persona == default_persona(Complexity.ADVANCED)


async def test_classify_without_provider(sample_prompts_config):
    result = await _classifier(sample_prompts_config).classify(Query("Who wrote Hamlet?"))
    assert result.complexity is Complexity.STANDARD
    assert result.ai_error == "no classifier provider available"


async def test_requested_complexity_overrides(sample_prompts_config):
    provider = MockProvider("openai", _ai_reply("standard", 0.9))
    query = Query("What is 2+2?", requested_complexity=Complexity.ADVANCED)
    result = await _classifier(sample_prompts_config, provider).classify(query)
    assert result.complexity is Complexity.ADVANCED
    assert result.recommended_model_plan["openai"] == "gpt-big"


async def test_user_context_preference_overrides(sample_prompts_config):
    provider = MockProvider("openai", _ai_reply("standard", 0.9))
    query = Query("What is 2+2?", user_context=UserContext(preferred_complexity=Complexity.ADVANCED))
    result = await _classifier(sample_prompts_config, provider).classify(query)
    assert result.complexity is Complexity.ADVANCED
    prompt = provider.invoke.await_args.args[0]
    assert "Preferred complexity: advanced" in prompt


async def test_classify_uses_ai_persona_and_time(sample_prompts_config):
    reply = _ai_reply(
        "standard", 0.8, estimatedProcessingTime=12,
        suggestedPersona={"level": "beginner", "tone": "casual", "length": "brief"},
    )
    provider = MockProvider("openai", reply)
    result = await _classifier(sample_prompts_config, provider).classify(Query("What is rain?"))
    assert result.suggested_persona == Persona(Level.BEGINNER, Tone.CASUAL, Length.BRIEF)
    assert result.estimated_processing_time_sec == 12.0
