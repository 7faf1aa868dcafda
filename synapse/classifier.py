"""Query complexity classification: keyword/length heuristic plus one LLM judgement."""

import logging
import math
import re
from dataclasses import dataclass

from config.config_loader import PromptsConfig
from synapse.models import (
    ClassificationResult,
    Complexity,
    Length,
    Level,
    Persona,
    Query,
    Tone,
)
from synapse.parsing import parse_json_object
from synapse.prompts import build_classification_prompt
from synapse.providers.base import AIProvider
from synapse.resilience import CallBudget, resilient_call

logger = logging.getLogger(__name__)

ADVANCED_INDICATORS = (
    # research
    "논문", "연구", "분석", "메타분석", "체계적 검토", "실험 설계",
    "research", "analysis", "meta-analysis", "systematic review", "experimental design",
    # engineering
    "알고리즘", "아키텍처", "구현", "최적화", "설계", "모델링", "시뮬레이션",
    "algorithm", "architecture", "implementation", "optimization", "modeling", "simulation",
    # planning and reasoning
    "전략", "계획", "예측", "시나리오", "프레임워크", "방법론",
    "strategy", "planning", "prediction", "scenario", "framework", "methodology",
    # multi-step
    "단계별", "과정", "절차", "비교분석",
    "step-by-step", "process", "procedure", "comparative analysis",
    # specialist fields
    "머신러닝", "딥러닝", "블록체인", "양자컴퓨팅", "바이오테크", "나노기술",
    "machine learning", "deep learning", "blockchain", "quantum computing", "biotech", "nanotech",
)

STANDARD_INDICATORS = (
    "뭐야", "무엇", "언제", "어디서", "누구", "정의", "설명",
    "what is", "when", "where", "who", "definition", "explain", "simple",
)

LONG_QUERY_CHARS = 200
AI_CONFIDENCE_CAP = 0.95
_DEFAULT_AI_CONFIDENCE = 0.6


@dataclass(frozen=True)
class Judgement:
    """One pass's opinion on a query."""
    complexity: Complexity
    confidence: float
    reasoning: str
    estimated_time_sec: float | None = None
    persona: Persona | None = None


def _estimate_time(complexity: Complexity, length: int) -> float:
    if complexity is Complexity.ADVANCED:
        return max(15.0, min(45.0, length / 10))
    return max(8.0, min(20.0, length / 15))


def _keyword_hits(lowered: str, keywords: tuple[str, ...]) -> int:
    """Count keywords present; ASCII terms must match whole words, Korean ones match anywhere."""
    hits = 0
    for keyword in keywords:
        if keyword.isascii():
            if re.search(rf"\b{re.escape(keyword)}\b", lowered):
                hits += 1
        elif keyword in lowered:
            hits += 1
    return hits


def heuristic_classification(text: str) -> Judgement:
    lowered = text.lower()
    length = len(text)
    advanced = _keyword_hits(lowered, ADVANCED_INDICATORS)
    standard = _keyword_hits(lowered, STANDARD_INDICATORS)

    complexity, confidence = Complexity.STANDARD, 0.6
    if length > LONG_QUERY_CHARS or advanced >= 3:
        complexity, confidence = Complexity.ADVANCED, 0.8
    elif advanced >= 1 and standard == 0:
        complexity, confidence = Complexity.ADVANCED, 0.7
    elif standard >= 2:
        complexity, confidence = Complexity.STANDARD, 0.8

    return Judgement(
        complexity=complexity,
        confidence=confidence,
        reasoning=f"heuristic: length={length}, advanced_terms={advanced}, standard_terms={standard}",
        estimated_time_sec=_estimate_time(complexity, length),
    )


def _parse_persona(raw: object) -> Persona | None:
    if not isinstance(raw, dict):
        return None
    try:
        return Persona(
            level=Level(str(raw.get("level", "intermediate")).lower()),
            tone=Tone(str(raw.get("tone", "formal")).lower()),
            length=Length(str(raw.get("length", "detailed")).lower()),
        )
    except ValueError:
        return None


def parse_ai_classification(text: str) -> Judgement | None:
    """Turn the classifier model's reply into a Judgement, or None if unusable."""
    data = parse_json_object(text)
    if data is None:
        return None
    try:
        complexity = Complexity(str(data.get("complexity", "")).lower())
    except ValueError:
        return None

    try:
        confidence = float(data.get("confidence", _DEFAULT_AI_CONFIDENCE))
    except (TypeError, ValueError):
        confidence = _DEFAULT_AI_CONFIDENCE
    if not math.isfinite(confidence):
        confidence = _DEFAULT_AI_CONFIDENCE
    confidence = max(0.0, min(confidence, AI_CONFIDENCE_CAP))

    estimated: float | None
    try:
        estimated = float(data["estimatedProcessingTime"])
    except (KeyError, TypeError, ValueError):
        estimated = None
    if estimated is not None and not (math.isfinite(estimated) and estimated > 0):
        estimated = None

    return Judgement(
        complexity=complexity,
        confidence=confidence,
        reasoning=f"ai: {data.get('reasoning', '')}",
        estimated_time_sec=estimated,
        persona=_parse_persona(data.get("suggestedPersona")),
    )


def combine(heuristic: Judgement, ai: Judgement | None) -> tuple[Complexity, float]:
    """Agreement takes the higher confidence; disagreement takes the lower and the AI's complexity."""
    if ai is None:
        return heuristic.complexity, heuristic.confidence
    if ai.complexity == heuristic.complexity:
        return heuristic.complexity, max(heuristic.confidence, ai.confidence)
    return ai.complexity, min(heuristic.confidence, ai.confidence)


def default_persona(complexity: Complexity) -> Persona:
    if complexity is Complexity.ADVANCED:
        return Persona(Level.EXPERT, Tone.FORMAL, Length.COMPREHENSIVE)
    return Persona(Level.INTERMEDIATE, Tone.FORMAL, Length.DETAILED)


def select_model_plan(
    complexity: Complexity,
    model_plans: dict[str, dict[str, str]],
    default_models: dict[str, str],
) -> dict[str, str]:
    """Pure lookup: tier plan restricted to active providers, default model where the plan is silent."""
    plan = model_plans.get(complexity.value, {})
    return {provider: plan.get(provider, default) for provider, default in default_models.items()}


class QueryClassifier:
    """Classifies a query once; never raises."""

    def __init__(
        self,
        prompts: PromptsConfig,
        model_plans: dict[str, dict[str, str]],
        default_models: dict[str, str],
        provider: AIProvider | None = None,
        model: str | None = None,
        budget: CallBudget | None = None,
    ) -> None:
        self._prompts = prompts
        self._model_plans = model_plans
        self._default_models = default_models
        self._provider = provider
        self._model = model or (provider.model_string() if provider else "")
        self._budget = budget or CallBudget(timeout_sec=20.0, max_retries=0)

    async def _ai_pass(self, query: Query) -> tuple[Judgement | None, str | None]:
        if self._provider is None:
            return None, "no classifier provider available"
        prompt = build_classification_prompt(query.text, self._prompts, query.user_context)
        outcome = await resilient_call(self._provider, prompt, self._model, self._budget)
        if not outcome.ok:
            return None, f"classifier call failed: {outcome.error}"
        judgement = parse_ai_classification(outcome.text)
        if judgement is None:
            return None, "classifier reply had no usable JSON object"
        return judgement, None

    async def classify(self, query: Query) -> ClassificationResult:
        heuristic = heuristic_classification(query.text)
        ai, ai_error = await self._ai_pass(query)
        if ai_error:
            logger.warning("AI classification unavailable, using heuristic only: %s", ai_error)

        complexity, confidence = combine(heuristic, ai)

        preferred = query.requested_complexity or (
            query.user_context.preferred_complexity if query.user_context else None
        )
        if preferred is not None:
            complexity = preferred

        estimated = (ai.estimated_time_sec if ai else None) or heuristic.estimated_time_sec
        persona = (ai.persona if ai else None) or default_persona(complexity)
        reasoning = heuristic.reasoning + " | " + (ai.reasoning if ai else f"ai: unavailable ({ai_error})")

        result = ClassificationResult(
            complexity=complexity,
            confidence=confidence,
            reasoning=reasoning,
            estimated_processing_time_sec=estimated or _estimate_time(complexity, len(query.text)),
            suggested_persona=persona,
            recommended_model_plan=select_model_plan(complexity, self._model_plans, self._default_models),
            ai_error=ai_error,
        )
        logger.info("Classified as %s (confidence %.2f)", result.complexity.value, result.confidence)
        return result
