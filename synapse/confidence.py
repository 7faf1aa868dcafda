"""Confidence gate: one cheap call, a deterministic score, and an early return for simple queries."""

import logging
import re
import time
from collections.abc import Callable

from config.config_loader import PromptsConfig
from synapse.aggregator import build_fast_result
from synapse.models import ClassificationResult, Persona, Query, SynapseResult
from synapse.prompts import build_fast_prompt
from synapse.providers.base import AIProvider
from synapse.resilience import CallBudget, resilient_call
from synapse.sources import SOURCE_MARKER, SourceValidator, extract_sources

logger = logging.getLogger(__name__)

HEDGING_PHRASES = (
    "아마도", "일 수 있습니다", "추정됩니다", "같습니다",
    "probably", "might", "perhaps",
)

MIN_CONFIDENT_SCORE = 8
MAX_FAST_QUERY_CHARS = 100

_NUMBER = re.compile(r"\d+")


def confidence_score(text: str) -> int:
    """Bounded, explainable confidence heuristic for a single answer."""
    score = min(len(_NUMBER.findall(text)), 5)
    lowered = text.lower()
    score -= 2 * sum(1 for phrase in HEDGING_PHRASES if phrase in lowered)
    if SOURCE_MARKER.search(text):
        score += 5
    if 50 <= len(text.split()) <= 500:
        score += 3
    return score


def passes_gate(score: int, query_text: str) -> bool:
    return score >= MIN_CONFIDENT_SCORE and len(query_text) < MAX_FAST_QUERY_CHARS


class ConfidenceGate:
    def __init__(
        self,
        provider: AIProvider,
        model: str,
        prompts: PromptsConfig,
        validator: SourceValidator,
        timeout_sec: float = 15.0,
        scorer: Callable[[str], int] = confidence_score,
    ) -> None:
        self._provider = provider
        self._model = model
        self._prompts = prompts
        self._validator = validator
        self._budget = CallBudget(timeout_sec=timeout_sec, max_retries=0)
        self._scorer = scorer

    async def fast_path(
        self,
        query: Query,
        classification: ClassificationResult,
        persona: Persona,
        started_at: float | None = None,
    ) -> SynapseResult | None:
        """Return a single-provider result when confident and short, else None."""
        started_at = time.monotonic() if started_at is None else started_at
        prompt = build_fast_prompt(query.text, persona, self._prompts)
        outcome = await resilient_call(self._provider, prompt, self._model, self._budget)
        if not outcome.ok:
            logger.info("Fast path unavailable (%s), escalating", outcome.error)
            return None

        score = self._scorer(outcome.text)
        if not passes_gate(score, query.text):
            logger.info("Fast path declined: confidence %d, query length %d", score, len(query.text))
            return None

        logger.info("Fast path taken: confidence %d via %s", score, self._provider.name())
        sources = await self._validator.validate_and_score(extract_sources(outcome.text))
        return build_fast_result(
            classification=classification,
            provider=self._provider.name(),
            label=self._provider.display_name(),
            model=self._model,
            text=outcome.text,
            confidence_score=score,
            sources=sources,
            started_at=started_at,
            usage=outcome.usage,
        )
