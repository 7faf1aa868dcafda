"""Meta-judge: rubric scoring of every provider's final-phase answer."""

import logging
import math

from config.config_loader import RUBRIC_CRITERIA, PromptsConfig, RubricConfig
from synapse.models import JudgeVerdict, PhaseResult
from synapse.parsing import parse_json_object
from synapse.prompts import build_judge_prompt
from synapse.providers.base import AIProvider
from synapse.resilience import CallBudget, resilient_call

logger = logging.getLogger(__name__)


def rubric_score(raw: object, weights: dict[str, float]) -> int | None:
    """Weighted 0-100 score from per-criterion 0-10 marks, or a plain 0-100 number."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            return None
        return max(0, min(100, round(raw)))
    if not isinstance(raw, dict):
        return None
    marks: dict[str, float] = {}
    for criterion in RUBRIC_CRITERIA:
        value = raw.get(criterion)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
            marks[criterion] = max(0.0, min(10.0, float(value)))
    if not marks:
        return None
    total = sum(weights[c] * marks.get(c, 0.0) / 10 for c in RUBRIC_CRITERIA)
    return max(0, min(100, round(total)))


def best_provider(scores: dict[str, int], candidates: list[str]) -> str | None:
    """Highest score among candidates; earlier registration wins ties."""
    best: str | None = None
    for provider in candidates:
        if best is None or scores.get(provider, 0) > scores.get(best, 0):
            best = provider
    return best


def _string_lists(raw: object, resolve: dict[str, str]) -> dict[str, list[str]]:
    result: dict[str, list[str]] = {}
    if not isinstance(raw, dict):
        return result
    for key, items in raw.items():
        provider = resolve.get(str(key).strip().lower())
        if provider is None:
            continue
        if isinstance(items, str):
            items = [items]
        if isinstance(items, list):
            result[provider] = [str(i) for i in items if str(i).strip()]
    return result


def parse_verdict(
    text: str,
    providers: list[str],
    candidates: list[str],
    labels: dict[str, str],
    rubric: RubricConfig,
) -> JudgeVerdict | None:
    """Build a verdict from the judge's reply, or None when nothing usable came back."""
    data = parse_json_object(text)
    if data is None or not isinstance(data.get("scores"), dict):
        return None

    resolve = {p.lower(): p for p in candidates}
    resolve.update({labels[p].lower(): p for p in candidates if p in labels})

    weights = rubric.normalized_weights()
    parsed: dict[str, int] = {}
    for key, raw in data["scores"].items():
        provider = resolve.get(str(key).strip().lower())
        score = rubric_score(raw, weights)
        if provider is not None and score is not None:
            parsed[provider] = score
    if not parsed:
        return None

    scores: dict[str, int] = {}
    for provider in providers:
        if provider in candidates:
            scores[provider] = parsed.get(provider, rubric.fallback_score)
        else:
            scores[provider] = 0

    return JudgeVerdict(
        scores=scores,
        best_provider_id=best_provider(scores, candidates),
        reasoning=str(data.get("reasoning", "")),
        strengths=_string_lists(data.get("strengths"), resolve),
        concerns=_string_lists(data.get("concerns"), resolve),
    )


def fallback_verdict(providers: list[str], candidates: list[str], rubric: RubricConfig, error: str) -> JudgeVerdict:
    scores = {p: (rubric.fallback_score if p in candidates else 0) for p in providers}
    return JudgeVerdict(
        scores=scores,
        best_provider_id=best_provider(scores, candidates),
        reasoning="Judge unavailable; default scores applied",
        fallback=True,
        error=error,
    )


class MetaJudge:
    """Scores final answers with one LLM call; falls back to fixed scores, never raises."""

    def __init__(
        self,
        prompts: PromptsConfig,
        rubric: RubricConfig,
        provider: AIProvider | None = None,
        model: str | None = None,
        budget: CallBudget | None = None,
    ) -> None:
        self._prompts = prompts
        self._rubric = rubric
        self._provider = provider
        self._model = model or (provider.model_string() if provider else "")
        self._budget = budget or CallBudget(timeout_sec=30.0, max_retries=1)

    async def judge(self, final_phase: PhaseResult, query_text: str, labels: dict[str, str]) -> JudgeVerdict:
        providers = list(final_phase.per_provider)
        answers = {p: out.text for p, out in final_phase.succeeded().items()}
        candidates = list(answers)

        if not candidates:
            return fallback_verdict(providers, candidates, self._rubric, "no usable final answers")
        if self._provider is None:
            logger.warning("No judge provider available, using default scores")
            return fallback_verdict(providers, candidates, self._rubric, "no judge provider available")

        prompt = build_judge_prompt(query_text, answers, labels, self._prompts)
        outcome = await resilient_call(self._provider, prompt, self._model, self._budget)
        if not outcome.ok:
            logger.warning("Judge call failed, using default scores: %s", outcome.error)
            return fallback_verdict(providers, candidates, self._rubric, f"judge call failed: {outcome.error}")

        verdict = parse_verdict(outcome.text, providers, candidates, labels, self._rubric)
        if verdict is None:
            logger.warning("Judge reply had no usable scores, using default scores")
            return fallback_verdict(providers, candidates, self._rubric, "judge reply had no usable scores")

        logger.info("Judge scores: %s (best: %s)", verdict.scores, verdict.best_provider_id)
        return verdict
