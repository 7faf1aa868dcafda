"""Query orchestration: classify, try the fast path, else debate, judge and aggregate."""

import logging
import time
from collections.abc import Callable

from config.config_loader import AppConfig
from synapse.aggregator import aggregate
from synapse.classifier import QueryClassifier
from synapse.confidence import MAX_FAST_QUERY_CHARS, ConfidenceGate, confidence_score
from synapse.errors import ConfigError, InputError, TotalFailureError
from synapse.judge import MetaJudge
from synapse.models import PhaseResult, Query, SynapseResult
from synapse.providers.base import AIProvider
from synapse.resilience import CallBudget
from synapse.rounds import run_rounds
from synapse.sources import SourceValidator, extract_sources

logger = logging.getLogger(__name__)


class Orchestrator:
    """Entry point of the engine. Built once per process with an explicit provider map."""

    def __init__(
        self,
        providers: dict[str, AIProvider],
        config: AppConfig,
        validator: SourceValidator | None = None,
    ) -> None:
        if not providers:
            raise ConfigError("No providers available. Set at least one API key.")
        self._providers = dict(providers)
        self._config = config
        defaults = config.defaults
        self._validator = validator or SourceValidator(
            timeout_sec=defaults.source_timeout_sec,
            max_concurrency=defaults.source_max_concurrency,
        )
        self._labels = {name: p.display_name() for name, p in self._providers.items()}
        self._strengths = {
            name: list(config.models[name].strengths) if name in config.models else []
            for name in self._providers
        }

    @property
    def providers(self) -> dict[str, AIProvider]:
        return dict(self._providers)

    def _pick(self, preferred: str) -> AIProvider:
        """Preferred provider if active, otherwise the first registered one."""
        return self._providers.get(preferred) or next(iter(self._providers.values()))

    def validate_query(self, query: Query) -> Query:
        text = (query.text or "").strip()
        defaults = self._config.defaults
        if len(text) < max(1, defaults.min_query_chars):
            raise InputError("Query is empty or too short")
        if len(text) > defaults.max_query_chars:
            raise InputError(f"Query exceeds {defaults.max_query_chars} characters")
        if text == query.text:
            return query
        return Query(
            text=text,
            requested_complexity=query.requested_complexity,
            persona=query.persona,
            user_context=query.user_context,
            source=query.source,
        )

    async def orchestrate(
        self,
        query: Query,
        on_phase_complete: Callable[[PhaseResult], None] | None = None,
    ) -> SynapseResult:
        """Produce one SynapseResult for a query.

        Raises:
            InputError: query rejected before any provider call.
            TotalFailureError: no provider produced a usable final answer.
        """
        query = self.validate_query(query)
        started_at = time.monotonic()
        defaults = self._config.defaults

        classifier_provider = self._pick(defaults.classifier)
        classifier = QueryClassifier(
            prompts=self._config.prompts,
            model_plans=self._config.model_plans,
            default_models={n: p.model_string() for n, p in self._providers.items()},
            provider=classifier_provider,
            budget=CallBudget(timeout_sec=defaults.classifier_timeout_sec, max_retries=0),
        )
        classification = await classifier.classify(query)
        plan = classification.recommended_model_plan
        persona = query.persona or classification.suggested_persona

        if len(query.text) < MAX_FAST_QUERY_CHARS:
            fast_provider = self._pick(defaults.fast_provider)
            gate = ConfidenceGate(
                provider=fast_provider,
                model=plan.get(fast_provider.name(), fast_provider.model_string()),
                prompts=self._config.prompts,
                validator=self._validator,
                timeout_sec=defaults.fast_path_timeout_sec,
            )
            fast_result = await gate.fast_path(query, classification, persona, started_at)
            if fast_result is not None:
                return fast_result
        else:
            logger.info("Query length %d skips the fast path", len(query.text))

        budget = CallBudget(
            timeout_sec=defaults.phase_timeout_sec,
            max_retries=defaults.max_retries,
            backoff_base_sec=defaults.backoff_base_sec,
        )
        phases = await run_rounds(
            query.text, self._providers, plan, self._config.prompts, persona, budget, on_phase_complete
        )

        final_phase = phases[-1]
        final_answers = final_phase.succeeded()
        if not final_answers:
            raise TotalFailureError("No provider produced a usable final answer")

        combined = "\n\n".join(out.text for out in final_answers.values())
        sources = await self._validator.validate_and_score(extract_sources(combined))

        judge_provider = self._pick(defaults.judge)
        judge = MetaJudge(
            prompts=self._config.prompts,
            rubric=self._config.rubric,
            provider=judge_provider,
            model=plan.get(judge_provider.name(), judge_provider.model_string()),
            budget=CallBudget(
                timeout_sec=defaults.judge_timeout_sec,
                max_retries=1,
                backoff_base_sec=defaults.backoff_base_sec,
            ),
        )
        verdict = await judge.judge(final_phase, query.text, self._labels)
        best_text = final_phase.per_provider[verdict.best_provider_id].text

        return aggregate(
            classification=classification,
            phases=phases,
            verdict=verdict,
            sources=sources,
            labels=self._labels,
            strengths=self._strengths,
            confidence_score=confidence_score(best_text),
            started_at=started_at,
        )
