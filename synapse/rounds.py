"""Four-phase debate: Answerer → Critic → Researcher → Synthesizer across all providers."""

import asyncio
import logging
from collections.abc import Callable

from config.config_loader import PromptsConfig
from synapse.models import CallOutcome, PhaseResult, Persona, ProviderPhaseOutput, RoundPhase
from synapse.prompts import build_phase_prompt
from synapse.providers.base import AIProvider
from synapse.resilience import CallBudget, resilient_call

logger = logging.getLogger(__name__)

# Quality gate: warn when fewer than this many providers answer a phase
_MIN_QUALITY_RESPONSES = 3


def _phase_output(outcome: CallOutcome) -> ProviderPhaseOutput:
    return ProviderPhaseOutput(
        text=outcome.text,
        model=outcome.model,
        latency_ms=outcome.latency_ms,
        token_usage=outcome.usage,
        failed=not outcome.ok,
        error_kind=outcome.error_kind,
        error=outcome.error,
    )


async def run_phase(
    phase: RoundPhase,
    query_text: str,
    providers: dict[str, AIProvider],
    plan: dict[str, str],
    prompts: PromptsConfig,
    persona: Persona,
    budget: CallBudget,
    previous: PhaseResult | None = None,
) -> PhaseResult:
    """Fan out one phase to every provider and wait for all outcomes."""
    labels = {name: p.display_name() for name, p in providers.items()}
    prompt = build_phase_prompt(phase, query_text, persona, prompts, previous, labels)
    logger.debug("Phase %s prompt: %d chars", phase.value, len(prompt))

    names = list(providers)
    outcomes = await asyncio.gather(
        *(resilient_call(providers[n], prompt, plan.get(n, providers[n].model_string()), budget) for n in names)
    )
    return PhaseResult(phase=phase, per_provider={n: _phase_output(o) for n, o in zip(names, outcomes)})


async def run_rounds(
    query_text: str,
    providers: dict[str, AIProvider],
    plan: dict[str, str],
    prompts: PromptsConfig,
    persona: Persona,
    budget: CallBudget,
    on_phase_complete: Callable[[PhaseResult], None] | None = None,
) -> list[PhaseResult]:
    """Run all four phases in order.

    Every provider is offered every phase; a failure is recorded, never dropped.
    A phase where everyone failed still hands an empty context to the next one.

    Returns:
        One PhaseResult per RoundPhase, in order.
    """
    phases: list[PhaseResult] = []
    previous: PhaseResult | None = None

    for phase in RoundPhase:
        logger.info("Starting phase %d (%s) with %d providers", phase.number, phase.value, len(providers))

        result = await run_phase(phase, query_text, providers, plan, prompts, persona, budget, previous)
        succeeded = len(result.succeeded())

        if succeeded == 0:
            logger.warning("All providers failed in phase %d (%s), continuing", phase.number, phase.value)
        elif len(providers) >= _MIN_QUALITY_RESPONSES and succeeded < _MIN_QUALITY_RESPONSES:
            logger.warning(
                "WARNING: Only %d/%d providers responded in phase %d. Debate quality is degraded.",
                succeeded,
                len(providers),
                phase.number,
            )

        logger.info("Phase %d complete: %d/%d providers succeeded", phase.number, succeeded, len(providers))

        phases.append(result)
        previous = result
        if on_phase_complete:
            on_phase_complete(result)

    return phases
