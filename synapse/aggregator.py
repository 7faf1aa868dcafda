"""Result aggregation: merge the best answer, score cards, sources and metadata."""

import logging
import time

from synapse.models import (
    ClassificationResult,
    FinalAnswer,
    JudgeVerdict,
    Metadata,
    PhaseResult,
    Process,
    Source,
    SynapseResult,
    TeamResult,
    TokenUsage,
)
from synapse.parsing import leading_lines, parse_answer_sections

logger = logging.getLogger(__name__)

DEFAULT_CHECKLIST = [
    "Review the answer against your own situation",
    "Verify the cited sources before acting",
    "Ask a follow-up question for anything still unclear",
]


def build_final_answer(text: str, sources: list[Source]) -> FinalAnswer:
    sections = parse_answer_sections(text)
    return FinalAnswer(
        summary=sections["summary"] or leading_lines(text, 3),
        evidence=sections["evidence"],
        sources=[s.url for s in sources],
        check_list=sections["check_list"] or list(DEFAULT_CHECKLIST),
        content=text,
    )


def total_tokens(phases: list[PhaseResult]) -> int:
    return sum(
        out.token_usage.total_tokens
        for phase in phases
        for out in phase.per_provider.values()
        if out.token_usage
    )


def _failure_concerns(provider: str, phases: list[PhaseResult]) -> list[str]:
    concerns: list[str] = []
    for phase in phases:
        out = phase.per_provider.get(provider)
        if out is not None and out.failed:
            kind = out.error_kind.value if out.error_kind else "unknown"
            concerns.append(f"Failed in {phase.phase.value} phase ({kind})")
    return concerns


def build_teams(
    phases: list[PhaseResult],
    verdict: JudgeVerdict,
    labels: dict[str, str],
    strengths: dict[str, list[str]],
) -> list[TeamResult]:
    """One TeamResult per participant, sorted by score; registration order breaks ties."""
    final_phase = phases[-1]
    teams: list[TeamResult] = []
    for provider, out in final_phase.per_provider.items():
        concerns = list(verdict.concerns.get(provider, [])) + _failure_concerns(provider, phases)
        if out.failed:
            concerns.append("No usable final answer")
        teams.append(
            TeamResult(
                provider_id=provider,
                name=labels.get(provider, provider),
                model_used=out.model,
                score=verdict.scores.get(provider, 0),
                strengths=list(verdict.strengths.get(provider) or strengths.get(provider, [])),
                concerns=concerns,
                final_answer_text="" if out.failed else out.text,
            )
        )
    # sorted() is stable, so equal scores keep registration order
    return sorted(teams, key=lambda t: -t.score)


def aggregate(
    classification: ClassificationResult,
    phases: list[PhaseResult],
    verdict: JudgeVerdict,
    sources: list[Source],
    labels: dict[str, str],
    strengths: dict[str, list[str]],
    confidence_score: int,
    started_at: float,
) -> SynapseResult:
    """Assemble the full-process result. Caller guarantees verdict.best_provider_id is set."""
    best_text = phases[-1].per_provider[verdict.best_provider_id].text
    result = SynapseResult(
        final_answer=build_final_answer(best_text, sources),
        teams=build_teams(phases, verdict, labels, strengths),
        sources=sources,
        metadata=Metadata(
            complexity=classification.complexity,
            total_rounds=len(phases),
            processing_time_ms=int((time.monotonic() - started_at) * 1000),
            confidence_score=confidence_score,
            process=Process.FULL_PROCESS,
            total_tokens_used=total_tokens(phases),
        ),
        classification=classification,
        judge=verdict,
        phases=phases,
    )
    logger.info("Full process complete: best=%s, %d sources", verdict.best_provider_id, len(sources))
    return result


def build_fast_result(
    classification: ClassificationResult,
    provider: str,
    label: str,
    model: str,
    text: str,
    confidence_score: int,
    sources: list[Source],
    started_at: float,
    usage: TokenUsage | None = None,
) -> SynapseResult:
    team = TeamResult(
        provider_id=provider,
        name=label,
        model_used=model,
        score=min(95, 80 + confidence_score),
        strengths=["Fast response", "High confidence"],
        concerns=["Single perspective"],
        final_answer_text=text,
    )
    return SynapseResult(
        final_answer=build_final_answer(text, sources),
        teams=[team],
        sources=sources,
        metadata=Metadata(
            complexity=classification.complexity,
            total_rounds=1,
            processing_time_ms=int((time.monotonic() - started_at) * 1000),
            confidence_score=confidence_score,
            process=Process.FAST_VALIDATION,
            total_tokens_used=usage.total_tokens if usage else 0,
        ),
        classification=classification,
    )
