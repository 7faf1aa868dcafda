"""Result rendering: JSON-ready dict, Rich console output and markdown report."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from synapse.models import PhaseResult, Query, SynapseResult
from synapse.sources import format_source

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _preview(text: str, words: int = 50) -> str:
    """Return first N words of a text."""
    all_words = text.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def result_to_dict(result: SynapseResult) -> dict:
    """Render the result in its wire shape (camelCase keys)."""
    data = {
        "finalAnswer": {
            "summary": result.final_answer.summary,
            "evidence": result.final_answer.evidence,
            "sources": result.final_answer.sources,
            "checkList": result.final_answer.check_list,
            "content": result.final_answer.content,
        },
        "teams": [
            {
                "name": t.name,
                "provider": t.provider_id,
                "model": t.model_used,
                "score": t.score,
                "strengths": t.strengths,
                "concerns": t.concerns,
            }
            for t in result.teams
        ],
        "sources": [format_source(s) | {"trustScore": s.trust_score or 0} for s in result.sources],
        "metadata": {
            "complexity": result.metadata.complexity.value,
            "totalRounds": result.metadata.total_rounds,
            "processingTimeMs": result.metadata.processing_time_ms,
            "confidenceScore": result.metadata.confidence_score,
            "process": result.metadata.process.value,
            "totalTokensUsed": result.metadata.total_tokens_used,
        },
    }
    if result.judge is not None:
        data["judge"] = {
            "scores": result.judge.scores,
            "bestProvider": result.judge.best_provider_id,
            "reasoning": result.judge.reasoning,
            "fallback": result.judge.fallback,
        }
    return data


def print_phase_summary(phase: PhaseResult) -> None:
    """Print a brief summary of one phase's outputs to the console."""
    console.print(Rule(f"[bold cyan]Phase {phase.phase.number}: {phase.phase.value.title()}[/bold cyan]"))
    for provider, out in phase.per_provider.items():
        body = f"[red]failed ({out.error_kind.value if out.error_kind else 'unknown'})[/red]" if out.failed else _preview(out.text)
        console.print(
            Panel(
                body,
                title=f"[bold]{provider}[/bold] ({out.model})",
                subtitle=f"{out.latency_ms / 1000:.1f}s",
                border_style="dim",
            )
        )


def print_result(result: SynapseResult) -> None:
    """Print the final answer, score cards and sources using Rich."""
    meta = result.metadata
    console.print(Rule("[bold green]Synapse Answer[/bold green]"))
    console.print(
        Text(
            f"Process: {meta.process.value} | Complexity: {meta.complexity.value} | "
            f"Rounds: {meta.total_rounds} | Confidence: {meta.confidence_score} | "
            f"Duration: {meta.processing_time_ms / 1000:.1f}s",
            style="dim",
        )
    )
    console.print(Markdown(result.final_answer.content))

    table = Table(title="Teams")
    table.add_column("Team")
    table.add_column("Model")
    table.add_column("Score", justify="right")
    table.add_column("Concerns")
    for team in result.teams:
        table.add_row(team.name, team.model_used, str(team.score), "; ".join(team.concerns))
    console.print(table)

    if result.sources:
        sources = Table(title="Sources")
        sources.add_column("Trust")
        sources.add_column("URL")
        for source in result.sources:
            view = format_source(source)
            sources.add_row(f"{view['trust_level']} ({source.trust_score or 0})", view["url"])
        console.print(sources)


def save_to_file(
    result: SynapseResult,
    query: Query,
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Save the result as a markdown report.

    Args:
        result: The completed SynapseResult.
        query: The query that produced it.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the query text. Useful for inbox mode.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(query.text)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    meta = result.metadata
    lines: list[str] = [
        f"# Synapse: {query.text[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Process:** {meta.process.value}",
        f"**Complexity:** {meta.complexity.value}",
        f"**Rounds:** {meta.total_rounds}",
        f"**Confidence:** {meta.confidence_score}",
        f"**Duration:** {meta.processing_time_ms / 1000:.1f}s",
        f"**Source:** {query.source}",
        "",
        "---",
        "",
        "## Final Answer",
        "",
        result.final_answer.content,
        "",
        "## Teams",
        "",
    ]

    for team in result.teams:
        lines.append(f"### {team.name} ({team.model_used}): {team.score}")
        lines.append("")
        if team.strengths:
            lines.append("**Strengths:** " + "; ".join(team.strengths))
        if team.concerns:
            lines.append("**Concerns:** " + "; ".join(team.concerns))
        lines.append("")

    if result.sources:
        lines += ["## Sources", ""]
        for source in result.sources:
            view = format_source(source)
            lines.append(f"- [{view['trust_level']}] {source.url}")
        lines.append("")

    for phase in result.phases:
        lines.append(f"## Phase {phase.phase.number}: {phase.phase.value.title()}")
        lines.append("")
        for provider, out in phase.per_provider.items():
            lines.append(f"### {provider} ({out.model})")
            lines.append("")
            if out.failed:
                lines.append(f"*Failed: {out.error_kind.value if out.error_kind else 'unknown'}*")
            else:
                lines.append(out.text)
                lines.append("")
                lines.append(
                    f"*Latency: {out.latency_ms / 1000:.2f}s"
                    + (f" | Tokens: {out.token_usage.total_tokens}" if out.token_usage else "")
                    + "*"
                )
            lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Result saved to: %s", filepath)
    return filepath
