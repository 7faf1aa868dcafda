"""Click CLI — loads config, builds providers, runs the orchestrator and renders output."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_config
from synapse.errors import ConfigError, InputError, OrchestrationError, TotalFailureError
from synapse.healthcheck import run_health_checks
from synapse.inbox import archive_file, ensure_dirs, query_from_file, scan_inbox
from synapse.models import Complexity, Length, Level, PhaseResult, Persona, Query, Tone
from synapse.orchestrator import Orchestrator
from synapse.output import print_phase_summary, print_result, result_to_dict, save_to_file
from synapse.providers.anthropic import AnthropicProvider
from synapse.providers.base import AIProvider
from synapse.providers.gemini import GeminiProvider
from synapse.providers.openai_provider import OpenAIProvider
from synapse.providers.xai import XAIProvider

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
    "claude": AnthropicProvider,
    "grok": XAIProvider,
}

EXIT_CODES: dict[type[OrchestrationError], int] = {
    InputError: 2,
    ConfigError: 3,
    TotalFailureError: 4,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_all_providers(config: AppConfig) -> dict[str, AIProvider]:
    """Build every credentialed provider, in settings order. Returns dict keyed by name."""
    providers: dict[str, AIProvider] = {}
    for name in config.models:
        if name not in config.available_providers:
            continue
        if name not in PROVIDER_CLASSES:
            logger.warning("Provider '%s' unknown, skipping", name)
            continue
        try:
            providers[name] = PROVIDER_CLASSES[name](config.models[name])
        except Exception as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return providers


def _build_persona(level: str | None, tone: str | None, length: str | None) -> Persona | None:
    """Persona from CLI flags; None when no flag was given."""
    if not (level or tone or length):
        return None
    return Persona(
        level=Level(level or "intermediate"),
        tone=Tone(tone or "formal"),
        length=Length(length or "detailed"),
    )


def _check_and_filter_providers(all_providers: dict[str, AIProvider]) -> dict[str, AIProvider]:
    """Run health checks, print results, and ask user what to do on failures.

    Returns the filtered dict of working providers. Exits if the user
    declines to continue or no providers pass.
    """
    console.print("\n[bold]Checking providers...[/bold]")
    results: dict[str, tuple[bool, str]] = asyncio.run(run_health_checks(all_providers))

    failed_names: list[str] = []
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
            failed_names.append(name)

    if not failed_names:
        console.print()
        return all_providers

    working = {n: p for n, p in all_providers.items() if n not in failed_names}

    if not working:
        console.print("\n[bold red]Error:[/bold red] No providers passed the health check.")
        sys.exit(EXIT_CODES[ConfigError])

    console.print(
        f"\n[yellow]{len(failed_names)} provider(s) failed:[/yellow] {', '.join(failed_names)}"
    )
    console.print(f"Working providers: {', '.join(working)}")

    if not click.confirm("Continue with working providers only?", default=True):
        sys.exit(0)

    console.print()
    return working


async def _run_single(
    orchestrator: Orchestrator,
    query: Query,
    output_dir: Path,
    as_json: bool,
    slug_override: str | None = None,
) -> Path:
    """Orchestrate one query, render it and return the saved report path."""
    if not as_json:
        console.print(
            f"\n[bold cyan]Synapse[/bold cyan] — {len(orchestrator.providers)} providers: "
            f"{', '.join(orchestrator.providers)}"
        )
        console.print(f"Question: [italic]{query.text[:80]}{'...' if len(query.text) > 80 else ''}[/italic]\n")

    completed: list[PhaseResult] = []
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
        disable=as_json,
    ) as progress:

        def on_phase_complete(phase: PhaseResult) -> None:
            completed.append(phase)
            ok = len(phase.succeeded())
            progress.print(
                f"[green]OK[/green] Phase {phase.phase.number} ({phase.phase.value}) "
                f"complete ({ok}/{len(phase.per_provider)} responses)"
            )

        task = progress.add_task("Classifying and answering...", total=None)
        result = await orchestrator.orchestrate(query, on_phase_complete=on_phase_complete)
        progress.update(task, description="Done")

    if as_json:
        click.echo(json.dumps(result_to_dict(result), ensure_ascii=False, indent=2))
    else:
        for phase in completed:
            print_phase_summary(phase)
        print_result(result)

    saved_path = save_to_file(result, query, output_dir, slug_override=slug_override)
    if not as_json:
        console.print(f"\n[dim]Saved to: {saved_path}[/dim]")
    return saved_path


async def _run_inbox(
    orchestrator: Orchestrator,
    inbox_dir: Path,
    archive_dir: Path,
    complexity: Complexity | None,
    persona: Persona | None,
    output_dir: Path,
    as_json: bool,
) -> None:
    """Process all .md files in the inbox folder.

    Precedence for per-file settings: CLI flag > frontmatter > classifier.
    """
    ensure_dirs(inbox_dir, archive_dir)
    files = scan_inbox(inbox_dir)

    if not files:
        click.echo("No files in inbox.")
        return

    for file_path in files:
        try:
            query = query_from_file(file_path, complexity=complexity, persona=persona)
            saved = await _run_single(orchestrator, query, output_dir, as_json, slug_override=file_path.stem)
            archived = archive_file(file_path, archive_dir)
            click.echo(f"Processed: {file_path.name} -> {saved} (archived: {archived.name})")
        except (OrchestrationError, ValueError) as e:
            logger.error("Failed: %s -- %s", file_path.name, e)
            archive_file(file_path, archive_dir, failed=True)


def _fail(exc: OrchestrationError) -> None:
    console.print(f"[bold red]Error ({exc.code}):[/bold red] {exc}")
    sys.exit(EXIT_CODES.get(type(exc), 1))


@click.command()
@click.argument("question", required=False)
@click.option("--file", "question_file", type=click.Path(exists=True), help="Read question from .md file")
@click.option("--complexity", type=click.Choice([c.value for c in Complexity]), default=None,
              help="Force a complexity tier instead of classifying")
@click.option("--level", type=click.Choice([v.value for v in Level]), default=None, help="Reader level")
@click.option("--tone", type=click.Choice([v.value for v in Tone]), default=None, help="Answer tone")
@click.option("--length", type=click.Choice([v.value for v in Length]), default=None, help="Answer length")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--inbox", "use_inbox", is_flag=True, default=False,
              help="Process all .md files in inbox folder")
@click.option("--inbox-dir", "inbox_dir_override", default=None,
              help="Override inbox folder path (default: from config)")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    question: str | None,
    question_file: str | None,
    complexity: str | None,
    level: str | None,
    tone: str | None,
    length: str | None,
    output_path: str | None,
    as_json: bool,
    verbose: bool,
    use_inbox: bool,
    inbox_dir_override: str | None,
    skip_health_check: bool,
) -> None:
    """Synapse -- multi-provider answer orchestration.

    \b
    Examples:
      synapse "What is the capital of France?"
      synapse "Design a multi-region database architecture" --complexity advanced
      synapse --file question.md --level expert --tone academic
      synapse --inbox --inbox-dir ./my_queue
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(EXIT_CODES[ConfigError])

    effective_output = Path(output_path) if output_path else config.defaults.output_dir
    forced_complexity = Complexity(complexity) if complexity else None
    persona = _build_persona(level, tone, length)

    all_providers = _build_all_providers(config)
    if all_providers and not skip_health_check:
        all_providers = _check_and_filter_providers(all_providers)

    try:
        orchestrator = Orchestrator(all_providers, config)
    except ConfigError as exc:
        _fail(exc)
        return

    if use_inbox:
        inbox_dir = Path(inbox_dir_override) if inbox_dir_override else config.defaults.inbox_dir
        asyncio.run(
            _run_inbox(
                orchestrator=orchestrator,
                inbox_dir=inbox_dir,
                archive_dir=config.defaults.archive_dir,
                complexity=forced_complexity,
                persona=persona,
                output_dir=effective_output,
                as_json=as_json,
            )
        )
        return

    if question_file:
        query = query_from_file(Path(question_file), complexity=forced_complexity, persona=persona)
    elif question:
        query = Query(text=question, requested_complexity=forced_complexity, persona=persona)
    else:
        console.print("[bold red]Error:[/bold red] Provide a QUESTION argument, --file, or --inbox.")
        sys.exit(EXIT_CODES[InputError])

    try:
        asyncio.run(_run_single(orchestrator, query, effective_output, as_json))
    except OrchestrationError as exc:
        _fail(exc)


if __name__ == "__main__":
    main()
