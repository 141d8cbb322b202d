"""Click CLI: loads config, builds the two debaters, runs the debate, saves output."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from arena.citations import CitationExtractor, CitationTracker
from arena.healthcheck import run_health_checks
from arena.models import Debate, DebateState
from arena.orchestrator import DebateOrchestrator
from arena.output import print_debate_summary, print_errors, print_round
from arena.providers.anthropic import AnthropicProvider
from arena.providers.base import AIProvider, ProviderError
from arena.providers.gemini import GeminiProvider
from arena.providers.openai_compatible import OpenAICompatibleProvider
from arena.providers.openai_provider import OpenAIProvider
from arena.rounds import ModelGenerationError
from arena.state_machine import DebateStateError, next_state
from arena.topic_file import parse_topic_file
from arena.transcript import TranscriptManager
from config.config_loader import AppConfig, DebateConfig, load_config, resolve_debate_config

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
    "openai_compatible": OpenAICompatibleProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    sys.exit(1)


def _build_provider(config: AppConfig, name: str) -> AIProvider:
    """Instantiate the debater backend configured under ``name``.

    Raises:
        ProviderError: Unknown name, unknown SDK, missing API key, or a
            backend that fails to construct.
    """
    if name not in config.models:
        raise ProviderError(name, f"Unknown provider. Configured: {', '.join(sorted(config.models))}")
    model_cfg = config.models[name]
    if name not in config.available_providers:
        raise ProviderError(name, f"Not available, set {model_cfg.api_key_env} in .env")
    provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
    if provider_cls is None:
        raise ProviderError(name, f"Unsupported sdk '{model_cfg.sdk}'")
    return provider_cls(model_cfg)


def _cli_overrides(
    word_limit: int | None,
    time_limit: float | None,
    preparation_time: float | None,
    show_preparation: bool | None,
) -> dict[str, Any]:
    """Debate settings given on the command line. Unset flags are left out."""
    overrides = {
        "word_limit": word_limit,
        "time_limit": time_limit,
        "preparation_time": preparation_time,
        "show_preparation": show_preparation,
    }
    return {k: v for k, v in overrides.items() if v is not None}


def _read_topic(topic: str | None, topic_file: str | None) -> tuple[str, dict[str, Any]]:
    """Returns (topic, front matter overrides). Exits if neither source is given."""
    if topic_file:
        return parse_topic_file(Path(topic_file))
    if topic:
        return topic, {}
    _fail("Provide a TOPIC argument or --file.")
    return "", {}


def _check_providers(providers: dict[str, AIProvider]) -> None:
    """Run health checks and print results. Asks before continuing past failures."""
    console.print("\n[bold]Checking providers...[/bold]")
    results: dict[str, tuple[bool, str]] = asyncio.run(run_health_checks(providers))

    failed_names: list[str] = []
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
            failed_names.append(name)

    console.print()
    if failed_names and not click.confirm(
        f"{', '.join(failed_names)} failed the health check. Start the debate anyway?",
        default=False,
    ):
        sys.exit(1)


async def _run(
    topic: str,
    debate_config: DebateConfig,
    config: AppConfig,
    affirmative: AIProvider,
    negative: AIProvider,
    output_dir: Path,
) -> int:
    """Run one debate end to end and return the process exit code."""
    transcripts = TranscriptManager(config.defaults.transcripts_dir)
    orchestrator = DebateOrchestrator(config.prompts, transcripts)
    extractor = CitationExtractor()
    tracker = CitationTracker()

    debate = orchestrator.initialize_debate(topic, debate_config, affirmative, negative)

    console.print(f"\n[bold cyan]AI Debate Arena[/bold cyan] [dim]{debate.id}[/dim]")
    console.print(f"Affirmative: [green]{affirmative.name()}[/green] ({affirmative.model_string()})")
    console.print(f"Negative: [red]{negative.name()}[/red] ({negative.model_string()})")
    console.print(f"Topic: [italic]{topic[:80]}{'...' if len(topic) > 80 else ''}[/italic]\n")

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Preparation...", total=None)

            def on_phase_complete(updated: Debate) -> None:
                if updated.state is DebateState.COMPLETED:
                    return
                rnd = updated.rounds[-1]
                tracker.add_all(extractor.extract_round(updated, rnd.type))
                progress.print(f"[green]OK[/green] {rnd.type.label} complete")
                upcoming = next_state(updated.state)
                if upcoming is not None and upcoming.round_type is not None:
                    progress.update(task, description=f"{upcoming.round_type.label}...")

            debate = await orchestrator.run_debate(debate, on_phase_complete)
    except ModelGenerationError as exc:
        if exc.debate is not None:
            print_errors(exc.debate)
        else:
            console.print(f"[bold red]Error:[/bold red] {exc.model}: {exc.message}")
        if exc.transcript_path:
            console.print(f"[dim]Partial transcript saved to: {exc.transcript_path}[/dim]")
        return 1
    except DebateStateError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        return 1

    for rnd in debate.rounds:
        print_round(rnd, show_preparation=debate_config.show_preparation, full=True)

    citations = tracker.all()
    print_debate_summary(debate, citations)

    transcript_path = transcripts.save_transcript(debate)
    markdown_path = transcripts.save_markdown(debate, output_dir, citations)
    console.print(f"\n[dim]Transcript: {transcript_path}[/dim]")
    console.print(f"[dim]Saved to: {markdown_path}[/dim]")
    return 0


@click.command()
@click.argument("topic", required=False)
@click.option("--file", "topic_file", type=click.Path(exists=True), help="Read topic (and settings) from a .md file")
@click.option("--affirmative", default=None, help="Provider arguing for the motion (default: from config)")
@click.option("--negative", default=None, help="Provider arguing against the motion (default: from config)")
@click.option("--word-limit", type=int, default=None, help="Maximum words per response")
@click.option("--time-limit", type=float, default=None, help="Seconds allowed per response")
@click.option("--preparation-time", type=float, default=None, help="Seconds allowed for preparation")
@click.option("--show-preparation/--hide-preparation", default=None,
              help="Include preparation material in output and transcript views")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def main(
    topic: str | None,
    topic_file: str | None,
    affirmative: str | None,
    negative: str | None,
    word_limit: int | None,
    time_limit: float | None,
    preparation_time: float | None,
    show_preparation: bool | None,
    output_path: str | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """AI Debate Arena -- two models argue a motion in a structured debate.

    \b
    Examples:
      python -m arena.cli "Remote work is better than office work"
      python -m arena.cli "Nuclear power is essential" --affirmative gemini --negative claude
      python -m arena.cli --file motion.md --word-limit 300 --hide-preparation
    """
    # Model replies may contain characters the Windows console codepage cannot encode
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
        sys.exit(1)

    topic_text, file_overrides = _read_topic(topic, topic_file)
    if not topic_text.strip():
        _fail("Debate topic is empty.")

    debate_config, _ = resolve_debate_config(
        config.debate,
        file_overrides=file_overrides,
        cli_overrides=_cli_overrides(word_limit, time_limit, preparation_time, show_preparation),
    )

    affirmative_name = affirmative or config.defaults.affirmative
    negative_name = negative or config.defaults.negative

    try:
        providers = {name: _build_provider(config, name) for name in {affirmative_name, negative_name}}
    except ProviderError as exc:
        _fail(str(exc))
        return

    if not skip_health_check:
        _check_providers(providers)

    output_dir = Path(output_path) if output_path else config.defaults.output_dir
    exit_code = asyncio.run(
        _run(
            topic=topic_text,
            debate_config=debate_config,
            config=config,
            affirmative=providers[affirmative_name],
            negative=providers[negative_name],
            output_dir=output_dir,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
