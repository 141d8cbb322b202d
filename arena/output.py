"""Rich console rendering for debate rounds, summaries and problems."""

import logging
from collections.abc import Sequence

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from arena.citations import Citation
from arena.models import Debate, Position, Round, RoundType, Statement

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_BORDERS = {
    Position.AFFIRMATIVE: "green",
    Position.NEGATIVE: "red",
}


def _preview(content: str, words: int = 80) -> str:
    """Return the first N words of a statement."""
    all_words = content.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def _statement_panel(statement: Statement, full: bool) -> Panel:
    body = Markdown(statement.content) if full else Text(_preview(statement.content))
    return Panel(
        body,
        title=f"[bold]{statement.position.name.title()}[/bold] ({statement.model})",
        subtitle=f"{statement.word_count} words",
        border_style=_BORDERS[statement.position],
    )


def print_round(rnd: Round, show_preparation: bool = True, full: bool = False) -> None:
    """Print one round: affirmative panel, then negative panel."""
    if rnd.type is RoundType.PREPARATION and not show_preparation:
        console.print(Rule(f"[dim]{rnd.type.label} (hidden)[/dim]"))
        return
    console.print(Rule(f"[bold cyan]{rnd.type.label}[/bold cyan]"))
    for statement in (rnd.affirmative_statement, rnd.negative_statement):
        if statement is not None:
            console.print(_statement_panel(statement, full))


def print_debate_summary(debate: Debate, citations: Sequence[Citation] = ()) -> None:
    """Print the closing summary table plus any warnings and sources."""
    console.print(Rule("[bold green]Debate Summary[/bold green]"))

    table = Table(show_header=False, box=None)
    table.add_row("Topic", debate.topic)
    table.add_row("Affirmative", f"{debate.affirmative_model.name()} ({debate.affirmative_model.model_string()})")
    table.add_row("Negative", f"{debate.negative_model.name()} ({debate.negative_model.model_string()})")
    table.add_row("State", debate.state.value)
    table.add_row("Rounds", str(len(debate.rounds)))
    if debate.completed_at:
        duration = (debate.completed_at - debate.created_at).total_seconds()
        table.add_row("Duration", f"{duration:.1f}s")
    console.print(table)

    print_warnings(debate)

    if citations:
        console.print(Rule("[bold]Sources[/bold]"))
        for i, citation in enumerate(citations, start=1):
            console.print(f"  {i}. {citation.format()} [dim]({citation.model}, {citation.round.value})[/dim]")


def print_warnings(debate: Debate) -> None:
    for warning in debate.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning.message}")


def print_errors(debate: Debate) -> None:
    for error in debate.errors:
        round_label = error.round.label if error.round else error.state.value
        console.print(f"[bold red]Error:[/bold red] {error.model} failed during {round_label}: {error.message}")
