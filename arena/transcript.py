"""Transcript persistence: JSON snapshots (full and partial) and markdown copies."""

import json
import logging
import re
from collections.abc import Iterable
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from arena.models import Debate, DebateError, DebateWarning, Round, RoundType, Statement

logger = logging.getLogger(__name__)

_DEFAULT_TRANSCRIPTS_DIR = Path("./transcripts")


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _statement_to_dict(statement: Statement | None) -> dict[str, Any] | None:
    if statement is None:
        return None
    return {
        "model": statement.model,
        "position": statement.position.value,
        "content": statement.content,
        "word_count": statement.word_count,
        "generated_at": _iso(statement.generated_at),
    }


def _round_to_dict(rnd: Round) -> dict[str, Any]:
    return {
        "type": rnd.type.value,
        "affirmative_statement": _statement_to_dict(rnd.affirmative_statement),
        "negative_statement": _statement_to_dict(rnd.negative_statement),
        "timestamp": _iso(rnd.timestamp),
    }


def _error_to_dict(error: DebateError) -> dict[str, Any]:
    return {
        "model": error.model,
        "message": error.message,
        "state": error.state.value,
        "round": error.round.value if error.round else None,
        "timestamp": _iso(error.timestamp),
    }


def _warning_to_dict(warning: DebateWarning) -> dict[str, Any]:
    return {
        "message": warning.message,
        "state": warning.state.value,
        "timestamp": _iso(warning.timestamp),
    }


def serialize_debate(debate: Debate) -> dict[str, Any]:
    """JSON-ready view of a debate. Providers are reduced to their model names."""
    return {
        "id": debate.id,
        "topic": debate.topic,
        "config": asdict(debate.config),
        "state": debate.state.value,
        "affirmative_model": debate.affirmative_model.model_string(),
        "negative_model": debate.negative_model.model_string(),
        "rounds": [_round_to_dict(r) for r in debate.rounds],
        "errors": [_error_to_dict(e) for e in debate.errors],
        "warnings": [_warning_to_dict(w) for w in debate.warnings],
        "created_at": _iso(debate.created_at),
        "completed_at": _iso(debate.completed_at),
    }


class TranscriptManager:
    """Writes debate transcripts under a single directory."""

    def __init__(self, transcripts_dir: Path = _DEFAULT_TRANSCRIPTS_DIR) -> None:
        self.transcripts_dir = Path(transcripts_dir)

    def generate_transcript(self, debate: Debate) -> dict[str, Any]:
        """Build the transcript document: full debate, display rounds and summary.

        Preparation rounds are left out of ``formatted_rounds`` when the
        debate's config hides preparation; the ``debate`` record keeps them.
        """
        formatted_rounds = []
        for rnd in debate.rounds:
            if rnd.type is RoundType.PREPARATION and not debate.config.show_preparation:
                continue
            formatted_rounds.append({
                "round_type": rnd.type.value,
                "affirmative_content": rnd.affirmative_statement.content if rnd.affirmative_statement else None,
                "negative_content": rnd.negative_statement.content if rnd.negative_statement else None,
                "timestamp": _iso(rnd.timestamp),
            })

        total_duration = 0.0
        if debate.completed_at:
            total_duration = (debate.completed_at - debate.created_at).total_seconds()

        return {
            "debate": serialize_debate(debate),
            "formatted_rounds": formatted_rounds,
            "summary": {
                "topic": debate.topic,
                "models": {
                    "affirmative": debate.affirmative_model.model_string(),
                    "negative": debate.negative_model.model_string(),
                },
                "total_duration_sec": total_duration,
                "round_count": len(debate.rounds),
            },
        }

    def _write(self, filename: str, document: dict[str, Any]) -> Path:
        self.transcripts_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.transcripts_dir / filename
        filepath.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        return filepath

    def save_transcript(self, debate: Debate) -> Path:
        """Save the full transcript as <debate id>.json and return its path."""
        filepath = self._write(f"{debate.id}.json", self.generate_transcript(debate))
        logger.info("Transcript saved to: %s", filepath)
        return filepath

    def save_partial_transcript(self, debate: Debate) -> Path:
        """Save the debate as it stands, flagged partial, as partial-<debate id>.json."""
        document = self.generate_transcript(debate)
        document["partial"] = True
        document["errors"] = [_error_to_dict(e) for e in debate.errors]
        filepath = self._write(f"partial-{debate.id}.json", document)
        logger.info("Partial transcript saved to: %s", filepath)
        return filepath

    def load_transcript(self, debate_id: str, partial: bool = False) -> dict[str, Any]:
        """Read a saved transcript document back.

        Raises:
            FileNotFoundError: If no transcript exists for debate_id.
        """
        filename = f"partial-{debate_id}.json" if partial else f"{debate_id}.json"
        filepath = self.transcripts_dir / filename
        if not filepath.exists():
            raise FileNotFoundError(f"Transcript not found: {filepath}")
        return json.loads(filepath.read_text(encoding="utf-8"))

    def save_markdown(
        self,
        debate: Debate,
        output_dir: Path,
        citations: Iterable[Any] = (),
    ) -> Path:
        """Save a human-readable markdown copy of the debate.

        Args:
            debate: The debate, complete or not.
            output_dir: Directory to save the file in.
            citations: Citation records to list under "Sources".

        Returns:
            Path to the saved file.
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = debate.created_at.strftime("%Y%m%d_%H%M%S")
        filepath = output_dir / f"{timestamp}_{_slug(debate.topic)}.md"

        duration = "n/a"
        if debate.completed_at:
            duration = f"{(debate.completed_at - debate.created_at).total_seconds():.1f}s"

        lines: list[str] = [
            f"# Debate: {debate.topic[:80]}",
            "",
            f"**Date:** {debate.created_at.strftime('%Y-%m-%d %H:%M:%S')}",
            f"**Affirmative:** {debate.affirmative_model.name()} ({debate.affirmative_model.model_string()})",
            f"**Negative:** {debate.negative_model.name()} ({debate.negative_model.model_string()})",
            f"**State:** {debate.state.value}",
            f"**Rounds:** {len(debate.rounds)}",
            f"**Duration:** {duration}",
            "",
            "---",
            "",
        ]

        for rnd in debate.rounds:
            if rnd.type is RoundType.PREPARATION and not debate.config.show_preparation:
                continue
            lines.append(f"## {rnd.type.label}")
            lines.append("")
            for statement in (rnd.affirmative_statement, rnd.negative_statement):
                if statement is None:
                    continue
                lines.append(f"### {statement.position.name.title()} ({statement.model})")
                lines.append("")
                lines.append(statement.content or "*(no content)*")
                lines.append("")
                lines.append(f"*Words: {statement.word_count}*")
                lines.append("")

        if debate.warnings:
            lines += ["## Warnings", ""]
            lines += [f"- {w.message}" for w in debate.warnings]
            lines.append("")

        if debate.errors:
            lines += ["## Errors", ""]
            lines += [f"- [{e.state.value}] {e.model}: {e.message}" for e in debate.errors]
            lines.append("")

        citation_list = list(citations)
        if citation_list:
            lines += ["## Sources", ""]
            lines += [f"{i}. {c.format()}" for i, c in enumerate(citation_list, start=1)]
            lines.append("")

        filepath.write_text("\n".join(lines), encoding="utf-8")
        logger.info("Debate saved to: %s", filepath)
        return filepath
