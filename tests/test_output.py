"""Tests for arena/output.py console rendering."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

from arena.citations import CitationExtractor
from arena.models import DebateError, DebateState, DebateWarning, Position, RoundType
from arena.output import _preview, console, print_debate_summary, print_errors, print_round
from tests.conftest import make_debate, make_round


def test_preview_short_text_unchanged():
    assert _preview("one two three", words=5) == "one two three"


def test_preview_truncates():
    assert _preview("one two three four", words=2) == "one two..."


def test_print_round_shows_both_sides():
    rnd = make_round(RoundType.OPENING, "Cats purr.", "Dogs fetch.")
    with console.capture() as capture:
        print_round(rnd)
    text = capture.get()
    assert "Opening" in text
    assert "Cats purr." in text
    assert "Dogs fetch." in text
    assert "Affirmative" in text
    assert "Negative" in text


def test_print_round_hides_preparation():
    rnd = make_round(RoundType.PREPARATION, "secret notes", "other notes")
    with console.capture() as capture:
        print_round(rnd, show_preparation=False)
    text = capture.get()
    assert "hidden" in text
    assert "secret notes" not in text


def test_print_debate_summary():
    debate = make_debate(
        DebateState.COMPLETED,
        rounds=(make_round(RoundType.OPENING, "Per Adams (1999).", "No."),),
    )
    debate = replace(
        debate,
        completed_at=debate.created_at + timedelta(seconds=12),
        warnings=(DebateWarning("Preparation time limit of 5 seconds reached.", DebateState.PREPARATION, datetime.now(timezone.utc)),),
    )
    citations = CitationExtractor().extract("Adams (1999)", "provider_a", Position.AFFIRMATIVE, RoundType.OPENING)

    with console.capture() as capture:
        print_debate_summary(debate, citations)
    text = capture.get()
    assert debate.topic in text
    assert "12.0s" in text
    assert "Preparation time limit" in text
    assert "Adams (1999)" in text


def test_print_errors():
    debate = replace(
        make_debate(DebateState.OPENING_STATEMENTS),
        errors=(
            DebateError("provider_b", "503", DebateState.REBUTTALS, datetime.now(timezone.utc), RoundType.REBUTTAL),
        ),
    )
    with console.capture() as capture:
        print_errors(debate)
    text = capture.get()
    assert "provider_b failed during Rebuttal: 503" in text
