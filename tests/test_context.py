"""Tests for arena/context.py."""

from arena.context import build_context, format_previous_statements
from arena.models import DebateState, Position, RoundType
from tests.conftest import make_debate, make_round


def _full_history():
    return (
        make_round(RoundType.PREPARATION, "aff notes", "neg notes"),
        make_round(RoundType.OPENING, "A1", "N1"),
        make_round(RoundType.REBUTTAL, "A2", "N2"),
        make_round(RoundType.CROSS_EXAM, "A3", "N3"),
    )


def _contents(context):
    return [s.content for s in context.previous_statements]


def test_opening_sees_nothing():
    debate = make_debate(DebateState.PREPARATION, rounds=_full_history()[:1])
    for position in Position:
        assert build_context(debate, position, RoundType.OPENING).previous_statements == ()


def test_preparation_sees_nothing():
    debate = make_debate()
    ctx = build_context(debate, Position.AFFIRMATIVE, RoundType.PREPARATION)
    assert ctx.previous_statements == ()
    assert ctx.preparation_material is None


def test_rebuttal_sees_only_opponent_opening():
    debate = make_debate(DebateState.OPENING_STATEMENTS, rounds=_full_history()[:2])
    assert _contents(build_context(debate, Position.AFFIRMATIVE, RoundType.REBUTTAL)) == ["N1"]
    assert _contents(build_context(debate, Position.NEGATIVE, RoundType.REBUTTAL)) == ["A1"]


def test_cross_exam_sees_opponent_opening_and_rebuttal():
    debate = make_debate(DebateState.REBUTTALS, rounds=_full_history()[:3])
    aff = build_context(debate, Position.AFFIRMATIVE, RoundType.CROSS_EXAM)
    neg = build_context(debate, Position.NEGATIVE, RoundType.CROSS_EXAM)
    assert _contents(aff) == ["N1", "N2"]
    assert _contents(neg) == ["A1", "A2"]
    assert all(s.position is Position.NEGATIVE for s in aff.previous_statements)


def test_closing_sees_everything_in_order():
    debate = make_debate(DebateState.CROSS_EXAMINATION, rounds=_full_history())
    for position in Position:
        ctx = build_context(debate, position, RoundType.CLOSING)
        assert _contents(ctx) == ["A1", "N1", "A2", "N2", "A3", "N3"]


def test_closing_never_includes_preparation():
    debate = make_debate(DebateState.CROSS_EXAMINATION, rounds=_full_history())
    ctx = build_context(debate, Position.AFFIRMATIVE, RoundType.CLOSING)
    assert all(s.round_type is not RoundType.PREPARATION for s in ctx.previous_statements)


def test_missing_rounds_contribute_nothing():
    debate = make_debate(DebateState.INITIALIZED)
    assert build_context(debate, Position.NEGATIVE, RoundType.CLOSING).previous_statements == ()


def test_own_preparation_material_attached():
    debate = make_debate(DebateState.OPENING_STATEMENTS, rounds=_full_history()[:2])
    assert build_context(debate, Position.AFFIRMATIVE, RoundType.REBUTTAL).preparation_material == "aff notes"
    assert build_context(debate, Position.NEGATIVE, RoundType.REBUTTAL).preparation_material == "neg notes"


def test_context_carries_topic_and_position():
    debate = make_debate()
    ctx = build_context(debate, Position.NEGATIVE, RoundType.OPENING)
    assert ctx.topic == debate.topic
    assert ctx.position is Position.NEGATIVE
    assert ctx.round_type is RoundType.OPENING


def test_format_previous_statements():
    debate = make_debate(DebateState.OPENING_STATEMENTS, rounds=_full_history()[:3])
    ctx = build_context(debate, Position.AFFIRMATIVE, RoundType.CROSS_EXAM)
    assert format_previous_statements(ctx) == "[NEGATIVE - Opening]:\nN1\n\n[NEGATIVE - Rebuttal]:\nN2"
