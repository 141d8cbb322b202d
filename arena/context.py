"""Per-turn generation context: which prior statements a debater gets to see."""

from arena.models import Debate, GenerationContext, Position, PriorStatement, RoundType

# Rounds whose statements feed the closing summary, in chronological order
_CLOSING_SOURCES = (RoundType.OPENING, RoundType.REBUTTAL, RoundType.CROSS_EXAM)


def _opponent_statements(
    debate: Debate,
    position: Position,
    round_types: tuple[RoundType, ...],
) -> list[PriorStatement]:
    opponent = position.opponent
    statements: list[PriorStatement] = []
    for round_type in round_types:
        rnd = debate.find_round(round_type)
        if rnd is None:
            continue
        statement = rnd.statement_for(opponent)
        if statement is not None:
            statements.append(PriorStatement(opponent, statement.content, round_type))
    return statements


def _all_statements(debate: Debate, round_types: tuple[RoundType, ...]) -> list[PriorStatement]:
    statements: list[PriorStatement] = []
    for round_type in round_types:
        rnd = debate.find_round(round_type)
        if rnd is None:
            continue
        # Affirmative speaks first in every round
        for position in (Position.AFFIRMATIVE, Position.NEGATIVE):
            statement = rnd.statement_for(position)
            if statement is not None:
                statements.append(PriorStatement(position, statement.content, round_type))
    return statements


def build_context(debate: Debate, position: Position, round_type: RoundType) -> GenerationContext:
    """Build the context a debater sees for one generation call.

    PREPARATION and OPENING see nothing; REBUTTAL sees the opponent's
    opening; CROSS_EXAM sees the opponent's opening and rebuttal; CLOSING
    sees every opening, rebuttal and cross-exam statement, affirmative
    before negative. Rounds that have not happened contribute nothing.
    """
    if round_type is RoundType.REBUTTAL:
        previous = _opponent_statements(debate, position, (RoundType.OPENING,))
    elif round_type is RoundType.CROSS_EXAM:
        previous = _opponent_statements(debate, position, (RoundType.OPENING, RoundType.REBUTTAL))
    elif round_type is RoundType.CLOSING:
        previous = _all_statements(debate, _CLOSING_SOURCES)
    else:
        previous = []

    preparation_material: str | None = None
    preparation = debate.find_round(RoundType.PREPARATION)
    if preparation is not None and round_type is not RoundType.PREPARATION:
        own = preparation.statement_for(position)
        if own is not None and own.content:
            preparation_material = own.content

    return GenerationContext(
        position=position,
        round_type=round_type,
        previous_statements=tuple(previous),
        topic=debate.topic,
        preparation_material=preparation_material,
    )


def format_previous_statements(context: GenerationContext) -> str:
    """Render prior statements as labelled blocks for prompt templates."""
    blocks = [
        f"[{s.position.name} - {s.round_type.label}]:\n{s.content}"
        for s in context.previous_statements
    ]
    return "\n\n".join(blocks)
