"""Immutable records describing a debate's evolving state. No I/O, no deps."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from config.config_loader import DebateConfig

if TYPE_CHECKING:
    from arena.providers.base import AIProvider


class Position(str, Enum):
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"

    @property
    def opponent(self) -> "Position":
        return Position.NEGATIVE if self is Position.AFFIRMATIVE else Position.AFFIRMATIVE


class RoundType(str, Enum):
    PREPARATION = "preparation"
    OPENING = "opening"
    REBUTTAL = "rebuttal"
    CROSS_EXAM = "cross_exam"
    CLOSING = "closing"

    @property
    def label(self) -> str:
        return _ROUND_LABELS[self]


_ROUND_LABELS = {
    RoundType.PREPARATION: "Preparation",
    RoundType.OPENING: "Opening",
    RoundType.REBUTTAL: "Rebuttal",
    RoundType.CROSS_EXAM: "Cross-Examination",
    RoundType.CLOSING: "Closing",
}


class DebateState(str, Enum):
    INITIALIZED = "initialized"
    PREPARATION = "preparation"
    OPENING_STATEMENTS = "opening_statements"
    REBUTTALS = "rebuttals"
    CROSS_EXAMINATION = "cross_examination"
    CLOSING_STATEMENTS = "closing_statements"
    COMPLETED = "completed"

    @property
    def round_type(self) -> RoundType | None:
        """Round produced by entering this state (None for INITIALIZED/COMPLETED)."""
        return _STATE_ROUND_TYPES.get(self)


_STATE_ROUND_TYPES = {
    DebateState.PREPARATION: RoundType.PREPARATION,
    DebateState.OPENING_STATEMENTS: RoundType.OPENING,
    DebateState.REBUTTALS: RoundType.REBUTTAL,
    DebateState.CROSS_EXAMINATION: RoundType.CROSS_EXAM,
    DebateState.CLOSING_STATEMENTS: RoundType.CLOSING,
}


@dataclass(frozen=True)
class Statement:
    model: str
    position: Position
    content: str
    word_count: int
    generated_at: datetime


@dataclass(frozen=True)
class Round:
    type: RoundType
    affirmative_statement: Statement | None
    negative_statement: Statement | None
    timestamp: datetime

    def statement_for(self, position: Position) -> Statement | None:
        if position is Position.AFFIRMATIVE:
            return self.affirmative_statement
        return self.negative_statement


@dataclass(frozen=True)
class DebateError:
    model: str
    message: str
    state: DebateState     # phase being executed when the call failed
    timestamp: datetime
    round: RoundType | None = None


@dataclass(frozen=True)
class DebateWarning:
    message: str
    state: DebateState
    timestamp: datetime


@dataclass(frozen=True)
class PriorStatement:
    position: Position
    content: str
    round_type: RoundType


@dataclass(frozen=True)
class GenerationContext:
    position: Position
    round_type: RoundType
    previous_statements: tuple[PriorStatement, ...] = ()
    topic: str = ""
    preparation_material: str | None = None


@dataclass(frozen=True)
class Debate:
    id: str
    topic: str
    config: DebateConfig
    state: DebateState
    affirmative_model: "AIProvider"
    negative_model: "AIProvider"
    created_at: datetime
    rounds: tuple[Round, ...] = ()
    errors: tuple[DebateError, ...] = ()
    warnings: tuple[DebateWarning, ...] = ()
    completed_at: datetime | None = None

    def model_for(self, position: Position) -> "AIProvider":
        if position is Position.AFFIRMATIVE:
            return self.affirmative_model
        return self.negative_model

    def find_round(self, round_type: RoundType) -> Round | None:
        return next((r for r in self.rounds if r.type is round_type), None)
