"""Linear debate state machine: one legal successor per state."""

from arena.models import DebateState


class DebateStateError(Exception):
    """Base for state machine failures."""


class InvalidStateTransitionError(DebateStateError):
    """Raised when a phase is requested out of order, repeated, reversed or after completion."""

    def __init__(self, current: DebateState, target: DebateState) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid state transition: cannot transition from {current.value} to {target.value}"
        )


TRANSITIONS: dict[DebateState, DebateState] = {
    DebateState.INITIALIZED: DebateState.PREPARATION,
    DebateState.PREPARATION: DebateState.OPENING_STATEMENTS,
    DebateState.OPENING_STATEMENTS: DebateState.REBUTTALS,
    DebateState.REBUTTALS: DebateState.CROSS_EXAMINATION,
    DebateState.CROSS_EXAMINATION: DebateState.CLOSING_STATEMENTS,
    DebateState.CLOSING_STATEMENTS: DebateState.COMPLETED,
}


def next_state(current: DebateState) -> DebateState | None:
    """Return the only state reachable from current, or None once completed."""
    return TRANSITIONS.get(current)


def validate_transition(current: DebateState, target: DebateState) -> None:
    """Raise InvalidStateTransitionError unless target directly follows current."""
    if TRANSITIONS.get(current) is not target:
        raise InvalidStateTransitionError(current, target)
