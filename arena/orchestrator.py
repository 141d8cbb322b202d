"""Debate orchestration: phase sequencing, failure logging and partial transcripts."""

import logging
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from arena.context import build_context
from arena.models import (
    Debate,
    DebateError,
    DebateState,
    GenerationContext,
    Position,
    RoundType,
)
from arena.providers.base import AIProvider
from arena.rounds import ModelGenerationError, RoundExecutor
from arena.state_machine import next_state, validate_transition
from arena.transcript import TranscriptManager
from config.config_loader import DebateConfig, PromptsConfig

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DebateOrchestrator:
    """Runs a debate one phase at a time.

    Every phase operation takes a Debate and returns a new one; the input
    is never modified. Illegal transitions raise before any model is
    called. A failed generation call is logged into the debate's error
    list, a partial transcript is saved, and the failure is re-raised.
    """

    def __init__(
        self,
        prompts: PromptsConfig,
        transcript_manager: TranscriptManager | None = None,
    ) -> None:
        self._executor = RoundExecutor(prompts)
        self._transcripts = transcript_manager if transcript_manager is not None else TranscriptManager()

    def initialize_debate(
        self,
        topic: str,
        config: DebateConfig,
        affirmative_model: AIProvider,
        negative_model: AIProvider,
    ) -> Debate:
        """Create a new debate in the INITIALIZED state.

        Raises:
            ValueError: If the topic is empty or whitespace only.
        """
        if not topic or not topic.strip():
            raise ValueError("Invalid debate topic: must contain at least one non-whitespace character")

        debate = Debate(
            id=str(uuid.uuid4()),
            topic=topic,
            config=config,
            state=DebateState.INITIALIZED,
            affirmative_model=affirmative_model,
            negative_model=negative_model,
            created_at=_now(),
        )
        logger.info(
            "Initialized debate %s: '%s' (%s vs %s)",
            debate.id, topic, affirmative_model.name(), negative_model.name(),
        )
        return debate

    def build_context(self, debate: Debate, position: Position, round_type: RoundType) -> GenerationContext:
        return build_context(debate, position, round_type)

    async def execute_preparation(self, debate: Debate) -> Debate:
        return await self._execute_phase(debate, DebateState.PREPARATION)

    async def execute_opening_statements(self, debate: Debate) -> Debate:
        return await self._execute_phase(debate, DebateState.OPENING_STATEMENTS)

    async def execute_rebuttals(self, debate: Debate) -> Debate:
        return await self._execute_phase(debate, DebateState.REBUTTALS)

    async def execute_cross_examination(self, debate: Debate) -> Debate:
        return await self._execute_phase(debate, DebateState.CROSS_EXAMINATION)

    async def execute_closing_statements(self, debate: Debate) -> Debate:
        return await self._execute_phase(debate, DebateState.CLOSING_STATEMENTS)

    def complete_debate(self, debate: Debate) -> Debate:
        """Close a debate after its closing statements. Adds no round."""
        validate_transition(debate.state, DebateState.COMPLETED)
        completed = replace(debate, state=DebateState.COMPLETED, completed_at=_now())
        logger.info("Debate %s completed with %d rounds", debate.id, len(completed.rounds))
        return completed

    async def run_debate(
        self,
        debate: Debate,
        on_phase_complete: Callable[[Debate], None] | None = None,
    ) -> Debate:
        """Run every remaining phase in order, then complete the debate.

        Args:
            debate: Debate in any non-completed state.
            on_phase_complete: Optional callback invoked with the new Debate
                after each phase (including completion).

        Raises:
            ModelGenerationError: A generation call failed; later phases are not run.
        """
        target = next_state(debate.state)
        while target is not None:
            if target is DebateState.COMPLETED:
                debate = self.complete_debate(debate)
            else:
                debate = await self._execute_phase(debate, target)
            if on_phase_complete:
                on_phase_complete(debate)
            target = next_state(debate.state)
        return debate

    async def _execute_phase(self, debate: Debate, target: DebateState) -> Debate:
        validate_transition(debate.state, target)
        round_type = target.round_type
        logger.info("Debate %s: starting %s", debate.id, round_type.label)

        try:
            outcome = await self._executor.run(debate, round_type)
        except ModelGenerationError as exc:
            self._record_failure(debate, target, exc)
            raise

        logger.info("Debate %s: %s complete", debate.id, round_type.label)
        return replace(
            debate,
            state=target,
            rounds=debate.rounds + (outcome.round,),
            warnings=debate.warnings + outcome.warnings,
        )

    def _record_failure(self, debate: Debate, target: DebateState, exc: ModelGenerationError) -> None:
        """Log the error into a debate snapshot, persist it, and attach both to exc."""
        error = DebateError(
            model=exc.model,
            message=exc.message,
            state=target,
            timestamp=_now(),
            round=target.round_type,
        )
        failed = replace(debate, errors=debate.errors + (error,))
        exc.debate = failed

        logger.error(
            "Debate %s failed (state=%s, round=%s, model=%s): %s",
            debate.id, target.value, error.round.value, exc.model, exc.message,
        )

        try:
            exc.transcript_path = self._transcripts.save_partial_transcript(failed)
        except Exception as save_exc:
            logger.error("Failed to save partial transcript for debate %s: %s", debate.id, save_exc)
            return
        logger.error("Partial transcript saved to: %s", exc.transcript_path)
