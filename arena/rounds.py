"""Round execution: the turn-taking protocol for each round type."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from arena.context import build_context, format_previous_statements
from arena.models import (
    Debate,
    DebateState,
    DebateWarning,
    GenerationContext,
    Position,
    Round,
    RoundType,
    Statement,
)
from arena.preparation import DEFAULT_PREPARATION_TIME, effective_preparation_time, race_with_deadline
from arena.providers.base import AIProvider, ProviderError
from arena.word_limit import count_words, enforce_word_limit, exceeds_word_limit
from config.config_loader import PromptsConfig

logger = logging.getLogger(__name__)

_POSITIONS = (Position.AFFIRMATIVE, Position.NEGATIVE)

_SIDES = {
    Position.AFFIRMATIVE: "in favor of",
    Position.NEGATIVE: "against",
}

# Retry budget after a per-response timeout, relative to config.time_limit
_RETRY_TIMEOUT_FACTOR = 1.5


class ModelGenerationError(Exception):
    """A debater's generation call failed.

    The orchestrator fills in ``debate`` (snapshot including the logged
    error) and ``transcript_path`` (partial transcript, if saved) before
    the error reaches the caller.
    """

    def __init__(
        self,
        model: str,
        message: str,
        round_type: RoundType | None = None,
        position: Position | None = None,
    ) -> None:
        self.model = model
        self.message = message
        self.round_type = round_type
        self.position = position
        self.debate: Debate | None = None
        self.transcript_path: Path | None = None
        super().__init__(message)


@dataclass(frozen=True)
class RoundOutcome:
    round: Round
    warnings: tuple[DebateWarning, ...] = ()


@dataclass
class _CrossExamExchange:
    """Fragments held while the four cross-examination steps run."""

    affirmative_question: str = ""
    negative_response: str = ""
    negative_question: str = ""
    affirmative_response: str = ""

    @property
    def affirmative_content(self) -> str:
        return f"Question: {self.affirmative_question}\n\nResponse to opponent: {self.affirmative_response}"

    @property
    def negative_content(self) -> str:
        return f"Response to opponent: {self.negative_response}\n\nQuestion: {self.negative_question}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _statement(model: AIProvider, position: Position, content: str) -> Statement:
    return Statement(
        model=model.name(),
        position=position,
        content=content,
        word_count=count_words(content),
        generated_at=_now(),
    )


async def _call_with_time_limit(
    model: AIProvider,
    prompt: str,
    context: GenerationContext,
    time_limit: float | None,
) -> str:
    """Call the model, retrying once with 1.5x the limit if it times out."""
    if not time_limit:
        return await model.generate(prompt, context)
    try:
        return await asyncio.wait_for(model.generate(prompt, context), timeout=time_limit)
    except TimeoutError:
        retry_limit = time_limit * _RETRY_TIMEOUT_FACTOR
        logger.warning(
            "Provider %s timed out after %gs in %s, retrying with %gs (1.5x)",
            model.name(), time_limit, context.round_type.value, retry_limit,
        )
    try:
        return await asyncio.wait_for(model.generate(prompt, context), timeout=retry_limit)
    except TimeoutError as exc:
        raise ProviderError(model.name(), f"Request failed after retry: timed out after {retry_limit:g}s") from exc


class RoundExecutor:
    """Drives one round: builds contexts and prompts, calls debaters in order."""

    def __init__(self, prompts: PromptsConfig) -> None:
        self._prompts = prompts

    async def run(self, debate: Debate, round_type: RoundType) -> RoundOutcome:
        if round_type is RoundType.PREPARATION:
            return await self._run_preparation(debate)
        if round_type is RoundType.CROSS_EXAM:
            return RoundOutcome(await self._run_cross_exam(debate))
        return RoundOutcome(await self._run_sequential(debate, round_type))

    def _render(self, template: str, debate: Debate, position: Position, **fields: str) -> str:
        return template.format(
            topic=debate.topic,
            side=_SIDES[position],
            rules=self._prompts.rules,
            **fields,
        )

    def _limit_words(self, text: str, debate: Debate, model: AIProvider) -> str:
        limit = debate.config.word_limit
        if not exceeds_word_limit(text, limit):
            return text
        logger.info(
            "Response from %s exceeded word limit of %d, truncated from %d words",
            model.name(), limit, count_words(text),
        )
        return enforce_word_limit(text, limit)

    async def _generate(
        self,
        debate: Debate,
        position: Position,
        prompt: str,
        context: GenerationContext,
    ) -> str:
        model = debate.model_for(position)
        try:
            text = await _call_with_time_limit(model, prompt, context, debate.config.time_limit)
        except Exception as exc:
            raise ModelGenerationError(model.name(), str(exc), context.round_type, position) from exc
        return self._limit_words(text, debate, model)

    def _prompt_for(self, debate: Debate, position: Position, context: GenerationContext) -> str:
        round_type = context.round_type
        if round_type is RoundType.OPENING:
            return self._render(self._prompts.opening, debate, position)
        if round_type is RoundType.REBUTTAL:
            opening = context.previous_statements[0].content if context.previous_statements else ""
            return self._render(self._prompts.rebuttal, debate, position, opponent_opening=opening)
        if round_type is RoundType.CLOSING:
            return self._render(
                self._prompts.closing, debate, position,
                debate_summary=format_previous_statements(context),
            )
        raise ValueError(f"No sequential prompt for round type {round_type.value}")

    async def _run_sequential(self, debate: Debate, round_type: RoundType) -> Round:
        """Affirmative first; negative is only prompted once that statement exists."""
        statements: dict[Position, Statement] = {}
        for position in _POSITIONS:
            context = build_context(debate, position, round_type)
            prompt = self._prompt_for(debate, position, context)
            content = await self._generate(debate, position, prompt, context)
            statements[position] = _statement(debate.model_for(position), position, content)
            logger.debug("%s %s committed (%d words)", round_type.label, position.value, statements[position].word_count)

        return Round(
            type=round_type,
            affirmative_statement=statements[Position.AFFIRMATIVE],
            negative_statement=statements[Position.NEGATIVE],
            timestamp=_now(),
        )

    async def _run_cross_exam(self, debate: Debate) -> Round:
        """Affirmative asks, negative answers, negative asks, affirmative answers."""
        aff_context = build_context(debate, Position.AFFIRMATIVE, RoundType.CROSS_EXAM)
        neg_context = build_context(debate, Position.NEGATIVE, RoundType.CROSS_EXAM)
        exchange = _CrossExamExchange()

        exchange.affirmative_question = await self._generate(
            debate, Position.AFFIRMATIVE,
            self._render(
                self._prompts.cross_exam_question, debate, Position.AFFIRMATIVE,
                opponent_statements=format_previous_statements(aff_context),
            ),
            aff_context,
        )
        exchange.negative_response = await self._generate(
            debate, Position.NEGATIVE,
            self._render(
                self._prompts.cross_exam_answer, debate, Position.NEGATIVE,
                question=exchange.affirmative_question,
            ),
            neg_context,
        )
        exchange.negative_question = await self._generate(
            debate, Position.NEGATIVE,
            self._render(
                self._prompts.cross_exam_question, debate, Position.NEGATIVE,
                opponent_statements=format_previous_statements(neg_context),
            ),
            neg_context,
        )
        exchange.affirmative_response = await self._generate(
            debate, Position.AFFIRMATIVE,
            self._render(
                self._prompts.cross_exam_answer, debate, Position.AFFIRMATIVE,
                question=exchange.negative_question,
            ),
            aff_context,
        )

        return Round(
            type=RoundType.CROSS_EXAM,
            affirmative_statement=_statement(debate.affirmative_model, Position.AFFIRMATIVE, exchange.affirmative_content),
            negative_statement=_statement(debate.negative_model, Position.NEGATIVE, exchange.negative_content),
            timestamp=_now(),
        )

    async def _prepare(
        self,
        debate: Debate,
        position: Position,
        context: GenerationContext,
        buffer: list[str],
    ) -> str:
        model = debate.model_for(position)
        prompt = self._render(self._prompts.preparation, debate, position)
        try:
            text = await model.generate_stream(prompt, context, buffer.append)
        except Exception as exc:
            raise ModelGenerationError(model.name(), str(exc), RoundType.PREPARATION, position) from exc
        return self._limit_words(text, debate, model)

    async def _run_preparation(self, debate: Debate) -> RoundOutcome:
        """Both debaters prepare at once; whatever exists at the deadline is kept."""
        deadline = effective_preparation_time(debate.config)
        buffers: dict[Position, list[str]] = {p: [] for p in _POSITIONS}
        calls = {
            p: self._prepare(debate, p, build_context(debate, p, RoundType.PREPARATION), buffers[p])
            for p in _POSITIONS
        }

        outcome = await race_with_deadline(calls, deadline)

        statements: dict[Position, Statement] = {}
        for position in _POSITIONS:
            model = debate.model_for(position)
            if position in outcome.results:
                content = outcome.results[position]
            else:
                # Late result is discarded; keep only what streamed in before the deadline
                content = self._limit_words("".join(buffers[position]), debate, model)
            statements[position] = _statement(model, position, content)

        warnings: tuple[DebateWarning, ...] = ()
        if outcome.deadline_reached:
            late = ", ".join(debate.model_for(p).name() for p in outcome.timed_out)
            configured = debate.config.preparation_time or DEFAULT_PREPARATION_TIME
            limit = f"{configured:g} seconds"
            if deadline != configured:
                limit += f" (extended to {deadline:g} seconds by research depth)"
            message = (
                f"Preparation time limit of {limit} reached. "
                f"Proceeding with partial content from: {late}"
            )
            logger.warning(message)
            warnings = (DebateWarning(message=message, state=DebateState.PREPARATION, timestamp=_now()),)

        return RoundOutcome(
            round=Round(
                type=RoundType.PREPARATION,
                affirmative_statement=statements[Position.AFFIRMATIVE],
                negative_statement=statements[Position.NEGATIVE],
                timestamp=_now(),
            ),
            warnings=warnings,
        )
