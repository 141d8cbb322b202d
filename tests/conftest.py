"""Shared pytest fixtures."""

import asyncio
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest

from arena.models import (
    Debate,
    DebateState,
    GenerationContext,
    Position,
    Round,
    RoundType,
    Statement,
)
from arena.orchestrator import DebateOrchestrator
from arena.providers.base import AIProvider
from arena.transcript import TranscriptManager
from config.config_loader import AppConfig, DebateConfig, DefaultsConfig, ModelConfig, PromptsConfig


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="openai",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        rules="Be concise.",
        preparation="PREP {side} {topic}",
        opening="OPEN {side} {topic}",
        rebuttal="REBUT {side} {topic}\n{opponent_opening}",
        cross_exam_question="ASK {side} {topic}\n{opponent_statements}",
        cross_exam_answer="ANSWER {side} {topic}\n{question}",
        closing="CLOSE {side} {topic}\n{debate_summary}",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        affirmative="claude",
        negative="openai",
        output_dir=tmp_path / "output",
        transcripts_dir=tmp_path / "transcripts",
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    claude = ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-sonnet-4-20250514",
        api_key_env="ANTHROPIC_API_KEY",
        timeout_sec=60,
        max_tokens=4096,
    )
    openai = ModelConfig(
        name="openai",
        sdk="openai",
        model="gpt-4o",
        api_key_env="OPENAI_API_KEY",
        timeout_sec=60,
        max_tokens=4096,
    )
    return AppConfig(
        defaults=sample_defaults_config,
        debate=DebateConfig(),
        models={"claude": claude, "openai": openai},
        prompts=sample_prompts_config,
        available_providers={"claude", "openai"},
    )


@pytest.fixture
def fast_config() -> DebateConfig:
    return DebateConfig(time_limit=5.0, word_limit=500, preparation_time=2.0)


class MockProvider(AIProvider):
    """Test double AIProvider.

    Replies with ``response_content`` (or the result of calling it with the
    prompt and context), optionally after ``delay`` seconds. With ``chunks``
    set, streaming delivers them one at a time, ``chunk_delay`` apart.
    Every call is appended to ``calls`` and, when given, to the shared
    ``call_log`` as (name, round_type, position, monotonic time).
    """

    def __init__(
        self,
        provider_name: str = "mock",
        response_content: str | Callable[[str, GenerationContext], str] = "Mock response",
        delay: float = 0.0,
        chunks: list[str] | None = None,
        chunk_delay: float = 0.0,
        call_log: list | None = None,
    ) -> None:
        self._name = provider_name
        self._response_content = response_content
        self._delay = delay
        self._chunks = chunks
        self._chunk_delay = chunk_delay
        self.call_log = call_log if call_log is not None else []
        self.calls: list[tuple[str, GenerationContext]] = []

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return f"{self._name}-model"

    def _record(self, prompt: str, context: GenerationContext) -> None:
        self.calls.append((prompt, context))
        self.call_log.append((self._name, context.round_type, context.position, time.monotonic()))

    async def generate(self, prompt: str, context: GenerationContext) -> str:
        self._record(prompt, context)
        if self._delay:
            await asyncio.sleep(self._delay)
        if callable(self._response_content):
            return self._response_content(prompt, context)
        return self._response_content

    def supports_streaming(self) -> bool:
        return self._chunks is not None

    async def generate_stream(self, prompt, context, on_chunk) -> str:
        if self._chunks is None:
            return await super().generate_stream(prompt, context, on_chunk)
        self._record(prompt, context)
        for chunk in self._chunks:
            await asyncio.sleep(self._chunk_delay)
            on_chunk(chunk)
        return "".join(self._chunks)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def call_log() -> list:
    return []


@pytest.fixture
def two_mock_providers(call_log: list) -> tuple[MockProvider, MockProvider]:
    return (
        MockProvider("provider_a", "Response from A", call_log=call_log),
        MockProvider("provider_b", "Response from B", call_log=call_log),
    )


@pytest.fixture
def transcript_manager(tmp_path: Path) -> TranscriptManager:
    return TranscriptManager(tmp_path / "transcripts")


@pytest.fixture
def orchestrator(sample_prompts_config: PromptsConfig, transcript_manager: TranscriptManager) -> DebateOrchestrator:
    return DebateOrchestrator(sample_prompts_config, transcript_manager)


@pytest.fixture
def new_debate(orchestrator, fast_config, two_mock_providers) -> Debate:
    affirmative, negative = two_mock_providers
    return orchestrator.initialize_debate("Cats are better than dogs", fast_config, affirmative, negative)


def make_statement(position: Position, content: str, model: str = "mock") -> Statement:
    return Statement(
        model=model,
        position=position,
        content=content,
        word_count=len(content.split()),
        generated_at=datetime.now(timezone.utc),
    )


def make_round(round_type: RoundType, affirmative: str, negative: str) -> Round:
    return Round(
        type=round_type,
        affirmative_statement=make_statement(Position.AFFIRMATIVE, affirmative),
        negative_statement=make_statement(Position.NEGATIVE, negative),
        timestamp=datetime.now(timezone.utc),
    )


def make_debate(
    state: DebateState = DebateState.INITIALIZED,
    rounds: tuple[Round, ...] = (),
    config: DebateConfig | None = None,
    affirmative: AIProvider | None = None,
    negative: AIProvider | None = None,
) -> Debate:
    return Debate(
        id="debate-1",
        topic="Cats are better than dogs",
        config=config or DebateConfig(),
        state=state,
        affirmative_model=affirmative or MockProvider("provider_a"),
        negative_model=negative or MockProvider("provider_b"),
        created_at=datetime.now(timezone.utc),
        rounds=rounds,
    )
