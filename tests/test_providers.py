"""Unit tests for arena/providers: SDK clients are replaced with mocks."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from arena.models import GenerationContext, Position, RoundType
from arena.providers.anthropic import AnthropicProvider
from arena.providers.base import ProviderError, system_prompt
from arena.providers.openai_compatible import OpenAICompatibleProvider
from arena.providers.openai_provider import OpenAIProvider
from config.config_loader import ModelConfig
from tests.conftest import MockProvider

_CONTEXT = GenerationContext(
    position=Position.NEGATIVE,
    round_type=RoundType.OPENING,
    topic="Cats are better than dogs",
    preparation_material="Dogs cooperate with humans.",
)


def _config(sdk: str = "openai", api_key_env: str | None = "TEST_API_KEY", base_url: str | None = None) -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk=sdk,
        model="test-model-1",
        api_key_env=api_key_env,
        timeout_sec=5,
        max_tokens=256,
        base_url=base_url,
    )


def test_provider_error_message():
    err = ProviderError("grok", "403 Forbidden")
    assert str(err) == "[grok] 403 Forbidden"
    assert err.provider_name == "grok"


def test_system_prompt_states_side_and_notes():
    prompt = system_prompt(_CONTEXT)
    assert "against" in prompt
    assert "Cats are better than dogs" in prompt
    assert "Dogs cooperate with humans." in prompt


async def test_default_stream_delivers_one_chunk():
    chunks = []
    text = await MockProvider("m", "whole reply").generate_stream("p", _CONTEXT, chunks.append)
    assert text == "whole reply"
    assert chunks == ["whole reply"]


def test_openai_missing_key(monkeypatch):
    monkeypatch.delenv("TEST_API_KEY", raising=False)
    with pytest.raises(ProviderError, match="Missing API key"):
        OpenAIProvider(_config())


def test_anthropic_missing_key(monkeypatch):
    monkeypatch.delenv("TEST_API_KEY", raising=False)
    with pytest.raises(ProviderError, match="Missing API key"):
        AnthropicProvider(_config("anthropic"))


def test_compatible_requires_base_url():
    with pytest.raises(ProviderError, match="base_url"):
        OpenAICompatibleProvider(_config("openai_compatible", api_key_env=None))


def test_compatible_keyless():
    provider = OpenAICompatibleProvider(
        _config("openai_compatible", api_key_env=None, base_url="http://localhost:11434/v1")
    )
    assert provider.supports_streaming()


async def test_openai_generate_parses_response(monkeypatch):
    monkeypatch.setenv("TEST_API_KEY", "sk-test")
    provider = OpenAIProvider(_config())
    response = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Dogs win."))],
        usage=SimpleNamespace(total_tokens=12),
    )
    create = AsyncMock(return_value=response)
    monkeypatch.setattr(provider._client.chat.completions, "create", create)

    assert await provider.generate("Argue.", _CONTEXT) == "Dogs win."
    messages = create.call_args.kwargs["messages"]
    assert messages[0]["role"] == "system"
    assert messages[1] == {"role": "user", "content": "Argue."}


async def test_openai_generate_wraps_sdk_errors(monkeypatch):
    monkeypatch.setenv("TEST_API_KEY", "sk-test")
    provider = OpenAIProvider(_config())
    monkeypatch.setattr(
        provider._client.chat.completions, "create", AsyncMock(side_effect=RuntimeError("boom"))
    )

    with pytest.raises(ProviderError, match="API call failed: boom") as exc_info:
        await provider.generate("Argue.", _CONTEXT)
    assert isinstance(exc_info.value.__cause__, RuntimeError)


async def test_openai_empty_response(monkeypatch):
    monkeypatch.setenv("TEST_API_KEY", "sk-test")
    provider = OpenAIProvider(_config())
    monkeypatch.setattr(
        provider._client.chat.completions, "create", AsyncMock(return_value=SimpleNamespace(choices=[], usage=None))
    )

    with pytest.raises(ProviderError, match="Empty response"):
        await provider.generate("Argue.", _CONTEXT)


async def test_openai_stream_reports_chunks(monkeypatch):
    monkeypatch.setenv("TEST_API_KEY", "sk-test")
    provider = OpenAIProvider(_config())

    async def fake_stream():
        for piece in ("Dogs ", None, "win."):
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=piece))])

    monkeypatch.setattr(provider._client.chat.completions, "create", AsyncMock(return_value=fake_stream()))

    chunks = []
    text = await provider.generate_stream("Prepare.", _CONTEXT, chunks.append)

    assert text == "Dogs win."
    assert chunks == ["Dogs ", "win."]
