"""Unit tests for arena/healthcheck.py: no real API calls."""

import asyncio
from unittest.mock import AsyncMock

import arena.healthcheck as hc
from arena.healthcheck import run_health_checks
from arena.providers.base import ProviderError
from tests.conftest import MockProvider


async def test_all_providers_pass():
    """All providers succeed -> all marked ok, no errors."""
    providers = {
        "claude": MockProvider("claude", "OK"),
        "gemini": MockProvider("gemini", "OK"),
    }

    results = await run_health_checks(providers)

    assert results["claude"] == (True, "")
    assert results["gemini"] == (True, "")


async def test_ping_uses_generation_context():
    provider = MockProvider("claude", "OK")
    await run_health_checks({"claude": provider})
    prompt, context = provider.calls[0]
    assert "OK" in prompt
    assert context.previous_statements == ()


async def test_one_provider_fails():
    """A provider that raises returns ok=False with the error message."""
    providers = {
        "claude": MockProvider("claude", "OK"),
        "grok": MockProvider("grok"),
    }
    providers["grok"].generate = AsyncMock(side_effect=ProviderError("grok", "403 Forbidden"))

    results = await run_health_checks(providers)

    assert results["claude"] == (True, "")
    ok, err = results["grok"]
    assert ok is False
    assert "403" in err


async def test_all_providers_fail():
    """All fail -> all marked False."""
    providers = {
        "openai": MockProvider("openai"),
        "deepseek": MockProvider("deepseek"),
    }
    for name, p in providers.items():
        p.generate = AsyncMock(side_effect=Exception(f"{name} down"))

    results = await run_health_checks(providers)

    for name in providers:
        ok, err = results[name]
        assert ok is False
        assert name in err


async def test_empty_providers():
    """Empty provider dict returns empty results."""
    results = await run_health_checks({})
    assert results == {}


async def test_timeout_counts_as_failure(monkeypatch):
    """A provider that hangs past the timeout is marked as failed."""
    providers = {"slow": MockProvider("slow")}

    async def hang(*args, **kwargs):
        await asyncio.sleep(9999)

    providers["slow"].generate = AsyncMock(side_effect=hang)
    monkeypatch.setattr(hc, "_TIMEOUT_SEC", 0.05)

    results = await run_health_checks(providers)

    ok, err = results["slow"]
    assert ok is False
    assert "no reply" in err
