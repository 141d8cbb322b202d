"""Provider health checks: ping each debater before a debate starts."""

import asyncio
import logging

from arena.models import GenerationContext, Position, RoundType
from arena.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_PING_CONTEXT = GenerationContext(
    position=Position.AFFIRMATIVE,
    round_type=RoundType.OPENING,
    topic="connectivity check",
)
_TIMEOUT_SEC = 15.0


async def _check_one(name: str, provider: AIProvider) -> tuple[str, bool, str]:
    """Ping a single provider. Returns (name, ok, error_message)."""
    try:
        await asyncio.wait_for(provider.generate(_PING_PROMPT, _PING_CONTEXT), timeout=_TIMEOUT_SEC)
    except TimeoutError:
        return name, False, f"no reply within {_TIMEOUT_SEC:.0f}s"
    except Exception as exc:
        logger.debug("Health check failed for %s: %s", name, exc)
        return name, False, str(exc)
    return name, True, ""


async def run_health_checks(
    providers: dict[str, AIProvider],
) -> dict[str, tuple[bool, str]]:
    """Ping all providers in parallel.

    Returns:
        Dict mapping provider name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(n, p) for n, p in providers.items()))
    return {name: (ok, err) for name, ok, err in results}
