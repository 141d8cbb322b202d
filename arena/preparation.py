"""Preparation deadline: race concurrent generation calls against a wall clock."""

import asyncio
import logging
from collections.abc import Coroutine, Hashable, Mapping
from dataclasses import dataclass, field
from typing import Any

from config.config_loader import DebateConfig

logger = logging.getLogger(__name__)

DEFAULT_PREPARATION_TIME = 180.0


def research_depth_factor(depth: int | None) -> float:
    """Scale for the base preparation time: shallow 0.8x, moderate 1.0x, deep 1.5x."""
    if depth is None:
        return 1.0
    if depth >= 8:
        return 1.5
    if depth <= 2:
        return 0.8
    return 1.0


def effective_preparation_time(config: DebateConfig) -> float:
    """Deadline in seconds: the longer of the two debaters' scaled budgets."""
    base = config.preparation_time or DEFAULT_PREPARATION_TIME
    return max(
        base * research_depth_factor(config.affirmative_research_depth),
        base * research_depth_factor(config.negative_research_depth),
    )


@dataclass
class RaceOutcome:
    results: dict[Hashable, Any] = field(default_factory=dict)
    timed_out: list[Hashable] = field(default_factory=list)

    @property
    def deadline_reached(self) -> bool:
        return bool(self.timed_out)


async def race_with_deadline(
    calls: Mapping[Hashable, Coroutine[Any, Any, Any]],
    deadline: float,
) -> RaceOutcome:
    """Run every call concurrently and stop waiting once ``deadline`` seconds pass.

    Calls still pending at the deadline are cancelled and listed in
    ``timed_out``; their results are never collected. The first call to
    fail before the deadline cancels the others and its exception
    propagates. When several fail together, the earliest in ``calls``
    order wins.
    """
    loop = asyncio.get_running_loop()
    expires_at = loop.time() + deadline
    tasks = {asyncio.ensure_future(coro): key for key, coro in calls.items()}
    pending = set(tasks)
    outcome = RaceOutcome()

    try:
        while pending:
            remaining = expires_at - loop.time()
            if remaining <= 0:
                break
            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            # Retrieve every exception in the batch so none is reported as unretrieved
            failures = [task.exception() for task in tasks if task in done and task.exception() is not None]
            if failures:
                raise failures[0]
            for task in done:
                outcome.results[tasks[task]] = task.result()
    finally:
        # Abandoned calls are cancelled, not awaited, so the deadline holds
        for task in pending:
            task.cancel()

    outcome.timed_out = [tasks[task] for task in tasks if task in pending]
    if outcome.timed_out:
        logger.debug("Deadline of %.1fs passed with %d call(s) pending", deadline, len(pending))
    return outcome
