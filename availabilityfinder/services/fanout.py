"""
Best-effort concurrent fan-out.

Runs independent awaitables concurrently and splits the outcome into
successes and failures instead of failing as a whole. The degrade policy
(what a failure means for the caller) stays with the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Dict, Generic, List, Mapping, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class TaskFailure:
    """A task that raised or timed out."""
    key: str
    error: Exception


@dataclass
class FanOutResult(Generic[T]):
    """Outcome of a best-effort fan-out, successes keyed in submission order."""
    successes: Dict[str, T] = field(default_factory=dict)
    failures: List[TaskFailure] = field(default_factory=list)

    @property
    def failed_keys(self) -> List[str]:
        return [failure.key for failure in self.failures]


async def _with_timeout(awaitable: Awaitable[T], timeout: float | None) -> T:
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout)


async def gather_best_effort(
    tasks: Mapping[str, Awaitable[T]],
    timeout: float | None = None,
) -> FanOutResult[T]:
    """
    Run all awaitables concurrently, isolating failures.

    Args:
        tasks: Awaitables keyed by a caller-chosen identifier
        timeout: Optional per-task budget in seconds; exceeding it is a failure

    Returns:
        FanOutResult with the value of every task that completed and the
        error of every task that did not
    """
    keys = list(tasks)
    outcomes = await asyncio.gather(
        *(_with_timeout(tasks[key], timeout) for key in keys),
        return_exceptions=True,
    )

    result: FanOutResult[T] = FanOutResult()
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, Exception):
            if isinstance(outcome, asyncio.TimeoutError):
                logger.warning("Task %s exceeded its %ss budget", key, timeout)
            else:
                logger.warning("Task %s failed: %s", key, outcome)
            result.failures.append(TaskFailure(key=key, error=outcome))
        elif isinstance(outcome, BaseException):
            # Cancellation and interpreter exits are not task failures
            raise outcome
        else:
            result.successes[key] = outcome

    return result
