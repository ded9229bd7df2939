"""
Tests for the best-effort fan-out helper.
"""

import asyncio

import pytest

from availabilityfinder.services.fanout import gather_best_effort


async def _value(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


async def _fail(message):
    raise RuntimeError(message)


def test_collects_successes_in_submission_order():
    result = asyncio.run(
        gather_best_effort({"slow": _value(1, 0.02), "fast": _value(2)})
    )

    assert list(result.successes) == ["slow", "fast"]
    assert result.successes == {"slow": 1, "fast": 2}
    assert result.failures == []


def test_failure_is_isolated():
    result = asyncio.run(gather_best_effort({"ok": _value("a"), "bad": _fail("boom")}))

    assert result.successes == {"ok": "a"}
    assert result.failed_keys == ["bad"]
    assert isinstance(result.failures[0].error, RuntimeError)


def test_timeout_counts_as_failure():
    result = asyncio.run(
        gather_best_effort({"hung": _value("late", 1.0), "ok": _value("on time")}, timeout=0.05)
    )

    assert result.successes == {"ok": "on time"}
    assert result.failed_keys == ["hung"]
    assert isinstance(result.failures[0].error, asyncio.TimeoutError)


def test_empty_mapping():
    result = asyncio.run(gather_best_effort({}))

    assert result.successes == {}
    assert result.failures == []


def test_cancellation_is_not_swallowed():
    async def cancelled():
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(gather_best_effort({"task": cancelled()}))
