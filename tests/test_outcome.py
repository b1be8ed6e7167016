"""Tests for outcome.py."""

from __future__ import annotations

import anyio
import pytest

from standup_irc.outcome import AlreadyResolvedError, Deferred, Failure, Success


def test_failure_forbidden() -> None:
    assert Failure(403).forbidden is True
    assert Failure(500, "boom").forbidden is False
    assert Failure(None, "timed out").forbidden is False


def test_success_carries_payload() -> None:
    assert Success({"id": 1}).payload == {"id": 1}


@pytest.mark.anyio
async def test_deferred_resolves_once() -> None:
    deferred: Deferred[bool] = Deferred()
    assert not deferred.resolved

    deferred.resolve(True)

    assert deferred.resolved
    assert await deferred.wait() is True
    with pytest.raises(AlreadyResolvedError):
        deferred.resolve(False)
    assert await deferred.wait() is True


@pytest.mark.anyio
async def test_deferred_wakes_waiter() -> None:
    deferred: Deferred[str] = Deferred()
    seen: list[str] = []

    async def waiter() -> None:
        seen.append(await deferred.wait())

    async with anyio.create_task_group() as tg:
        tg.start_soon(waiter)
        await anyio.wait_all_tasks_blocked()
        assert seen == []
        deferred.resolve("done")

    assert seen == ["done"]
