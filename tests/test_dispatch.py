"""Tests for bridge/commands/dispatch.py."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import anyio
import pytest

from standup_irc.bridge.commands.dispatch import CommandDispatcher
from standup_irc.bridge.commands.registry import CommandSpec
from standup_irc.bridge.commands.builtin import build_registry
from standup_irc.channel_store import ChannelStore
from standup_irc.outcome import Failure

from .irc_fakes import make_cfg, make_real_auth_cfg, make_trusting_auth


async def _dispatch(cfg, *messages: tuple[str, str, str]) -> list[bool]:
    results: list[bool] = []
    async with anyio.create_task_group() as tg:
        dispatcher = CommandDispatcher(cfg, tg)
        for identity, channel, text in messages:
            results.append(dispatcher.handle_message(identity, channel, text))
    return results


@pytest.mark.anyio
async def test_ping_scenario() -> None:
    cfg, transport = make_cfg()
    assert await _dispatch(cfg, ("alice", "#chan", "bot: !ping")) == [True]
    assert transport.send_calls == [("#chan", "Pong!")]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "text", ["hello everyone", "bot !ping", "botty: !ping", "!ping", "standup: !ping"]
)
async def test_unaddressed_messages_are_ignored(text: str) -> None:
    cfg, transport = make_cfg()
    assert await _dispatch(cfg, ("alice", "#chan", text)) == [False]
    assert transport.send_calls == []
    cfg.api.create_status.assert_not_awaited()


@pytest.mark.anyio
async def test_address_follows_current_nick() -> None:
    cfg, transport = make_cfg()
    transport.nick = "bot_"
    results = await _dispatch(
        cfg, ("alice", "#chan", "bot: !ping"), ("alice", "#chan", "bot_, !ping")
    )
    assert results == [False, True]
    assert transport.texts() == ["Pong!"]


@pytest.mark.anyio
async def test_unknown_command_uses_default() -> None:
    cfg, transport = make_cfg()
    await _dispatch(cfg, ("alice", "#chan", "bot: !frobnicate now"))
    assert transport.texts() == ["alice: Huh? Try !help."]


@pytest.mark.anyio
async def test_botsnack_phrase_routes_to_botsnack() -> None:
    cfg, transport = make_cfg()
    await _dispatch(cfg, ("alice", "#chan", "bot: BOTSNACK"))
    assert len(transport.texts()) == 1
    cfg.api.create_status.assert_not_awaited()


@pytest.mark.anyio
async def test_plain_message_becomes_status_for_channel() -> None:
    cfg, transport = make_cfg()
    await _dispatch(cfg, ("alice", "#standup", "bot: fixed the login bug"))
    cfg.auth.check_identity.assert_awaited_once_with("alice")
    cfg.api.create_status.assert_awaited_once_with(
        "alice", "standup", "fixed the login bug"
    )
    assert transport.texts() == ["Ok, submitted status #7"]


@pytest.mark.anyio
async def test_non_numeric_delete_scenario() -> None:
    cfg, transport = make_cfg()
    await _dispatch(cfg, ("alice", "#chan", "bot: !delete abc"))
    cfg.api.delete_status.assert_not_awaited()
    assert transport.texts() == ['"abc" is not a valid status ID.']


@pytest.mark.anyio
async def test_unauthorized_delete_is_silent() -> None:
    cfg, transport = make_cfg(auth=make_trusting_auth(False))
    await _dispatch(cfg, ("mallory", "#chan", "bot: !delete 42"))
    cfg.auth.check_identity.assert_awaited_once_with("mallory")
    cfg.api.delete_status.assert_not_awaited()
    assert transport.send_calls == []


@pytest.mark.anyio
async def test_unauthorized_can_announce_denial() -> None:
    cfg, transport = make_cfg(auth=make_trusting_auth(False), announce_denials=True)
    await _dispatch(cfg, ("mallory", "#chan", "bot: !delete 42"))
    cfg.api.delete_status.assert_not_awaited()
    assert len(transport.send_calls) == 1
    assert transport.send_calls[0][1].startswith("mallory: ")


@pytest.mark.anyio
async def test_unprivileged_commands_skip_auth() -> None:
    cfg, _ = make_cfg()
    await _dispatch(cfg, ("alice", "#chan", "bot: !ping"))
    cfg.auth.check_identity.assert_not_awaited()


@pytest.mark.anyio
async def test_forbidden_delete_scenario() -> None:
    cfg, transport = make_cfg()
    cfg.api.delete_status = AsyncMock(return_value=Failure(403, "not yours"))
    await _dispatch(cfg, ("alice", "#chan", "bot: !delete 42"))
    assert transport.texts() == [
        "You don't have permission to do that. Did you post that status?"
    ]


@pytest.mark.anyio
async def test_failing_handler_does_not_stop_dispatch() -> None:
    async def explode(cfg, cmd) -> None:
        raise RuntimeError("boom")

    cfg, transport = make_cfg()
    cfg.registry = build_registry(CommandSpec(name="explode", handler=explode))

    results = await _dispatch(
        cfg, ("alice", "#chan", "bot: !explode"), ("alice", "#chan", "bot: !ping")
    )

    assert results == [True, True]
    assert transport.texts() == ["Pong!"]


@pytest.mark.anyio
async def test_delete_waits_for_nickserv_then_runs() -> None:
    cfg, transport = make_real_auth_cfg()

    async with anyio.create_task_group() as tg:
        dispatcher = CommandDispatcher(cfg, tg)
        dispatcher.handle_message("alice", "#chan", "bot: !delete 42")
        dispatcher.handle_message("alice", "#chan", "bot: !delete 43")
        await anyio.wait_all_tasks_blocked()

        assert transport.send_calls == [("NickServ", "STATUS alice")]
        cfg.api.delete_status.assert_not_awaited()

        dispatcher.handle_notice("NickServ", "STATUS alice 3")

    assert cfg.api.delete_status.await_count == 2
    assert sorted(transport.texts("#chan")) == [
        "Ok, status #42 is no more!",
        "Ok, status #43 is no more!",
    ]


@pytest.mark.anyio
async def test_delete_from_unidentified_nick_never_calls_api() -> None:
    cfg, transport = make_real_auth_cfg()

    async with anyio.create_task_group() as tg:
        dispatcher = CommandDispatcher(cfg, tg)
        dispatcher.handle_message("mallory", "#chan", "bot: !delete 42")
        await anyio.wait_all_tasks_blocked()
        dispatcher.handle_notice("NickServ", "STATUS mallory 1")

    cfg.api.delete_status.assert_not_awaited()
    assert transport.texts("#chan") == []


@pytest.mark.anyio
async def test_auth_timeout_denies_everyone_waiting() -> None:
    cfg, transport = make_real_auth_cfg(timeout=0.05)

    await _dispatch(
        cfg,
        ("alice", "#chan", "bot: !delete 42"),
        ("alice", "#chan", "bot: !status proj hello"),
    )

    assert transport.send_calls == [("NickServ", "STATUS alice")]
    cfg.api.delete_status.assert_not_awaited()
    cfg.api.create_status.assert_not_awaited()


@pytest.mark.anyio
async def test_notices_from_others_are_not_auth_replies() -> None:
    cfg, transport = make_real_auth_cfg(timeout=0.05)

    async with anyio.create_task_group() as tg:
        dispatcher = CommandDispatcher(cfg, tg)
        dispatcher.handle_message("alice", "#chan", "bot: !delete 42")
        await anyio.wait_all_tasks_blocked()
        dispatcher.handle_notice("mallory", "STATUS alice 3")
        dispatcher.handle_notice(None, "*** Looking up your hostname")

    cfg.api.delete_status.assert_not_awaited()


@pytest.mark.anyio
async def test_invite_joins_and_remembers(tmp_path: Path) -> None:
    store = ChannelStore(tmp_path / "channels.json")
    cfg, transport = make_cfg(channel_store=store)

    async with anyio.create_task_group() as tg:
        CommandDispatcher(cfg, tg).handle_invite("#new", "alice")

    assert transport.joins == ["#new"]
    assert await store.get_invited_by("#new") == "alice"


@pytest.mark.anyio
async def test_kick_forgets_channel(tmp_path: Path) -> None:
    store = ChannelStore(tmp_path / "channels.json")
    await store.add_channel("#chan", "alice")
    await store.add_channel("#other", "alice")
    cfg, _ = make_cfg(channel_store=store)

    async with anyio.create_task_group() as tg:
        dispatcher = CommandDispatcher(cfg, tg)
        dispatcher.handle_kick("#other", "someone", "op")
        dispatcher.handle_kick("#chan", "BOT", "op")

    assert await store.list_channels() == ["#other"]
