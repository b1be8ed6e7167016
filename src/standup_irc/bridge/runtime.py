"""Main loop: connect, then route IRC events to the dispatcher one at a time."""

from __future__ import annotations

import anyio
from anyio.abc import TaskGroup

from ..api import StandupClient
from ..auth import AuthManager
from ..channel_store import ChannelStore
from ..client import (
    Invited,
    IrcClient,
    IrcEvent,
    Kicked,
    MessageReceived,
    MotdEnd,
    NoticeReceived,
    Registered,
    ServerError,
)
from ..config import AppConfig
from ..logging import get_logger
from ..transport import Transport
from .commands import CommandDispatcher, CommandRegistry, build_registry
from .config import BridgeConfig

logger = get_logger(__name__)

# ERR_UNKNOWNCOMMAND shows up constantly on some networks and is harmless.
IGNORED_ERROR_CODES = frozenset({"421"})


def build_bridge_config(
    config: AppConfig,
    transport: Transport,
    api: StandupClient,
    *,
    registry: CommandRegistry | None = None,
) -> BridgeConfig:
    auth = AuthManager(
        transport.send,
        service=config.auth.service,
        probe=config.auth.probe,
        timeout=config.auth.timeout,
    )
    channel_store = (
        ChannelStore(config.channel_store_path)
        if config.channel_store_path is not None
        else None
    )
    return BridgeConfig(
        transport=transport,
        api=api,
        auth=auth,
        registry=registry or build_registry(),
        channel_store=channel_store,
        announce_denials=config.auth.announce_denials,
        configured_channels=config.irc.channels,
        nickserv_password=config.irc.password,
    )


async def _startup_sequence(cfg: BridgeConfig) -> None:
    """Identify with NickServ, then join configured and remembered channels."""
    if cfg.nickserv_password:
        logger.info("startup.identify", service=cfg.auth.service)
        await cfg.transport.send(
            cfg.auth.service, f"identify {cfg.nickserv_password}"
        )
    channels = list(cfg.configured_channels)
    if cfg.channel_store is not None:
        channels.extend(await cfg.channel_store.list_channels())
    seen: set[str] = set()
    for channel in channels:
        key = channel.lower()
        if key in seen:
            continue
        seen.add(key)
        await cfg.transport.join(channel)
    logger.info("startup.joined", channels=sorted(seen))


def route_event(
    dispatcher: CommandDispatcher, task_group: TaskGroup, event: IrcEvent
) -> None:
    if isinstance(event, MessageReceived):
        dispatcher.handle_message(event.sender, event.target, event.text)
    elif isinstance(event, NoticeReceived):
        dispatcher.handle_notice(event.source, event.text)
    elif isinstance(event, Invited):
        dispatcher.handle_invite(event.channel, event.by)
    elif isinstance(event, Kicked):
        dispatcher.handle_kick(event.channel, event.user, event.by)
    elif isinstance(event, Registered):
        logger.info("startup.nick", nick=event.nick)
    elif isinstance(event, MotdEnd):
        logger.info("startup.motd_seen")
        task_group.start_soon(_startup_sequence, dispatcher.cfg)
    elif isinstance(event, ServerError):
        if event.code in IGNORED_ERROR_CODES:
            logger.debug("irc.server_error", code=event.code, params=event.params)
        else:
            logger.warning("irc.server_error", code=event.code, params=event.params)


async def run_main_loop(config: AppConfig) -> None:
    client = await IrcClient.connect(
        config.irc.host,
        config.irc.port,
        nick=config.irc.nick,
        ssl=config.irc.ssl,
    )
    try:
        async with (
            StandupClient(
                config.standup.url,
                config.standup.api_key,
                timeout=config.standup.timeout,
            ) as api,
            anyio.create_task_group() as tg,
        ):
            cfg = build_bridge_config(config, client, api)
            dispatcher = CommandDispatcher(cfg, tg)
            await client.register()
            async for event in client.events():
                route_event(dispatcher, tg, event)
            tg.cancel_scope.cancel()
    finally:
        await client.aclose()
