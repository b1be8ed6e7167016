"""Routing of inbound chat events to commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from anyio.abc import TaskGroup

from ...logging import get_logger
from .parse import (
    IMPLICIT_COMMAND,
    ExplicitCommand,
    ReservedPhrase,
    classify_message,
    strip_address,
)
from .registry import CommandInvocation, CommandSpec

if TYPE_CHECKING:
    from ..config import BridgeConfig

logger = get_logger(__name__)


class CommandDispatcher:
    """Single entry point for inbound chat events.

    Handlers run as tasks on `task_group`, so the caller never waits for one
    to finish. A failing handler is logged and does not affect later events.
    """

    def __init__(self, cfg: BridgeConfig, task_group: TaskGroup) -> None:
        self._cfg = cfg
        self._task_group = task_group

    @property
    def cfg(self) -> BridgeConfig:
        return self._cfg

    def handle_message(self, identity: str, channel: str, text: str) -> bool:
        """Dispatch `text` if it is addressed to the bot.

        Returns False for messages that are not addressed to the bot.
        """
        body = strip_address(text, self._cfg.transport.nick)
        if body is None:
            return False
        classified = classify_message(body)
        if isinstance(classified, ExplicitCommand):
            name, args = classified.name, classified.args
        elif isinstance(classified, ReservedPhrase):
            name, args = classified.command, ()
        else:
            name, args = IMPLICIT_COMMAND, (channel, classified.text)
        spec = self._cfg.registry.resolve(name)
        logger.info(
            "dispatch.command",
            command=name,
            resolved=spec.name,
            identity=identity,
            channel=channel,
        )
        self.start(
            spec,
            CommandInvocation(
                identity=identity, channel=channel, message=body, args=args
            ),
        )
        return True

    def handle_notice(self, source: str | None, text: str) -> None:
        if source is None:
            logger.info("dispatch.server_notice", text=text)
            return
        if self._cfg.auth.is_service(source):
            self._cfg.auth.notify_reply(source, text)

    def handle_invite(self, channel: str, by: str) -> None:
        logger.info("dispatch.invited", channel=channel, by=by)
        self.start(
            self._cfg.registry.resolve("goto"),
            CommandInvocation(identity=by, channel=channel, message="", args=(channel,)),
        )

    def handle_kick(self, channel: str, user: str, by: str) -> None:
        if user.lower() != self._cfg.transport.nick.lower():
            return
        logger.info("dispatch.kicked", channel=channel, by=by)
        if self._cfg.channel_store is not None:
            self._task_group.start_soon(self._forget_channel, channel)

    def start(self, spec: CommandSpec, cmd: CommandInvocation) -> None:
        self._task_group.start_soon(self.invoke, spec, cmd, name=f"command:{spec.name}")

    async def invoke(self, spec: CommandSpec, cmd: CommandInvocation) -> bool:
        """Run one command, gated on identity for privileged ones.

        Returns whether the handler ran to completion.
        """
        try:
            if spec.privileged and not await self._cfg.auth.check_identity(
                cmd.identity
            ):
                logger.info(
                    "dispatch.unauthorized", command=spec.name, identity=cmd.identity
                )
                if self._cfg.announce_denials:
                    await self._cfg.transport.send(
                        cmd.channel,
                        f"{cmd.identity}: Sorry, I can't do that until you identify "
                        "with NickServ.",
                    )
                return False
            await spec.handler(self._cfg, cmd)
        except Exception:
            logger.exception(
                "dispatch.handler_failed",
                command=spec.name,
                identity=cmd.identity,
                channel=cmd.channel,
            )
            return False
        return True

    async def _forget_channel(self, channel: str) -> None:
        try:
            await self._cfg.channel_store.remove_channel(channel)
        except OSError:
            logger.exception("dispatch.forget_channel_failed", channel=channel)
