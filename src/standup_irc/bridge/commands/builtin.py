"""Built-in bot commands."""

from __future__ import annotations

import random
import socket
from dataclasses import replace
from typing import TYPE_CHECKING

from ...api import USER_FIELDS
from ...client.lines import is_valid_nick
from ...logging import get_logger
from ...outcome import Failure, Success
from .registry import CommandInvocation, CommandRegistry, CommandSpec

if TYPE_CHECKING:
    from ..config import BridgeConfig

logger = get_logger(__name__)

# Commands that change data on the standup server for the sender.
PRIVILEGED_COMMANDS = frozenset({"status", "delete", "update"})

STATUS_USAGE = "<project> status message"
DELETE_USAGE = "<id>"
GOTO_USAGE = "<channel>"
TRUST_USAGE = "<user>"
UPDATE_USAGE = "<name|email|github_handle> <value> [<user>]"
ANNOUNCE_USAGE = "<message>"

GENERIC_FAILURE = "I'm a failure, I couldn't do it."
NO_PERMISSION = "You don't have permission to do that."


async def _reply(cfg: BridgeConfig, cmd: CommandInvocation, text: str) -> None:
    await cfg.transport.send(cmd.channel, text)


async def _reply_usage(cfg: BridgeConfig, cmd: CommandInvocation, name: str) -> None:
    spec = cfg.registry.resolve(name)
    usage = f" {spec.usage}" if spec.usage else ""
    await _reply(cfg, cmd, f"Usage: !{name}{usage}")


def _strip_hash(value: str) -> str:
    return value[1:] if value.startswith("#") else value


def _failure_text(failure: Failure, *, forbidden: str) -> str:
    if failure.forbidden:
        return forbidden
    if failure.detail:
        return f'{GENERIC_FAILURE} The server said: "{failure.detail}"'
    return GENERIC_FAILURE


async def _handle_announce(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    if not cmd.args:
        await _reply_usage(cfg, cmd, "announce")
        return
    text = " ".join(cmd.args)
    origin = cmd.channel.lower()
    for channel in sorted(cfg.transport.current_channels()):
        if channel.lower() != origin:
            await cfg.transport.send(channel, text)


async def _handle_botsnack(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    replies = [
        "Yummy!",
        f"Thanks, {cmd.identity}!",
        "My favorite!",
        "Can I have another?",
        "Tasty!",
    ]
    await _reply(cfg, cmd, random.choice(replies))


async def _handle_bye(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    await _reply(cfg, cmd, "Bye!")
    await cfg.transport.part(cmd.channel)
    if cfg.channel_store is not None:
        await cfg.channel_store.remove_channel(cmd.channel)


async def _handle_hostname(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    await _reply(cfg, cmd, f"I'm running on {socket.gethostname()}")


async def _handle_chanlist(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    await _reply(cfg, cmd, "I'm currently in:")
    await _reply(cfg, cmd, ", ".join(sorted(cfg.transport.current_channels())))


async def _handle_delete(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    if not cmd.args:
        await _reply_usage(cfg, cmd, "delete")
        return
    raw_id = _strip_hash(cmd.args[0])
    if not (raw_id.isascii() and raw_id.isdecimal()):
        await _reply(cfg, cmd, f'"{cmd.args[0]}" is not a valid status ID.')
        return
    status_id = int(raw_id)

    outcome = await cfg.api.delete_status(status_id, cmd.identity)
    if isinstance(outcome, Success):
        await _reply(cfg, cmd, f"Ok, status #{status_id} is no more!")
        return
    await _reply(
        cfg,
        cmd,
        _failure_text(
            outcome,
            forbidden=f"{NO_PERMISSION} Did you post that status?",
        ),
    )


async def _handle_goto(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    if not cmd.args or not cmd.args[0].strip("#"):
        await _reply_usage(cfg, cmd, "goto")
        return
    channel = cmd.args[0]
    if not channel.startswith("#"):
        channel = f"#{channel}"
    await cfg.transport.join(channel)
    if cfg.channel_store is not None:
        await cfg.channel_store.add_channel(channel, cmd.identity)


async def _handle_help(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    await _reply(cfg, cmd, "Available commands:")
    for entry in cfg.registry.list_help():
        parts = [f"!{entry.name}"]
        if entry.usage is not None:
            parts.append(entry.usage)
        parts.append(f"- {entry.help}")
        await _reply(cfg, cmd, " ".join(parts))


async def _handle_ping(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    await _reply(cfg, cmd, "Pong!")


async def _handle_status(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    if len(cmd.args) < 2 or not _strip_hash(cmd.args[0]):
        await _reply_usage(cfg, cmd, "status")
        return
    project = _strip_hash(cmd.args[0])
    content = " ".join(cmd.args[1:]).strip()
    if not content:
        await _reply_usage(cfg, cmd, "status")
        return

    outcome = await cfg.api.create_status(cmd.identity, project, content)
    if isinstance(outcome, Success):
        await _reply(cfg, cmd, f"Ok, submitted status #{outcome.payload.get('id')}")
        return
    await _reply(cfg, cmd, "Uh oh, something went wrong.")


async def _handle_trust(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    if not cmd.args:
        await _reply_usage(cfg, cmd, "trust")
        return
    who = cmd.args[0]
    if await cfg.auth.check_identity(who):
        await _reply(cfg, cmd, f"I trust {who}")
    else:
        await _reply(cfg, cmd, f"I don't trust {who}")


async def _handle_update(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    if len(cmd.args) < 2 or cmd.args[0] not in USER_FIELDS:
        await _reply_usage(cfg, cmd, "update")
        return
    field, value = cmd.args[0], cmd.args[1]
    target = cmd.args[2] if len(cmd.args) > 2 else cmd.identity
    if not is_valid_nick(target):
        await _reply(cfg, cmd, f'"{target}" is not a valid nick.')
        return

    outcome = await cfg.api.update_user(cmd.identity, field, value, target)
    if isinstance(outcome, Success):
        await cfg.transport.action(cmd.channel, "updates some stuff!")
        return
    await _reply(cfg, cmd, _failure_text(outcome, forbidden=NO_PERMISSION))


async def _handle_default(cfg: BridgeConfig, cmd: CommandInvocation) -> None:
    await _reply(cfg, cmd, f"{cmd.identity}: Huh? Try !help.")


DEFAULT_COMMAND = CommandSpec(name="default", handler=_handle_default)

BUILTIN_COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec(
        name="announce",
        handler=_handle_announce,
        help="Broadcast a message in all other channels.",
        usage=ANNOUNCE_USAGE,
    ),
    CommandSpec(name="botsnack", handler=_handle_botsnack),
    CommandSpec(
        name="bye", handler=_handle_bye, help="Ask the bot to leave the channel."
    ),
    CommandSpec(
        name="chanlist",
        handler=_handle_chanlist,
        help="Get a list of channels that I am in.",
    ),
    CommandSpec(
        name="delete",
        handler=_handle_delete,
        help="Delete a status by id.",
        usage=DELETE_USAGE,
    ),
    CommandSpec(
        name="goto",
        handler=_handle_goto,
        help="Tell the bot to join a channel.",
        usage=GOTO_USAGE,
    ),
    CommandSpec(name="help", handler=_handle_help, help="This help message."),
    CommandSpec(
        name="hostname", handler=_handle_hostname, help="Ask the bot where it is."
    ),
    CommandSpec(name="ping", handler=_handle_ping, help="A simple presence check."),
    CommandSpec(name="status", handler=_handle_status, usage=STATUS_USAGE),
    CommandSpec(
        name="trust",
        handler=_handle_trust,
        help="Check a user's authorization status.",
        usage=TRUST_USAGE,
    ),
    CommandSpec(
        name="update",
        handler=_handle_update,
        help="Update the user's settings.",
        usage=UPDATE_USAGE,
    ),
)

BUILTIN_COMMAND_IDS = frozenset(spec.name for spec in BUILTIN_COMMANDS)


def build_registry(*extra: CommandSpec, freeze: bool = True) -> CommandRegistry:
    """Registry with every built-in command, then `extra` (which may override)."""
    registry = CommandRegistry(default=DEFAULT_COMMAND)
    for spec in (*BUILTIN_COMMANDS, *extra):
        if spec.name in PRIVILEGED_COMMANDS and not spec.privileged:
            spec = replace(spec, privileged=True)
        registry.register(spec)
    if freeze:
        registry.freeze()
    logger.debug("commands.registered", names=registry.names())
    return registry
