"""Command handling for the IRC bridge.

This module provides command parsing, dispatch, and execution for the bot.
"""

from __future__ import annotations

from .builtin import (
    BUILTIN_COMMAND_IDS,
    DEFAULT_COMMAND,
    PRIVILEGED_COMMANDS,
    build_registry,
)
from .dispatch import CommandDispatcher
from .parse import classify_message, parse_args, split_command_args, strip_address
from .registry import CommandInvocation, CommandRegistry, CommandSpec

__all__ = [
    "BUILTIN_COMMAND_IDS",
    "DEFAULT_COMMAND",
    "PRIVILEGED_COMMANDS",
    "CommandDispatcher",
    "CommandInvocation",
    "CommandRegistry",
    "CommandSpec",
    "build_registry",
    "classify_message",
    "parse_args",
    "split_command_args",
    "strip_address",
]
