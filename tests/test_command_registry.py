"""Tests for the command registry and the built-in command table."""

from __future__ import annotations

import pytest

from standup_irc.bridge.commands.builtin import (
    BUILTIN_COMMAND_IDS,
    DEFAULT_COMMAND,
    PRIVILEGED_COMMANDS,
    build_registry,
)
from standup_irc.bridge.commands.registry import (
    CommandRegistry,
    CommandSpec,
    HelpEntry,
    RegistryFrozenError,
)


async def _noop(cfg, cmd) -> None:
    return None


async def _other(cfg, cmd) -> None:
    return None


def _registry() -> CommandRegistry:
    return CommandRegistry(default=CommandSpec(name="default", handler=_noop))


def test_resolve_known_command() -> None:
    registry = _registry()
    spec = CommandSpec(name="ping", handler=_noop, help="pong")
    registry.register(spec)
    assert registry.resolve("ping") is spec


def test_resolve_unknown_falls_back_to_default() -> None:
    registry = _registry()
    assert registry.resolve("nope") is registry.default
    assert registry.resolve("") is registry.default


def test_last_registration_wins() -> None:
    registry = _registry()
    registry.register(CommandSpec(name="ping", handler=_noop))
    replacement = CommandSpec(name="ping", handler=_other)
    registry.register(replacement)
    assert registry.resolve("ping") is replacement
    assert len(registry) == 1


def test_register_after_freeze_raises() -> None:
    registry = _registry()
    registry.freeze()
    with pytest.raises(RegistryFrozenError):
        registry.register(CommandSpec(name="ping", handler=_noop))


def test_list_help_sorted_and_skips_missing_help() -> None:
    registry = _registry()
    registry.register(CommandSpec(name="zeta", handler=_noop, help="last"))
    registry.register(CommandSpec(name="hidden", handler=_noop, usage="<x>"))
    registry.register(CommandSpec(name="alpha", handler=_noop, help="first", usage="<a>"))

    entries = list(registry.list_help())

    assert entries == [
        HelpEntry(name="alpha", usage="<a>", help="first"),
        HelpEntry(name="zeta", usage=None, help="last"),
    ]
    assert "hidden" in registry


def test_list_help_is_restartable() -> None:
    registry = _registry()
    registry.register(CommandSpec(name="ping", handler=_noop, help="pong"))
    listing = registry.list_help()
    assert list(listing) == list(listing)


def test_build_registry_contains_builtins_and_is_frozen() -> None:
    registry = build_registry()
    assert registry.frozen
    assert set(registry.names()) == BUILTIN_COMMAND_IDS
    assert registry.default is DEFAULT_COMMAND


def test_build_registry_marks_privileged_commands() -> None:
    registry = build_registry()
    privileged = {name for name in registry.names() if registry.resolve(name).privileged}
    assert privileged == PRIVILEGED_COMMANDS == {"status", "delete", "update"}


def test_build_registry_extra_overrides_and_stays_privileged() -> None:
    registry = build_registry(CommandSpec(name="delete", handler=_other))
    spec = registry.resolve("delete")
    assert spec.handler is _other
    assert spec.privileged is True


def test_build_registry_hides_status_and_botsnack_from_help() -> None:
    names = [entry.name for entry in build_registry().list_help()]
    assert "status" not in names
    assert "botsnack" not in names
    assert names == sorted(names)
