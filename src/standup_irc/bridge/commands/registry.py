"""Command registry."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ...logging import get_logger

if TYPE_CHECKING:
    from ..config import BridgeConfig

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CommandInvocation:
    identity: str
    channel: str
    message: str
    args: tuple[str, ...] = ()


CommandHandler = Callable[["BridgeConfig", CommandInvocation], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    name: str
    handler: CommandHandler
    help: str | None = None
    usage: str | None = None
    privileged: bool = False


@dataclass(frozen=True, slots=True)
class HelpEntry:
    name: str
    usage: str | None
    help: str


class RegistryFrozenError(RuntimeError):
    pass


class HelpListing:
    """Help entries in name order; iterating again starts over."""

    def __init__(self, commands: Mapping[str, CommandSpec]) -> None:
        self._commands = commands

    def __iter__(self) -> Iterator[HelpEntry]:
        for name in sorted(self._commands):
            spec = self._commands[name]
            if spec.help is None:
                continue
            yield HelpEntry(name=name, usage=spec.usage, help=spec.help)


class CommandRegistry:
    """Name to `CommandSpec` mapping with a fallback for unknown names."""

    def __init__(self, default: CommandSpec) -> None:
        self._default = default
        self._commands: dict[str, CommandSpec] = {}
        self._frozen = False

    @property
    def default(self) -> CommandSpec:
        return self._default

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, spec: CommandSpec) -> None:
        """Add a command. A later registration under the same name wins."""
        if self._frozen:
            raise RegistryFrozenError(f"cannot register {spec.name!r} after startup")
        if spec.name in self._commands:
            logger.debug("commands.override", name=spec.name)
        self._commands[spec.name] = spec

    def freeze(self) -> None:
        self._frozen = True

    def resolve(self, name: str) -> CommandSpec:
        return self._commands.get(name, self._default)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def names(self) -> list[str]:
        return sorted(self._commands)

    def list_help(self) -> HelpListing:
        return HelpListing(self._commands)
