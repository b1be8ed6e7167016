"""The chat transport surface the bot core depends on."""

from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    @property
    def nick(self) -> str:
        """The nick currently assigned by the network."""
        ...

    async def send(self, target: str, text: str) -> None: ...

    async def action(self, target: str, text: str) -> None: ...

    async def join(self, channel: str) -> None: ...

    async def part(self, channel: str) -> None: ...

    def current_channels(self) -> frozenset[str]: ...
