"""Dependencies shared by the dispatcher and command handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..api import StandupClient
    from ..auth import AuthManager
    from ..channel_store import ChannelStore
    from ..transport import Transport
    from .commands.registry import CommandRegistry


@dataclass(slots=True)
class BridgeConfig:
    transport: Transport
    api: StandupClient
    auth: AuthManager
    registry: CommandRegistry
    channel_store: ChannelStore | None = None
    announce_denials: bool = False
    configured_channels: tuple[str, ...] = ()
    nickserv_password: str | None = None
