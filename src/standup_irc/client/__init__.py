"""IRC network client."""

from __future__ import annotations

from .irc import (
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

__all__ = [
    "Invited",
    "IrcClient",
    "IrcEvent",
    "Kicked",
    "MessageReceived",
    "MotdEnd",
    "NoticeReceived",
    "Registered",
    "ServerError",
]
