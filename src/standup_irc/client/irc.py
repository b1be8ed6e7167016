"""Minimal IRC client over anyio streams.

The client owns the socket and turns inbound lines into typed events. It
answers PING itself and keeps track of the nick the server assigned and the
channels it currently sits in; everything else is left to the caller.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass

import anyio
from anyio.abc import ByteStream
from anyio.streams.buffered import BufferedByteReceiveStream

from ..logging import get_logger
from . import lines
from .lines import CTCP_DELIM, IrcLine, parse_line

logger = get_logger(__name__)

LINE_DELIMITER = b"\n"


@dataclass(frozen=True, slots=True)
class Registered:
    nick: str


@dataclass(frozen=True, slots=True)
class MotdEnd:
    pass


@dataclass(frozen=True, slots=True)
class MessageReceived:
    sender: str
    target: str
    text: str


@dataclass(frozen=True, slots=True)
class NoticeReceived:
    source: str | None
    target: str
    text: str


@dataclass(frozen=True, slots=True)
class Invited:
    channel: str
    by: str


@dataclass(frozen=True, slots=True)
class Kicked:
    channel: str
    user: str
    by: str


@dataclass(frozen=True, slots=True)
class ServerError:
    code: str
    params: tuple[str, ...]


IrcEvent = (
    Registered
    | MotdEnd
    | MessageReceived
    | NoticeReceived
    | Invited
    | Kicked
    | ServerError
)


def _is_channel(target: str) -> bool:
    return target[:1] in {"#", "&", "+", "!"}


class IrcClient:
    def __init__(
        self,
        stream: ByteStream,
        *,
        nick: str,
        username: str | None = None,
        realname: str | None = None,
        encoding: str = "utf-8",
    ) -> None:
        self._stream = stream
        self._receiver = BufferedByteReceiveStream(stream)
        self._send_lock = anyio.Lock()
        self._nick = nick
        self._username = username or nick
        self._realname = realname or nick
        self._encoding = encoding
        self._channels: set[str] = set()
        self._registered = False

    @classmethod
    async def connect(
        cls,
        host: str,
        port: int,
        *,
        nick: str,
        ssl: bool = False,
    ) -> IrcClient:
        stream = await anyio.connect_tcp(host, port, tls=ssl)
        logger.info("irc.connected", host=host, port=port, ssl=ssl)
        return cls(stream, nick=nick)

    @property
    def nick(self) -> str:
        return self._nick

    def current_channels(self) -> frozenset[str]:
        return frozenset(self._channels)

    async def register(self) -> None:
        await self._write(lines.nick(self._nick))
        await self._write(lines.user(self._username, self._realname))

    async def send(self, target: str, text: str) -> None:
        for chunk in lines.split_text(text):
            await self._write(lines.privmsg(target, chunk))

    async def action(self, target: str, text: str) -> None:
        await self._write(lines.ctcp_action(target, text))

    async def join(self, channel: str) -> None:
        await self._write(lines.join(channel))

    async def part(self, channel: str) -> None:
        await self._write(lines.part(channel))

    async def aclose(self) -> None:
        await self._stream.aclose()

    async def events(self) -> AsyncIterator[IrcEvent]:
        """Yield events until the server closes the connection."""
        while True:
            try:
                raw = await self._receiver.receive_until(
                    LINE_DELIMITER, lines.MAX_LINE_BYTES * 16
                )
            except (anyio.EndOfStream, anyio.IncompleteRead):
                logger.info("irc.disconnected")
                return
            except anyio.DelimiterNotFound:
                logger.error("irc.line_too_long")
                return
            text = raw.decode(self._encoding, errors="replace").rstrip("\r")
            if not text:
                continue
            line = parse_line(text)
            event = await self._handle_line(line)
            if event is not None:
                yield event

    async def _handle_line(self, line: IrcLine) -> IrcEvent | None:
        command = line.command
        if command == "PING":
            await self._write(lines.pong(line.param(0)))
            return None
        if command == "001":
            self._registered = True
            self._nick = line.param(0, self._nick)
            logger.info("irc.registered", nick=self._nick)
            return Registered(self._nick)
        if command in {"376", "422"}:
            return MotdEnd()
        if command == "433" and not self._registered:
            self._nick = f"{self._nick}_"
            logger.info("irc.nick_in_use", retry=self._nick)
            await self._write(lines.nick(self._nick))
            return None
        if command == "NICK":
            if self._is_me(line.source_nick):
                self._nick = line.param(0, self._nick)
                logger.info("irc.nick_changed", nick=self._nick)
            return None
        if command == "JOIN":
            if self._is_me(line.source_nick):
                self._channels.add(line.param(0).lower())
                logger.info("irc.joined", channel=line.param(0))
            return None
        if command == "PART":
            if self._is_me(line.source_nick):
                self._channels.discard(line.param(0).lower())
                logger.info("irc.parted", channel=line.param(0))
            return None
        if command == "KICK":
            channel, kicked = line.param(0), line.param(1)
            if self._is_me(kicked):
                self._channels.discard(channel.lower())
            return Kicked(channel=channel, user=kicked, by=line.source_nick or "")
        if command == "INVITE":
            return Invited(channel=line.param(1), by=line.source_nick or "")
        if command == "PRIVMSG":
            return self._privmsg_event(line)
        if command == "NOTICE":
            return NoticeReceived(
                source=line.source_nick, target=line.param(0), text=line.param(-1)
            )
        if command.isdigit() and command[:1] in {"4", "5"}:
            return ServerError(code=command, params=line.params)
        return None

    def _privmsg_event(self, line: IrcLine) -> MessageReceived | None:
        sender = line.source_nick
        if sender is None:
            return None
        target, text = line.param(0), line.param(1)
        if text.startswith(CTCP_DELIM):
            # CTCP requests (VERSION, ACTION, ...) are not commands.
            return None
        if not _is_channel(target):
            # Private message: replies go back to the sender.
            target = sender
        return MessageReceived(sender=sender, target=target, text=text)

    def _is_me(self, nick: str | None) -> bool:
        return nick is not None and nick.lower() == self._nick.lower()

    async def _write(self, line: str) -> None:
        async with self._send_lock:
            await self._stream.send(line.encode(self._encoding))
