"""IRC line parsing and builders (RFC 1459 framing)."""

from __future__ import annotations

import re
from dataclasses import dataclass

MAX_LINE_BYTES = 512
# Room left for the server-added ":nick!user@host " prefix when relayed.
MAX_TEXT_BYTES = 400

CTCP_DELIM = "\x01"

# RFC 2812 nickname: letter or special first, then letters, digits, specials, "-".
_NICK_RE = re.compile(r"[A-Za-z\[\]\\`_^{|}][A-Za-z0-9\[\]\\`_^{|}-]*")


def is_valid_nick(name: str) -> bool:
    return _NICK_RE.fullmatch(name) is not None


@dataclass(frozen=True, slots=True)
class IrcLine:
    command: str
    params: tuple[str, ...] = ()
    prefix: str | None = None

    @property
    def source_nick(self) -> str | None:
        """Nick part of the prefix, or None for server-originated lines."""
        if self.prefix is None:
            return None
        nick, sep, _ = self.prefix.partition("!")
        if not sep and "." in nick:
            return None
        return nick or None

    def param(self, index: int, default: str = "") -> str:
        if index < len(self.params):
            return self.params[index]
        return default


def parse_line(raw: str) -> IrcLine:
    """Parse one line without its CRLF terminator.

    IRCv3 message tags are dropped.
    """
    line = raw.rstrip("\r\n")
    if line.startswith("@"):
        _, _, line = line.partition(" ")
    prefix: str | None = None
    if line.startswith(":"):
        prefix, _, line = line[1:].partition(" ")
    trailing: str | None = None
    head, sep, tail = line.partition(" :")
    if sep:
        trailing = tail
    elif head.startswith(":"):
        head, trailing = "", head[1:]
    parts = head.split()
    if not parts:
        return IrcLine(command="", params=(), prefix=prefix)
    params = list(parts[1:])
    if trailing is not None:
        params.append(trailing)
    return IrcLine(command=parts[0].upper(), params=tuple(params), prefix=prefix)


def format_line(command: str, *params: str) -> str:
    """Build one line, CRLF included. The last param may contain spaces."""
    for param in params[:-1]:
        if not param or " " in param or param.startswith(":"):
            raise ValueError(f"invalid middle parameter: {param!r}")
    pieces = [command, *params[:-1]]
    if params:
        last = params[-1]
        if not last or " " in last or last.startswith(":"):
            last = f":{last}"
        pieces.append(last)
    line = " ".join(pieces)
    if "\r" in line or "\n" in line:
        raise ValueError("IRC lines cannot contain CR or LF")
    return f"{line}\r\n"


def split_text(text: str, limit: int = MAX_TEXT_BYTES) -> list[str]:
    """Split outgoing text on newlines and into chunks of at most `limit` bytes."""
    chunks: list[str] = []
    for line in text.splitlines() or [""]:
        current = ""
        for word in line.split(" "):
            candidate = f"{current} {word}" if current else word
            if len(candidate.encode("utf-8")) <= limit:
                current = candidate
                continue
            if current:
                chunks.append(current)
            while len(word.encode("utf-8")) > limit:
                cut = limit
                while len(word[:cut].encode("utf-8")) > limit:
                    cut -= 1
                chunks.append(word[:cut])
                word = word[cut:]
            current = word
        if current:
            chunks.append(current)
    return chunks


def privmsg(target: str, text: str) -> str:
    return format_line("PRIVMSG", target, text)


def ctcp_action(target: str, text: str) -> str:
    return format_line("PRIVMSG", target, f"{CTCP_DELIM}ACTION {text}{CTCP_DELIM}")


def join(channel: str) -> str:
    return format_line("JOIN", channel)


def part(channel: str) -> str:
    return format_line("PART", channel)


def pong(token: str) -> str:
    return format_line("PONG", token)


def nick(name: str) -> str:
    return format_line("NICK", name)


def user(username: str, realname: str) -> str:
    return format_line("USER", username, "0", "*", realname)
