"""Command parsing utilities."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeAlias

COMMAND_MARKER = "!"
QUOTES = ('"', "'")
# Plain phrases (no command marker) that map to a command.
RESERVED_PHRASES = {"botsnack": "botsnack"}
IMPLICIT_COMMAND = "status"


@dataclass(frozen=True, slots=True)
class ExplicitCommand:
    name: str
    args: tuple[str, ...]
    text: str


@dataclass(frozen=True, slots=True)
class ReservedPhrase:
    command: str
    text: str


@dataclass(frozen=True, slots=True)
class ImplicitStatusPost:
    text: str


ClassifiedMessage: TypeAlias = "ExplicitCommand | ReservedPhrase | ImplicitStatusPost"


def address_pattern(nick: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(nick)}[:,]\s*(.*)$", re.IGNORECASE | re.DOTALL)


def strip_address(text: str, nick: str) -> str | None:
    """Return the text after `<nick>:` / `<nick>,`, or None if not addressed."""
    if not nick:
        return None
    match = address_pattern(nick).match(text)
    if match is None:
        return None
    return match.group(1).strip()


def parse_args(tokens: Sequence[str]) -> tuple[str, ...]:
    """Re-join quoted runs of already split tokens.

    `['"two', 'words"', 'x']` becomes `('two words', 'x')`. A quote that is
    never closed leaves its tokens as they were.
    """
    args: list[str] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        quote = token[:1]
        if quote not in QUOTES:
            args.append(token)
            index += 1
            continue
        if len(token) > 1 and token.endswith(quote):
            args.append(token[1:-1])
            index += 1
            continue
        end = index + 1
        while end < len(tokens) and not tokens[end].endswith(quote):
            end += 1
        if end >= len(tokens):
            args.append(token)
            index += 1
            continue
        joined = " ".join(tokens[index : end + 1])
        args.append(joined[1:-1])
        index = end + 1
    return tuple(args)


def split_command_args(text: str) -> tuple[str, ...]:
    """Split command arguments on whitespace, keeping quoted runs together.

    Args:
        text: The arguments text to split.

    Returns:
        A tuple of argument strings.
    """
    if not text.strip():
        return ()
    return parse_args(text.split())


def classify_message(text: str) -> ClassifiedMessage:
    """Classify the text of an addressed message (address already removed)."""
    stripped = text.strip()
    if stripped.startswith(COMMAND_MARKER):
        token, *rest_parts = stripped.split(None, 1)
        rest = rest_parts[0] if rest_parts else ""
        return ExplicitCommand(
            name=token[len(COMMAND_MARKER) :].lower(),
            args=split_command_args(rest),
            text=stripped,
        )
    phrase = RESERVED_PHRASES.get(stripped.lower())
    if phrase is not None:
        return ReservedPhrase(command=phrase, text=stripped)
    return ImplicitStatusPost(text=stripped)
