"""NickServ-backed identity checks.

Before a privileged command runs, the bot asks NickServ whether the sender is
identified. NickServ answers with a free-text NOTICE some time later, on a
channel that also carries unrelated service chatter. `AuthManager` keeps one
pending request per nick, correlates decoded replies back to it, and resolves
every caller waiting on that request exactly once.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TypeAlias

import anyio

from .logging import get_logger
from .outcome import Deferred

logger = get_logger(__name__)

DEFAULT_SERVICE = "NickServ"
DEFAULT_PROBE = "STATUS {identity}"
DEFAULT_TIMEOUT_S = 10.0

# Atheme and Anope both report 3 for "identified to the owning account".
AUTHENTICATED_LEVEL = 3

_FORMATTING_RE = re.compile(r"\x03(?:\d{1,2}(?:,\d{1,2})?)?|[\x02\x0f\x16\x1d\x1f]")
_STATUS_RE = re.compile(r"^STATUS\s+(?P<nick>\S+)\s+(?P<level>\d+)\b", re.IGNORECASE)
_ACC_RE = re.compile(r"^(?P<nick>\S+)\s+ACC\s+(?P<level>\d+)\b", re.IGNORECASE)
_NOT_REGISTERED_RE = re.compile(
    r"^(?:nick(?:name)?\s+)?(?P<nick>\S+)\s+is not registered", re.IGNORECASE
)

ProbeSender = Callable[[str, str], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Authenticated:
    identity: str


@dataclass(frozen=True, slots=True)
class NotAuthenticated:
    identity: str


@dataclass(frozen=True, slots=True)
class Unrecognized:
    text: str


ServiceReply: TypeAlias = "Authenticated | NotAuthenticated | Unrecognized"
ReplyDecoder = Callable[[str], ServiceReply]


def strip_formatting(text: str) -> str:
    return _FORMATTING_RE.sub("", text)


def decode_service_reply(text: str) -> ServiceReply:
    """Map one NickServ notice to a reply variant."""
    clean = strip_formatting(text).strip()
    for pattern in (_STATUS_RE, _ACC_RE):
        match = pattern.match(clean)
        if match is not None:
            nick = match.group("nick")
            if int(match.group("level")) >= AUTHENTICATED_LEVEL:
                return Authenticated(nick)
            return NotAuthenticated(nick)
    match = _NOT_REGISTERED_RE.match(clean)
    if match is not None:
        return NotAuthenticated(match.group("nick").strip("'\""))
    return Unrecognized(text)


def _identity_key(identity: str) -> str:
    return identity.strip().lower()


@dataclass(slots=True)
class PendingAuthorization:
    identity: str
    created_at: float
    waiters: list[Deferred[bool]] = field(default_factory=list)


class AuthManager:
    def __init__(
        self,
        send: ProbeSender,
        *,
        service: str = DEFAULT_SERVICE,
        probe: str = DEFAULT_PROBE,
        timeout: float = DEFAULT_TIMEOUT_S,
        decoder: ReplyDecoder = decode_service_reply,
    ) -> None:
        self._send = send
        self._service = service
        self._probe = probe
        self._timeout = timeout
        self._decoder = decoder
        self._pending: dict[str, PendingAuthorization] = {}

    @property
    def service(self) -> str:
        return self._service

    @property
    def pending(self) -> Mapping[str, PendingAuthorization]:
        return MappingProxyType(self._pending)

    def is_pending(self, identity: str) -> bool:
        return _identity_key(identity) in self._pending

    def is_service(self, source: str | None) -> bool:
        return source is not None and source.lower() == self._service.lower()

    async def check_identity(self, identity: str) -> bool:
        """Return whether `identity` is currently identified with the service.

        Concurrent checks for the same nick share one probe. Resolves to
        False when no correlated reply arrives within the timeout.
        """
        key = _identity_key(identity)
        waiter: Deferred[bool] = Deferred()
        pending = self._pending.get(key)
        if pending is not None:
            pending.waiters.append(waiter)
            logger.debug(
                "auth.probe.joined", identity=identity, waiters=len(pending.waiters)
            )
        else:
            pending = PendingAuthorization(
                identity=identity, created_at=anyio.current_time(), waiters=[waiter]
            )
            self._pending[key] = pending
            await self._send_probe(pending)

        deadline = pending.created_at + self._timeout
        with anyio.move_on_after(max(0.0, deadline - anyio.current_time())):
            return await waiter.wait()
        if self._pending.get(key) is pending:
            logger.info("auth.probe.timeout", identity=pending.identity)
            self._resolve(key, pending, False)
        return await waiter.wait()

    def notify_reply(self, source: str | None, text: str) -> int:
        """Feed one service notice into the correlation engine.

        Returns how many waiters were resolved.
        """
        if not self.is_service(source):
            logger.debug("auth.reply.foreign_source", source=source)
            return 0
        try:
            reply = self._decoder(text)
        except Exception:
            logger.exception("auth.reply.decode_failed", text=text)
            return 0
        if isinstance(reply, Unrecognized):
            logger.debug("auth.reply.unrecognized", text=text)
            return 0
        key = _identity_key(reply.identity)
        pending = self._pending.get(key)
        if pending is None:
            logger.info("auth.reply.unmatched", identity=reply.identity, text=text)
            return 0
        return self._resolve(key, pending, isinstance(reply, Authenticated))

    async def _send_probe(self, pending: PendingAuthorization) -> None:
        probe = self._probe.format(identity=pending.identity)
        try:
            await self._send(self._service, probe)
        except Exception as exc:
            logger.warning(
                "auth.probe.send_failed", identity=pending.identity, error=str(exc)
            )
            key = _identity_key(pending.identity)
            if self._pending.get(key) is pending:
                self._resolve(key, pending, False)
            return
        logger.info("auth.probe.sent", identity=pending.identity, service=self._service)

    def _resolve(self, key: str, pending: PendingAuthorization, trusted: bool) -> int:
        del self._pending[key]
        for waiter in pending.waiters:
            waiter.resolve(trusted)
        logger.info(
            "auth.resolved",
            identity=pending.identity,
            trusted=trusted,
            waiters=len(pending.waiters),
        )
        return len(pending.waiters)
