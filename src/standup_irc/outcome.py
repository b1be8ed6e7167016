"""Outcome values for calls that finish later.

A call to the standup API produces exactly one `Outcome`: either a `Success`
carrying the response payload or a `Failure` carrying the HTTP status (or
`None` when no response arrived) and an optional detail string from the
server. Handlers branch on the type with `isinstance`.

`Deferred` is a single-assignment cell used where one producer hands a value
to one or more waiting tasks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeAlias, TypeVar

import anyio

T = TypeVar("T")

FORBIDDEN = 403


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    payload: T


@dataclass(frozen=True, slots=True)
class Failure:
    status_code: int | None
    detail: str | None = None

    @property
    def forbidden(self) -> bool:
        return self.status_code == FORBIDDEN


Outcome: TypeAlias = "Success[Any] | Failure"


class AlreadyResolvedError(RuntimeError):
    pass


class Deferred(Generic[T]):
    """A value that is resolved exactly once.

    Must be created inside a running event loop.
    """

    __slots__ = ("_event", "_value", "_resolved")

    def __init__(self) -> None:
        self._event = anyio.Event()
        self._value: T | None = None
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    def resolve(self, value: T) -> None:
        if self._resolved:
            raise AlreadyResolvedError("deferred value already resolved")
        self._value = value
        self._resolved = True
        self._event.set()

    async def wait(self) -> T:
        await self._event.wait()
        return self._value  # type: ignore[return-value]
