"""Client for the standup status API."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from .client.lines import is_valid_nick
from .logging import get_logger
from .outcome import Failure, Outcome, Success

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 30.0
USER_FIELDS = frozenset({"name", "email", "github_handle"})


def _error_detail(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, str) and error.strip():
        return error.strip()
    return None


def _payload(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {"data": data}


class StandupClient:
    """Thin async wrapper around the v1 standup API.

    Every method returns exactly one `Outcome` and never raises for HTTP or
    network errors.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        *,
        timeout: float = DEFAULT_TIMEOUT_S,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> StandupClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def create_status(self, user: str, project: str, content: str) -> Outcome:
        return await self._request(
            "POST",
            "/api/v1/status/",
            {"user": user, "project": project, "content": content},
        )

    async def delete_status(self, status_id: int, user: str) -> Outcome:
        return await self._request(
            "DELETE", f"/api/v1/status/{status_id}/", {"user": user}
        )

    async def update_user(
        self, user: str, field: str, value: str, target: str
    ) -> Outcome:
        if not is_valid_nick(target):
            logger.warning("standup.request.rejected", target=target)
            return Failure(None, f"invalid user: {target}")
        return await self._request(
            "POST",
            f"/api/v1/user/{quote(target, safe='')}/",
            {"user": user, field: value},
        )

    async def _request(
        self, method: str, path: str, body: dict[str, Any]
    ) -> Outcome:
        payload = {"api_key": self._api_key, **body}
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            logger.warning(
                "standup.request.failed",
                method=method,
                path=path,
                error=str(exc) or exc.__class__.__name__,
            )
            return Failure(None, str(exc) or exc.__class__.__name__)
        if response.is_success:
            logger.debug(
                "standup.request.ok",
                method=method,
                path=path,
                status=response.status_code,
            )
            return Success(_payload(response))
        detail = _error_detail(response)
        logger.warning(
            "standup.request.error",
            method=method,
            path=path,
            status=response.status_code,
            detail=detail,
        )
        return Failure(response.status_code, detail)
