"""Persistent list of channels the bot was invited to."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import anyio

from .logging import get_logger

logger = get_logger(__name__)

STATE_VERSION = 1
STATE_FILENAME = "standup_channels.json"


@dataclass
class _ChannelState:
    version: int
    channels: dict[str, dict[str, Any]] = field(default_factory=dict)


def resolve_store_path(config_path: Path) -> Path:
    """Get the default store path, adjacent to config."""
    return config_path.with_name(STATE_FILENAME)


def _normalize_channel(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not value.startswith("#"):
        value = f"#{value}"
    return value.lower()


def _new_state() -> _ChannelState:
    return _ChannelState(version=STATE_VERSION, channels={})


class ChannelStore:
    """Store joined channels with who invited the bot.

    Scope: one file per bot process. The file is re-read when it changes on
    disk, so an operator can edit it while the bot runs.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = anyio.Lock()
        self._state = _new_state()
        self._mtime_ns: int | None = None
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    async def list_channels(self) -> list[str]:
        async with self._lock:
            self._reload_locked_if_needed()
            return sorted(self._state.channels)

    async def get_invited_by(self, channel: str) -> str | None:
        key = _normalize_channel(channel)
        if key is None:
            return None
        async with self._lock:
            self._reload_locked_if_needed()
            entry = self._state.channels.get(key)
            if not isinstance(entry, dict):
                return None
            invited_by = entry.get("invited_by")
            return invited_by if isinstance(invited_by, str) else None

    async def add_channel(self, channel: str, invited_by: str | None) -> None:
        key = _normalize_channel(channel)
        if key is None:
            return
        async with self._lock:
            self._reload_locked_if_needed()
            if key in self._state.channels:
                return
            self._state.channels[key] = {
                "invited_by": invited_by,
                "joined_at": datetime.now(UTC).isoformat(),
            }
            self._save_locked()

    async def remove_channel(self, channel: str) -> bool:
        key = _normalize_channel(channel)
        if key is None:
            return False
        async with self._lock:
            self._reload_locked_if_needed()
            if self._state.channels.pop(key, None) is None:
                return False
            self._save_locked()
            return True

    def _stat_mtime_ns(self) -> int | None:
        try:
            return self._path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def _reload_locked_if_needed(self) -> None:
        mtime_ns = self._stat_mtime_ns()
        if self._loaded and mtime_ns == self._mtime_ns:
            return
        self._loaded = True
        self._mtime_ns = mtime_ns
        if mtime_ns is None:
            self._state = _new_state()
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning(
                "channel_store.load_failed", path=str(self._path), error=str(exc)
            )
            self._state = _new_state()
            return
        if not isinstance(raw, dict) or raw.get("version") != STATE_VERSION:
            logger.warning(
                "channel_store.version_mismatch",
                path=str(self._path),
                version=raw.get("version") if isinstance(raw, dict) else None,
            )
            self._state = _new_state()
            return
        channels = raw.get("channels")
        if not isinstance(channels, dict):
            channels = {}
        self._state = _ChannelState(
            version=STATE_VERSION,
            channels={
                key: value
                for key, value in channels.items()
                if isinstance(key, str) and isinstance(value, dict)
            },
        )

    def _save_locked(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"version": self._state.version, "channels": self._state.channels}
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        tmp_path.write_text(
            json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8"
        )
        os.replace(tmp_path, self._path)
        self._mtime_ns = self._stat_mtime_ns()
