"""Tests for channel_store.py - persisted channel membership."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from standup_irc.channel_store import (
    STATE_FILENAME,
    STATE_VERSION,
    ChannelStore,
    _normalize_channel,
    resolve_store_path,
)


def test_resolve_store_path_next_to_config(tmp_path: Path) -> None:
    result = resolve_store_path(tmp_path / "standup.toml")
    assert result == tmp_path / STATE_FILENAME


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("#Standup", "#standup"),
        ("standup", "#standup"),
        ("  #dev ", "#dev"),
        ("", None),
        ("   ", None),
        (None, None),
    ],
)
def test_normalize_channel(value: str | None, expected: str | None) -> None:
    assert _normalize_channel(value) == expected


@pytest.mark.anyio
async def test_missing_file_is_empty(tmp_path: Path) -> None:
    store = ChannelStore(tmp_path / "channels.json")
    assert await store.list_channels() == []
    assert await store.get_invited_by("#dev") is None


@pytest.mark.anyio
async def test_add_persists_to_disk(tmp_path: Path) -> None:
    path = tmp_path / "state" / "channels.json"
    store = ChannelStore(path)

    await store.add_channel("#Dev", "alice")

    data = json.loads(path.read_text())
    assert data["version"] == STATE_VERSION
    assert data["channels"]["#dev"]["invited_by"] == "alice"
    assert "joined_at" in data["channels"]["#dev"]

    reopened = ChannelStore(path)
    assert await reopened.list_channels() == ["#dev"]


@pytest.mark.anyio
async def test_add_twice_keeps_first_inviter(tmp_path: Path) -> None:
    store = ChannelStore(tmp_path / "channels.json")
    await store.add_channel("#dev", "alice")
    await store.add_channel("#dev", "bob")
    assert await store.get_invited_by("#dev") == "alice"


@pytest.mark.anyio
async def test_remove(tmp_path: Path) -> None:
    store = ChannelStore(tmp_path / "channels.json")
    await store.add_channel("#dev", None)
    assert await store.remove_channel("#DEV") is True
    assert await store.remove_channel("#dev") is False
    assert await store.list_channels() == []


@pytest.mark.anyio
async def test_corrupt_file_is_treated_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "channels.json"
    path.write_text("{not json")
    store = ChannelStore(path)
    assert await store.list_channels() == []


@pytest.mark.anyio
async def test_version_mismatch_is_treated_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "channels.json"
    path.write_text(json.dumps({"version": 99, "channels": {"#a": {}}}))
    store = ChannelStore(path)
    assert await store.list_channels() == []


@pytest.mark.anyio
async def test_external_edit_is_picked_up(tmp_path: Path) -> None:
    path = tmp_path / "channels.json"
    store = ChannelStore(path)
    assert await store.list_channels() == []

    path.write_text(
        json.dumps(
            {"version": STATE_VERSION, "channels": {"#ops": {"invited_by": "op"}}}
        )
    )

    assert await store.list_channels() == ["#ops"]
