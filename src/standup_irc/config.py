"""Configuration loading.

Settings live in a TOML file. Secrets can be supplied through the
environment instead, which wins over the file.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .channel_store import resolve_store_path

DEFAULT_CONFIG_PATH = Path("standup.toml")
DEFAULT_NICK = "standup"
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class ConfigError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class IrcSettings:
    host: str
    port: int = 6667
    nick: str = DEFAULT_NICK
    ssl: bool = False
    channels: tuple[str, ...] = ()
    password: str | None = None


@dataclass(frozen=True, slots=True)
class StandupSettings:
    url: str = "http://localhost:80"
    api_key: str | None = None
    timeout: float = 30.0


@dataclass(frozen=True, slots=True)
class AuthSettings:
    service: str = "NickServ"
    probe: str = "STATUS {identity}"
    timeout: float = 10.0
    announce_denials: bool = False


@dataclass(frozen=True, slots=True)
class LogSettings:
    console: bool = True
    file: Path | None = None
    level: str = "info"


@dataclass(frozen=True, slots=True)
class AppConfig:
    irc: IrcSettings
    standup: StandupSettings = field(default_factory=StandupSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    log: LogSettings = field(default_factory=LogSettings)
    channel_store_path: Path | None = None
    config_path: Path | None = None


def _expand_path(s: str) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(s)))


def _env(name: str) -> str:
    return (os.environ.get(name) or "").strip()


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config at {path}: {exc}") from exc
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    return data


def _table(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{key}] must be a table")
    return value


def _str(table: dict[str, Any], key: str, default: str | None) -> str | None:
    value = table.get(key, default)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string")
    return value.strip() or default


def _number(table: dict[str, Any], key: str, default: float) -> float:
    value = table.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number")
    if value <= 0:
        raise ConfigError(f"{key} must be positive")
    return float(value)


def _bool(table: dict[str, Any], key: str, default: bool) -> bool:
    value = table.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false")
    return value


def _parse_irc(table: dict[str, Any]) -> IrcSettings:
    host = _str(table, "host", None)
    if not host:
        raise ConfigError("Missing irc.host")
    port = table.get("port", 6667)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError("irc.port must be an integer between 1 and 65535")
    channels = table.get("channels", [])
    if not isinstance(channels, list) or not all(
        isinstance(item, str) for item in channels
    ):
        raise ConfigError("irc.channels must be a list of strings")
    password = _env("IRC_PASSWORD") or _str(table, "password", None)
    return IrcSettings(
        host=host,
        port=port,
        nick=_str(table, "nick", DEFAULT_NICK) or DEFAULT_NICK,
        ssl=_bool(table, "ssl", False),
        channels=tuple(item.strip() for item in channels if item.strip()),
        password=password or None,
    )


def _parse_standup(table: dict[str, Any]) -> StandupSettings:
    defaults = StandupSettings()
    url = _str(table, "url", defaults.url) or defaults.url
    api_key = _env("STANDUP_API_KEY") or _str(table, "api_key", None)
    return StandupSettings(
        url=url.rstrip("/"),
        api_key=api_key or None,
        timeout=_number(table, "timeout", defaults.timeout),
    )


def _parse_auth(table: dict[str, Any]) -> AuthSettings:
    defaults = AuthSettings()
    probe = _str(table, "probe", defaults.probe) or defaults.probe
    if "{identity}" not in probe:
        raise ConfigError("auth.probe must contain {identity}")
    return AuthSettings(
        service=_str(table, "service", defaults.service) or defaults.service,
        probe=probe,
        timeout=_number(table, "timeout", defaults.timeout),
        announce_denials=_bool(
            table, "announce_denials", defaults.announce_denials
        ),
    )


def _parse_log(table: dict[str, Any]) -> LogSettings:
    file = _str(table, "file", None)
    level = (_str(table, "level", "info") or "info").lower()
    if level not in LOG_LEVELS:
        raise ConfigError(f"log.level must be one of: {', '.join(LOG_LEVELS)}")
    return LogSettings(
        console=_bool(table, "console", True),
        file=_expand_path(file) if file else None,
        level=level,
    )


def parse_config(data: dict[str, Any], *, config_path: Path | None = None) -> AppConfig:
    channels = _table(data, "channels")
    store_path = _env("STANDUP_CHANNEL_STORE") or _str(channels, "store_path", None)
    resolved_store: Path | None = None
    if store_path:
        resolved_store = _expand_path(store_path)
        if not resolved_store.is_absolute() and config_path is not None:
            resolved_store = config_path.parent / resolved_store
    elif _bool(channels, "persist", False) and config_path is not None:
        resolved_store = resolve_store_path(config_path)
    return AppConfig(
        irc=_parse_irc(_table(data, "irc")),
        standup=_parse_standup(_table(data, "standup")),
        auth=_parse_auth(_table(data, "auth")),
        log=_parse_log(_table(data, "log")),
        channel_store_path=resolved_store,
        config_path=config_path,
    )


def load_config(path: Path | str = DEFAULT_CONFIG_PATH) -> AppConfig:
    cfg_path = _expand_path(str(path))
    if not cfg_path.exists() or not cfg_path.is_file():
        raise ConfigError(f"Missing config at: {cfg_path}")
    return parse_config(_load_toml(cfg_path), config_path=cfg_path)
