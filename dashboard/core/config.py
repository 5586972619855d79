from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv


class ConfigError(RuntimeError):
    pass


@dataclass(slots=True)
class BackendConfig:
    base_url: str
    # Session-wide transport timeout; fetches carry no deadline of their own.
    request_timeout_seconds: int = 300


@dataclass(slots=True)
class ListViewConfig:
    page_size: int = 10
    refresh_interval_seconds: int = 300
    debounce_milliseconds: int = 500


@dataclass(slots=True)
class DetailConfig:
    max_concurrency: int = 3
    ttl_seconds: int = 300
    max_entries: int | None = None


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    directory: str = "logs"
    file_name: str = "dashboard.log"
    max_bytes: int = 5_000_000
    backup_count: int = 5
    json_console: bool = False
    levels: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class ExportConfig:
    directory: str = "artifacts/exports"


@dataclass(slots=True)
class FastApiConfig:
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8000
    api_key: str = ""


@dataclass(slots=True)
class AppConfig:
    backend: BackendConfig
    list_view: ListViewConfig = field(default_factory=ListViewConfig)
    detail: DetailConfig = field(default_factory=DetailConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    fastapi: FastApiConfig = field(default_factory=FastApiConfig)


# Environment variables win over the YAML value at the given section/key.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "DASHBOARD_API_URL": ("backend", "base_url"),
    "DASHBOARD_API_TIMEOUT": ("backend", "request_timeout_seconds"),
    "REFRESH_INTERVAL_SECONDS": ("list_view", "refresh_interval_seconds"),
    "DETAIL_MAX_CONCURRENCY": ("detail", "max_concurrency"),
    "DETAIL_TTL_SECONDS": ("detail", "ttl_seconds"),
    "LOG_LEVEL": ("logging", "level"),
    "DASHBOARD_API_KEY": ("fastapi", "api_key"),
}


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    node = raw.get(name)
    return node if isinstance(node, dict) else {}


def _count(section: dict[str, Any], key: str, default: int) -> int:
    """Positive integer setting; anything unparseable or non-positive keeps the default."""
    try:
        value = int(section[key])
    except (KeyError, TypeError, ValueError):
        return default
    return value if value > 0 else default


def _flag(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _text(section: dict[str, Any], key: str, default: str) -> str:
    value = section.get(key)
    return default if value is None else str(value)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    return raw


def _apply_env(raw: dict[str, Any]) -> None:
    for env_key, (section, key) in ENV_OVERRIDES.items():
        value = (os.getenv(env_key) or "").strip()
        if value:
            raw.setdefault(section, {})
            if not isinstance(raw[section], dict):
                raw[section] = {}
            raw[section][key] = value


def load_config(config_path: Path) -> AppConfig:
    """Build the app config from ``config.yaml`` plus ``.env`` beside the config directory."""
    load_dotenv(config_path.parent.parent / ".env")
    raw = _read_yaml(config_path)
    _apply_env(raw)

    backend = _section(raw, "backend")
    base_url = _text(backend, "base_url", "").strip()
    if not base_url or "${" in base_url:
        raise ConfigError("DASHBOARD_API_URL is required")

    list_view = _section(raw, "list_view")
    detail = _section(raw, "detail")
    logs = _section(raw, "logging")
    fastapi = _section(raw, "fastapi")
    max_entries = _count(detail, "max_entries", 0)

    return AppConfig(
        backend=BackendConfig(
            base_url=base_url.rstrip("/"),
            request_timeout_seconds=_count(backend, "request_timeout_seconds", 300),
        ),
        list_view=ListViewConfig(
            page_size=_count(list_view, "page_size", 10),
            refresh_interval_seconds=_count(list_view, "refresh_interval_seconds", 300),
            debounce_milliseconds=_count(list_view, "debounce_milliseconds", 500),
        ),
        detail=DetailConfig(
            max_concurrency=_count(detail, "max_concurrency", 3),
            ttl_seconds=_count(detail, "ttl_seconds", 300),
            max_entries=max_entries or None,
        ),
        logging=LoggingConfig(
            level=_text(logs, "level", "INFO").upper(),
            directory=_text(logs, "directory", "logs"),
            file_name=_text(logs, "file_name", "dashboard.log"),
            max_bytes=_count(logs, "max_bytes", 5_000_000),
            backup_count=_count(logs, "backup_count", 5),
            json_console=_flag(logs, "json_console", False),
            levels={str(name): str(level) for name, level in _section(logs, "levels").items()},
        ),
        export=ExportConfig(
            directory=_text(_section(raw, "export"), "directory", "artifacts/exports"),
        ),
        fastapi=FastApiConfig(
            enabled=_flag(fastapi, "enabled", True),
            host=_text(fastapi, "host", "127.0.0.1"),
            port=_count(fastapi, "port", 8000),
            api_key=_text(fastapi, "api_key", ""),
        ),
    )
