"""Configuration defaults and JSON settings loader for the page server."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from error_policy import ErrorPolicy
from page_store import PageDescriptor

logger = logging.getLogger(__name__)

CONFIG_PATH: str = "config.json"
HOST: str = "0.0.0.0"
PORT: int = 8080
MIN_PORT: int = 1024
MAX_PORT: int = 65534
WORKER_COUNT: int = 1
REQUEST_QUEUE_SIZE: int = 128
BUFFER_SIZE: int = 1024
MAX_REQUEST_BYTES: int = 1024
SOCKET_TIMEOUT_SECS: float = 5
ACCEPT_POLL_SECS: float = 0.2
DRAIN_TIMEOUT_SECS: float = 0.5
DRAIN_LIMIT_BYTES: int = 65_536
SHUTDOWN_DRAIN_SECS: float = 2.0
WEB_ROOT: str = "web"
LOG_FORMAT: str = "plain"
DISPATCH_MODES = ("queued", "serial")
NO_MATCH_POLICIES = ("fallback", "not_found")
LOG_FORMATS = ("plain", "json")

DEFAULT_CONFIG: dict[str, Any] = {
    "thread_count": WORKER_COUNT,
    "verbose": True,
    "port": PORT,
    "web_root": WEB_ROOT,
    "pages": [{"name": "/", "path": "index.html"}],
}


class ConfigError(ValueError):
    """Raised when the configuration file is missing fields or malformed."""


@dataclass(frozen=True, slots=True)
class ServerSettings:
    thread_count: int = WORKER_COUNT
    verbose: bool = True
    port: int = PORT
    web_root: str = WEB_ROOT
    pages: tuple[PageDescriptor, ...] = ()
    host: str = HOST
    max_request_bytes: int = MAX_REQUEST_BYTES
    socket_timeout_secs: float = SOCKET_TIMEOUT_SECS
    queue_size: int = REQUEST_QUEUE_SIZE
    dispatch: str = "queued"
    no_match: str = "fallback"
    content_headers: bool = False
    log_format: str = LOG_FORMAT
    error_policy: ErrorPolicy = field(default_factory=ErrorPolicy.hardened)
    shutdown_drain_secs: float = SHUTDOWN_DRAIN_SECS


def load_settings(path: str | Path = CONFIG_PATH) -> ServerSettings:
    """Load settings from a JSON file, writing the default file if absent."""
    config_path = Path(path)
    if not config_path.exists():
        logger.info("Configuration file not found, creating %s", config_path)
        write_default_config(config_path)

    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file {config_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Configuration file {config_path} is not valid JSON: {exc}") from exc

    return parse_settings(raw)


def write_default_config(path: str | Path) -> None:
    config_path = Path(path)
    try:
        if config_path.parent != Path(""):
            config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(DEFAULT_CONFIG, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot write default configuration to {config_path}: {exc}") from exc


def parse_settings(raw: object) -> ServerSettings:
    """Validate a decoded configuration object into ServerSettings."""
    if not isinstance(raw, dict):
        raise ConfigError("Configuration must be a JSON object")

    verbose = _require(raw, "verbose")
    if not isinstance(verbose, bool):
        raise ConfigError("Invalid verbose flag, must be a boolean")

    thread_count = _require_int(raw, "thread_count")
    if thread_count < 1:
        raise ConfigError("Invalid thread_count, must be a number greater than 0")

    port = _require_int(raw, "port")
    if not MIN_PORT <= port <= MAX_PORT:
        raise ConfigError(f"Invalid port, must be a number between {MIN_PORT} and {MAX_PORT}")

    web_root = _require(raw, "web_root")
    if not isinstance(web_root, str) or not web_root:
        raise ConfigError("Invalid web_root, must be a non-empty string")

    pages = _parse_pages(_require(raw, "pages"))

    host = raw.get("host", HOST)
    if not isinstance(host, str):
        raise ConfigError("Invalid host, must be a string")

    max_request_bytes = _optional_int(raw, "max_request_bytes", MAX_REQUEST_BYTES)
    if max_request_bytes < 1:
        raise ConfigError("Invalid max_request_bytes, must be a number greater than 0")

    queue_size = _optional_int(raw, "queue_size", REQUEST_QUEUE_SIZE)
    if queue_size < 1:
        raise ConfigError("Invalid queue_size, must be a number greater than 0")

    socket_timeout_secs = raw.get("socket_timeout_secs", SOCKET_TIMEOUT_SECS)
    if (
        isinstance(socket_timeout_secs, bool)
        or not isinstance(socket_timeout_secs, (int, float))
        or socket_timeout_secs <= 0
    ):
        raise ConfigError("Invalid socket_timeout_secs, must be a positive number")

    shutdown_drain_secs = raw.get("shutdown_drain_secs", SHUTDOWN_DRAIN_SECS)
    if (
        isinstance(shutdown_drain_secs, bool)
        or not isinstance(shutdown_drain_secs, (int, float))
        or shutdown_drain_secs < 0
    ):
        raise ConfigError("Invalid shutdown_drain_secs, must be a non-negative number")

    content_headers = raw.get("content_headers", False)
    if not isinstance(content_headers, bool):
        raise ConfigError("Invalid content_headers flag, must be a boolean")

    try:
        error_policy = ErrorPolicy.from_value(raw.get("error_policy", "hardened"))
    except ValueError as exc:
        raise ConfigError(f"Invalid error_policy: {exc}") from exc

    return ServerSettings(
        thread_count=thread_count,
        verbose=verbose,
        port=port,
        web_root=web_root,
        pages=pages,
        host=host,
        max_request_bytes=max_request_bytes,
        socket_timeout_secs=float(socket_timeout_secs),
        queue_size=queue_size,
        dispatch=_optional_choice(raw, "dispatch", DISPATCH_MODES),
        no_match=_optional_choice(raw, "no_match", NO_MATCH_POLICIES),
        content_headers=content_headers,
        log_format=_optional_choice(raw, "log_format", LOG_FORMATS),
        error_policy=error_policy,
        shutdown_drain_secs=float(shutdown_drain_secs),
    )


def _require(raw: dict[str, Any], key: str) -> Any:
    if key not in raw:
        raise ConfigError(f"Missing required field: {key}")
    return raw[key]


def _require_int(raw: dict[str, Any], key: str) -> int:
    value = _require(raw, key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Invalid {key}, must be an integer")
    return value


def _optional_int(raw: dict[str, Any], key: str, default: int) -> int:
    if key not in raw:
        return default
    return _require_int(raw, key)


def _optional_choice(raw: dict[str, Any], key: str, choices: tuple[str, ...]) -> str:
    value = raw.get(key, choices[0])
    if value not in choices:
        raise ConfigError(f"Invalid {key}, must be one of: {', '.join(choices)}")
    return value


def _parse_pages(raw_pages: object) -> tuple[PageDescriptor, ...]:
    if not isinstance(raw_pages, list):
        raise ConfigError("Invalid pages, must be a list")

    descriptors = []
    for index, entry in enumerate(raw_pages):
        if not isinstance(entry, dict):
            raise ConfigError(f"Invalid page at index {index}, must be an object")
        name = entry.get("name")
        if not isinstance(name, str):
            raise ConfigError(f"Invalid page name at index {index}, must be a string")
        path = entry.get("path")
        if not isinstance(path, str) or not path:
            raise ConfigError(f"Invalid page path at index {index}, must be a non-empty string")
        descriptors.append(PageDescriptor(name=name, path=path))
    return tuple(descriptors)
