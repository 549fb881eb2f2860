"""Service registry — loads services.yaml and provides typed, validated specs.

Single source of truth for what gets monitored. The monitor, the
dashboard and the CLI all consume this. JSON documents are accepted too,
since every JSON document is valid YAML.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "GET"
DEFAULT_INTERVAL = 60.0
DEFAULT_TIMEOUT = 10.0
DEFAULT_EXPECTED_STATUS = 200
DEFAULT_TITLE = "Service Monitor"
DEFAULT_REFRESH_INTERVAL = 30.0


class ConfigError(ValueError):
    """Raised when the services file is missing, unreadable or invalid."""


# ── Data models ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ServiceSpec:
    """One HTTP endpoint and how to check it."""

    name: str
    url: str
    method: str = DEFAULT_METHOD
    check_interval: float = DEFAULT_INTERVAL  # seconds
    timeout: float = DEFAULT_TIMEOUT  # seconds
    expected_status: int = DEFAULT_EXPECTED_STATUS


@dataclass(frozen=True)
class DashboardConfig:
    title: str = DEFAULT_TITLE
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL  # seconds


@dataclass(frozen=True)
class MonitorConfig:
    services: list[ServiceSpec] = field(default_factory=list)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)


# ── Loading ──────────────────────────────────────────────────────────────────


def parse_duration(val: Any) -> float:
    """Parse a duration in seconds. Accepts numbers and '500ms', '15s', '2m'."""
    if isinstance(val, bool):
        raise ValueError(f"not a duration: {val!r}")
    if isinstance(val, (int, float)):
        seconds = float(val)
    else:
        s = str(val).strip().lower()
        if s.endswith("ms"):
            seconds = float(s[:-2]) / 1000
        elif s.endswith("s"):
            seconds = float(s[:-1])
        elif s.endswith("m"):
            seconds = float(s[:-1]) * 60
        else:
            seconds = float(s)
    if not math.isfinite(seconds):
        raise ValueError(f"not a finite duration: {val!r}")
    return seconds


def _pick(raw: dict[str, Any], camel: str, snake: str, default: Any) -> Any:
    if camel in raw:
        return raw[camel]
    return raw.get(snake, default)


def _is_absolute_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


def _parse_service(raw: Any, index: int) -> ServiceSpec:
    if not isinstance(raw, dict):
        raise ConfigError(f"service #{index} is not a mapping")

    name = str(raw.get("name") or "").strip()
    if not name:
        raise ConfigError(f"service #{index} has no name")

    url = str(raw.get("url") or "").strip()
    if not _is_absolute_url(url):
        raise ConfigError(f"service '{name}' has an invalid URL: {url!r}")

    method = str(raw.get("method") or "").strip().upper() if "method" in raw else DEFAULT_METHOD
    if not method:
        raise ConfigError(f"service '{name}' has no HTTP method defined")

    try:
        interval = parse_duration(_pick(raw, "interval", "check_interval", DEFAULT_INTERVAL))
    except ValueError as e:
        raise ConfigError(f"service '{name}' has an invalid interval: {e}") from e
    if interval <= 0:
        raise ConfigError(f"service '{name}' has an invalid interval: must be > 0")

    try:
        timeout = parse_duration(raw.get("timeout", DEFAULT_TIMEOUT))
    except ValueError as e:
        raise ConfigError(f"service '{name}' has an invalid timeout: {e}") from e
    if timeout <= 0:
        raise ConfigError(f"service '{name}' has an invalid timeout: must be > 0")

    try:
        expected = int(_pick(raw, "expectedStatus", "expected_status", DEFAULT_EXPECTED_STATUS))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"service '{name}' has an invalid expected status: {e}") from e

    return ServiceSpec(
        name=name,
        url=url,
        method=method,
        check_interval=interval,
        timeout=timeout,
        expected_status=expected,
    )


def _parse_dashboard(raw: Any) -> DashboardConfig:
    if raw is None:
        return DashboardConfig()
    if not isinstance(raw, dict):
        raise ConfigError("dashboard section is not a mapping")

    title = str(raw.get("title") or DEFAULT_TITLE)
    try:
        refresh = parse_duration(
            _pick(raw, "refreshInterval", "refresh_interval", DEFAULT_REFRESH_INTERVAL)
        )
    except ValueError as e:
        raise ConfigError(f"dashboard has an invalid refresh interval: {e}") from e
    if refresh <= 0:
        raise ConfigError("dashboard has an invalid refresh interval: must be > 0")
    return DashboardConfig(title=title, refresh_interval=refresh)


def parse_config(data: Any) -> MonitorConfig:
    """Validate an already-parsed document and build a MonitorConfig."""
    if not isinstance(data, dict):
        raise ConfigError("config document must be a mapping")

    raw_services = data.get("services") or []
    if not isinstance(raw_services, list) or not raw_services:
        raise ConfigError("no services defined in the config")

    services = [_parse_service(s, i) for i, s in enumerate(raw_services, start=1)]

    names = [s.name for s in services]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        logger.warning("Duplicate service names, later entries win: %s", ", ".join(dupes))

    return MonitorConfig(services=services, dashboard=_parse_dashboard(data.get("dashboard")))


def load_config(path: str | Path) -> MonitorConfig:
    """Read and validate a services file.

    Raises:
        ConfigError: the file is missing, unparsable or invalid.
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"config file not found: {p}")

    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to parse the config file: {e}") from e

    cfg = parse_config(data)
    logger.info("Loaded %d services from %s", len(cfg.services), p)
    return cfg
