"""Health check engine — probes one service and keeps the latest results.

A probe is a single bounded-time HTTP request. Every failure mode is
captured into the returned CheckResult; nothing is raised to the caller.
"""

from __future__ import annotations

import copy
import logging
import re
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import httpx

from ..services.registry import ServiceSpec
from .transport import deadline, make_client

logger = logging.getLogger(__name__)

# RFC 9110 token characters
_METHOD_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_SCHEMES = ("http", "https")

HEALTHY_MESSAGE = "service is healthy"
PLACEHOLDER_MESSAGE = "monitoring not started"


# ── Models ───────────────────────────────────────────────────────────────────


class Status(str, Enum):
    UNKNOWN = "unknown"
    UP = "up"
    DOWN = "down"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CheckResult:
    """Latest outcome of probing a service."""

    service_name: str
    url: str
    status: Status = Status.UNKNOWN
    response_time_ms: int = 0
    status_code: int = 0
    message: str = ""
    last_checked: datetime = field(default_factory=_utcnow)

    @classmethod
    def placeholder(cls, spec: ServiceSpec) -> CheckResult:
        return cls(
            service_name=spec.name,
            url=spec.url,
            status=Status.UNKNOWN,
            message=PLACEHOLDER_MESSAGE,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the external field names used by the API."""
        return {
            "serviceName": self.service_name,
            "url": self.url,
            "status": self.status.value,
            "responseTimeMs": self.response_time_ms,
            "statusCode": self.status_code,
            "message": self.message,
            "lastChecked": self.last_checked.isoformat(),
        }


# ── Prober ───────────────────────────────────────────────────────────────────


def _elapsed_ms(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)


def _build_request(client: httpx.Client, spec: ServiceSpec) -> httpx.Request:
    if not _METHOD_RE.fullmatch(spec.method or ""):
        raise ValueError(f"invalid method {spec.method!r}")
    request = client.build_request(
        spec.method,
        spec.url,
        timeout=httpx.Timeout(spec.timeout),
    )
    if request.url.scheme not in _SCHEMES:
        raise httpx.UnsupportedProtocol(
            f"request URL has an unsupported protocol {request.url.scheme + '://'!r}",
        )
    return request


def probe(spec: ServiceSpec, client: httpx.Client | None = None) -> CheckResult:
    """Run one HTTP check against ``spec`` and return its result.

    ``client`` may be shared across threads; when omitted a short-lived
    client is created for this probe only. Redirects are never followed,
    so the first response's status is what gets compared. Clients from
    ``make_client`` abort the request once ``spec.timeout`` has elapsed.
    """
    if client is None:
        with make_client() as own_client:
            return probe(spec, own_client)

    result = CheckResult(service_name=spec.name, url=spec.url)

    try:
        request = _build_request(client, spec)
    except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError, TypeError) as e:
        result.status = Status.DOWN
        result.message = f"Failed to create request: {e}"
        return result

    t0 = time.perf_counter()
    try:
        with deadline(spec.timeout):
            response = client.send(request, stream=True, follow_redirects=False)
    except httpx.TimeoutException as e:
        result.response_time_ms = _elapsed_ms(t0)
        result.status = Status.DOWN
        result.message = f"Request timed out after {spec.timeout:g}s: {type(e).__name__}"
        return result
    except httpx.HTTPError as e:
        result.response_time_ms = _elapsed_ms(t0)
        result.status = Status.DOWN
        result.message = f"Request failed: {type(e).__name__}: {e}"
        return result

    try:
        result.response_time_ms = _elapsed_ms(t0)
        # Headers arriving after the deadline count as a timeout
        if result.response_time_ms > spec.timeout * 1000:
            result.status = Status.DOWN
            result.message = f"Request timed out after {spec.timeout:g}s: deadline exceeded"
            return result

        result.status_code = response.status_code
        if response.status_code == spec.expected_status:
            result.status = Status.UP
            result.message = HEALTHY_MESSAGE
        else:
            result.status = Status.DOWN
            result.message = f"Unexpected status code: {response.status_code}"
        return result
    finally:
        response.close()


# ── Result store ─────────────────────────────────────────────────────────────


class RWLock:
    """Reader-writer lock: many concurrent readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ResultStore:
    """In-memory map of service name to its latest CheckResult.

    Reads hand out copies, so callers can never mutate stored entries.
    The lock only covers the dict operation, never network I/O.
    """

    def __init__(self) -> None:
        self._results: dict[str, CheckResult] = {}
        self._lock = RWLock()

    def upsert(self, result: CheckResult) -> None:
        entry = copy.copy(result)
        with self._lock.write():
            self._results[entry.service_name] = entry

    def get(self, name: str) -> CheckResult | None:
        with self._lock.read():
            entry = self._results.get(name)
            return copy.copy(entry) if entry is not None else None

    def snapshot_map(self) -> dict[str, CheckResult]:
        with self._lock.read():
            return {name: copy.copy(r) for name, r in self._results.items()}

    def snapshot_list(self) -> list[CheckResult]:
        with self._lock.read():
            return [copy.copy(r) for r in self._results.values()]

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._results)
