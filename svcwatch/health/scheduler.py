"""Monitor — runs one check loop per service at its configured interval.

Each service gets its own thread so blocking probes never delay each
other. A shared stop event is both the tick timer and the shutdown
signal; stop() sets it and joins every thread.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from collections.abc import Callable, Sequence
from enum import Enum

import httpx

from ..services.registry import ServiceSpec
from .engine import CheckResult, ResultStore, Status, probe
from .transport import make_client

logger = logging.getLogger(__name__)

ProbeFn = Callable[[ServiceSpec, httpx.Client], CheckResult]


class MonitorState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


class MonitorStateError(RuntimeError):
    """Lifecycle misuse, e.g. starting a monitor twice."""


class Monitor:
    """Schedules and executes health checks for all configured services.

    ``start()`` and ``stop()`` are each meant to be called once by the
    process owner; a stopped monitor cannot be restarted. ``results()``
    and ``results_list()`` are safe to call from any thread at any time.
    """

    def __init__(
        self,
        services: Sequence[ServiceSpec],
        store: ResultStore | None = None,
        client: httpx.Client | None = None,
        probe_fn: ProbeFn = probe,
    ) -> None:
        self.services = list(services)
        self.store = store or ResultStore()
        self._owns_client = client is None
        self._client = client or make_client()
        self._probe = probe_fn
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._state = MonitorState.NOT_STARTED
        self._state_lock = threading.Lock()
        self._counts: Counter[str] = Counter()
        self._counts_lock = threading.Lock()

    @property
    def state(self) -> MonitorState:
        return self._state

    def start(self) -> None:
        """Seed placeholders, then start one check loop per service."""
        with self._state_lock:
            if self._state is not MonitorState.NOT_STARTED:
                raise MonitorStateError(f"cannot start a monitor that is {self._state.value}")
            self._state = MonitorState.RUNNING

        for svc in self.services:
            self.store.upsert(CheckResult.placeholder(svc))

        for svc in self.services:
            thread = threading.Thread(
                target=self._check_loop,
                args=(svc,),
                name=f"health-{svc.name}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        logger.info("Monitor started: %d services", len(self.services))

    def stop(self) -> None:
        """Signal every check loop to exit and wait until all have."""
        with self._state_lock:
            if self._state is MonitorState.STOPPED:
                return
            was_running = self._state is MonitorState.RUNNING
            self._state = MonitorState.STOPPED

        self._stop_event.set()
        for thread in self._threads:
            thread.join()
        self._threads.clear()

        if self._owns_client:
            self._client.close()
        if was_running:
            logger.info("Monitor stopped")

    def results(self) -> dict[str, CheckResult]:
        return self.store.snapshot_map()

    def results_list(self) -> list[CheckResult]:
        return self.store.snapshot_list()

    def probe_counts(self) -> dict[str, int]:
        """Completed probes per service since start."""
        with self._counts_lock:
            return dict(self._counts)

    def run_once(self) -> list[CheckResult]:
        """Check every service once, in order, and store the results."""
        return [self._check(svc) for svc in self.services]

    def _check(self, svc: ServiceSpec) -> CheckResult:
        previous = self.store.get(svc.name)
        try:
            result = self._probe(svc, self._client)
        except Exception as e:
            logger.exception("Health check error: %s", svc.name)
            result = CheckResult(
                service_name=svc.name,
                url=svc.url,
                status=Status.DOWN,
                message=f"Check failed: {type(e).__name__}: {e}",
            )

        self.store.upsert(result)
        with self._counts_lock:
            self._counts[svc.name] += 1

        if previous is not None and previous.status is not result.status:
            if result.status is Status.DOWN:
                logger.warning("Service %s is down: %s", svc.name, result.message)
            elif previous.status is Status.DOWN:
                logger.info("Service %s recovered", svc.name)

        logger.debug(
            "Check %s: %s (%dms)",
            svc.name, result.status.value, result.response_time_ms,
        )
        return result

    def _check_loop(self, svc: ServiceSpec) -> None:
        """Probe immediately, then on every tick until stopped.

        Ticks are anchored to the loop's start. Ticks that pass while a
        probe is still running are skipped rather than queued.
        """
        interval = svc.check_interval
        started = time.monotonic()
        ticks = 0

        self._check(svc)

        while True:
            now = time.monotonic()
            ticks = max(ticks + 1, int((now - started) // interval) + 1)
            delay = started + ticks * interval - now
            if self._stop_event.wait(delay):
                break
            self._check(svc)
