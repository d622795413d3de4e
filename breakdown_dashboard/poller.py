"""
Recurring fetch-and-aggregate task.

A Poller owns one worker thread and one HTTP session. Cycles never
overlap: the next cycle is scheduled only after the current one returns,
so a slow request delays the following cycle instead of racing it.
stop() does not wait out a pending request: it returns after a short grace
period and the abandoned cycle's result is discarded.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

import requests

from . import config
from .dashboard import get_dashboard_payload
from .exceptions import DashboardError, user_message
from .loaders.sheet_endpoint import build_session, fetch_rows

logger = logging.getLogger(__name__)

# Seconds stop() waits for the worker before abandoning its request
STOP_GRACE_S = 1.0


@dataclass
class PollResult:
    """Outcome of one polling cycle."""

    cycle: int
    started_at: float
    finished_at: float
    rows: list = field(default_factory=list)
    payload: dict | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_cycle(
    cycle: int = 0,
    url: str | None = None,
    params: dict | None = None,
    session: requests.Session | None = None,
    timeout: float | None = None,
) -> PollResult:
    """Fetch rows and build the payload; fetch errors become a message."""
    started = time.time()
    try:
        rows = fetch_rows(url=url, params=params, timeout=timeout, session=session)
    except DashboardError as e:
        logger.warning("Cycle %d failed: %s", cycle, e)
        return PollResult(cycle, started, time.time(), error=user_message(e))
    payload = get_dashboard_payload(rows)
    return PollResult(cycle, started, time.time(), rows=rows, payload=payload)


class Poller:
    """Run fetch cycles every ``interval`` seconds on a background thread.

    Parameters
    ----------
    on_result : Called with each PollResult from the worker thread.
    interval : Seconds between cycle starts (default config.poll_interval_s()).
    url, params : Endpoint and forwarded query parameters.
    attempts : Fetch attempts per cycle (default config.fetch_attempts()).
    """

    def __init__(
        self,
        on_result: Callable[[PollResult], None] | None = None,
        interval: float | None = None,
        url: str | None = None,
        params: dict | None = None,
        attempts: int | None = None,
        timeout: float | None = None,
    ):
        self.on_result = on_result
        self.interval = config.poll_interval_s() if interval is None else interval
        self.url = url
        self.params = params
        self.attempts = config.fetch_attempts() if attempts is None else attempts
        self.timeout = timeout

        self._stop = threading.Event()
        self._wake = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._session: requests.Session | None = None
        self._latest: PollResult | None = None
        self._next_run_at: float | None = None
        self._cycle = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self.is_running:
            return
        # per-run stop event; an abandoned worker keeps the one it started with
        self._stop = threading.Event()
        self._wake.clear()
        self._session = build_session(self.attempts)
        self._thread = threading.Thread(
            target=self._run, args=(self._stop, self._session),
            name="breakdown-poller", daemon=True,
        )
        self._thread.start()
        logger.info("Poller started (interval %.0fs)", self.interval)

    def stop(self, timeout: float | None = STOP_GRACE_S) -> None:
        """Stop polling without waiting out a request in flight.

        Waits at most ``timeout`` seconds for the worker to exit. A cycle
        still fetching after that finishes on its daemon thread and its
        result is discarded.
        """
        self._stop.set()
        self._wake.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                logger.info("Abandoned in-flight request of cycle %d", self._cycle)
        if self._session is not None:
            self._session.close()
        self._thread = None
        self._session = None
        with self._lock:
            self._next_run_at = None
        logger.info("Poller stopped after %d cycles", self._cycle)

    def refresh_now(self) -> None:
        """Start the next cycle immediately (manual refresh)."""
        self._wake.set()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def latest(self) -> PollResult | None:
        with self._lock:
            return self._latest

    def seconds_until_next(self) -> float | None:
        """Countdown to the next cycle; None when not scheduled."""
        with self._lock:
            if self._next_run_at is None:
                return None
            return max(0.0, self._next_run_at - time.time())

    def __enter__(self) -> "Poller":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------
    def _run(self, stop: threading.Event, session: requests.Session) -> None:
        while not stop.is_set():
            self._cycle += 1
            cycle = self._cycle
            started = time.time()
            try:
                result = run_cycle(cycle, self.url, self.params, session, self.timeout)
            except Exception as e:
                logger.exception("Unexpected error in poll cycle %d", cycle)
                result = PollResult(cycle, started, time.time(), error=str(e))

            if stop.is_set():
                break

            with self._lock:
                self._latest = result
                self._next_run_at = started + self.interval
            if self.on_result is not None:
                try:
                    self.on_result(result)
                except Exception:
                    logger.exception("Result callback failed")

            delay = max(0.0, started + self.interval - time.time())
            self._wake.wait(delay)
            self._wake.clear()

        with self._lock:
            if self._stop is stop:
                self._next_run_at = None
