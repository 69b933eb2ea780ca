"""Threaded poller that periodically refreshes one external data source."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
import time
from typing import Callable, Generic, TypeVar

from goldfinger.errors import FetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestValue(Generic[T]):
    """Single-slot mailbox. Writers overwrite, readers see the newest value."""

    def __init__(self) -> None:
        self._value: T | None = None
        self._lock = threading.Lock()

    def put(self, value: T) -> None:
        with self._lock:
            self._value = value

    def get(self) -> T | None:
        with self._lock:
            return self._value


@dataclass(frozen=True)
class PollResult(Generic[T]):
    """Snapshot of the latest poll attempt."""

    data: T | None
    fetched_at: float
    error: str | None


class Poller(Generic[T]):
    """Background poller that refreshes data on a schedule."""

    def __init__(self, name: str, fetch: Callable[[], T], poll_interval_seconds: float) -> None:
        self._name = name
        self._fetch = fetch
        self._poll_interval_seconds = poll_interval_seconds
        self._latest: LatestValue[PollResult[T]] = LatestValue()
        self._last_good: LatestValue[T] = LatestValue()
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def name(self) -> str:
        return self._name

    def get_latest(self) -> PollResult[T] | None:
        """Return the most recent poll result, if any."""
        return self._latest.get()

    def last_good(self) -> T | None:
        """Return the data from the most recent successful poll, if any."""
        return self._last_good.get()

    def start(self) -> None:
        """Start the background polling thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name=f"poller-{self._name}", daemon=True)
        self._thread.start()
        logger.info("Started %s poller (every %ss)", self._name, self._poll_interval_seconds)

    def stop(self) -> None:
        """Signal the polling thread to stop."""
        self._stop_event.set()
        self._wake_event.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def refresh(self) -> None:
        """Ask the polling thread to fetch again without waiting out the interval."""
        self._wake_event.set()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception as exc:
                logger.exception("Unexpected error polling %s", self._name)
                self._latest.put(PollResult(data=None, fetched_at=time.time(), error=str(exc) or type(exc).__name__))
            self._wake_event.wait(timeout=self._poll_interval_seconds)
            self._wake_event.clear()

    def poll_once(self) -> PollResult[T]:
        """Fetch once and publish the result."""
        result = self._fetch_once()
        self._latest.put(result)
        if result.error is None:
            self._last_good.put(result.data)
        return result

    def _fetch_once(self) -> PollResult[T]:
        try:
            data = self._fetch()
        except FetchError as exc:
            logger.warning("Fetching %s failed: %s", self._name, exc)
            return PollResult(data=None, fetched_at=time.time(), error=str(exc))
        logger.debug("Fetched %s", self._name)
        return PollResult(data=data, fetched_at=time.time(), error=None)


__all__ = ["LatestValue", "PollResult", "Poller"]
