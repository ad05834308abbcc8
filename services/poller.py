"""Recurring fetch, extract and publish loop for a single device."""

from __future__ import annotations

import logging
import time
from threading import Event, RLock, Thread, current_thread
from typing import Any, Mapping, Optional, Protocol, Union

from models.config import DeviceConfig
from models.records import PollerState, SensorReading
from services.errors import FetchError, PollError
from services.extractor import Extractor
from services.fetcher import Fetcher
from services.publisher import NullPublisher, Publisher
from services.state import SensorState

logger = logging.getLogger(__name__)


class PageSource(Protocol):
    def retrieve(self, url: str) -> str: ...


class Poller:
    """Owns one device's sensor state and its polling thread.

    Cycles are serialized: the next one is scheduled a full refresh
    interval after the previous one finished, so a slow page delays the
    schedule instead of stacking requests. State is committed and the
    publisher notified only at the end of a cycle, and never once
    :meth:`stop` has been called.
    """

    def __init__(
        self,
        config: Union[DeviceConfig, Mapping[str, Any]],
        publisher: Optional[Publisher] = None,
        fetcher: Optional[PageSource] = None,
        extractor: Optional[Extractor] = None,
    ) -> None:
        if not isinstance(config, DeviceConfig):
            config = DeviceConfig.from_mapping(config)
        self.config = config
        self.publisher: Publisher = publisher or NullPublisher()
        self._owns_fetcher = fetcher is None
        self.fetcher: PageSource = fetcher or Fetcher(timeout=config.timeout_seconds)
        self.extractor = extractor or Extractor()

        self._sensor = SensorState()
        self._state = PollerState.idle
        self._completed_cycles = 0
        self._stop_event = Event()
        # Guards the scheduling state and the commit/publish step.
        self._commit_lock = RLock()
        # Serializes whole cycles, including ones forced via run_cycle().
        self._cycle_lock = RLock()
        self._thread: Optional[Thread] = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def reading(self) -> SensorReading:
        """Last committed reading; never waits for an in-flight cycle."""
        return self._sensor.snapshot()

    @property
    def completed_cycles(self) -> int:
        return self._completed_cycles

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._state is not PollerState.stopped

    def start(self) -> None:
        """Run a first cycle right away, then keep polling until stopped."""
        with self._commit_lock:
            if self._state is PollerState.stopped:
                raise RuntimeError(f"Poller {self.name!r} has been stopped and cannot restart.")
            if self._thread is not None:
                return
            self._thread = Thread(target=self._run, name=f"poller-{self.name}", daemon=True)
            self._thread.start()
        logger.info(
            "Poller started",
            extra={
                "device": self.name,
                "url": self.config.url,
                "selector": self.config.selector,
            },
        )

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Stop polling for good. Results of an in-flight cycle are discarded."""
        with self._commit_lock:
            if self._state is PollerState.stopped:
                return
            self._state = PollerState.stopped
            self._stop_event.set()

        if self._owns_fetcher:
            self.fetcher.close()  # type: ignore[attr-defined]
        if wait:
            self.join(timeout)
        logger.info("Poller stopped", extra={"device": self.name})

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the polling thread to exit."""
        thread = self._thread
        if thread is not None and thread is not current_thread():
            thread.join(timeout)

    def run_cycle(self) -> Optional[SensorReading]:
        """Run one poll cycle and return the committed reading.

        Returns ``None`` when the poller was stopped before the cycle could
        commit. Never raises for fetch, extraction, parse or publisher errors.
        """
        with self._cycle_lock:
            if self._stop_event.is_set():
                return None

            started = time.perf_counter()
            value: Optional[float] = None
            error: Optional[BaseException] = None
            try:
                value = self._poll_once()
            except PollError as exc:
                error = exc
            except Exception as exc:
                if not self._stop_event.is_set():
                    logger.exception("Unexpected error during poll cycle", extra={"device": self.name})
                error = exc
            cycle_ms = int((time.perf_counter() - started) * 1000)

            with self._commit_lock:
                if self._stop_event.is_set():
                    logger.debug("Discarding cycle result after stop", extra={"device": self.name})
                    return None
                was_faulted = self._state is PollerState.faulted
                if error is None and value is not None:
                    return self._commit_success(value, was_faulted, cycle_ms)
                return self._commit_fault(error, cycle_ms)

    def _run(self) -> None:
        interval = self.config.refresh_interval_seconds
        while not self._stop_event.is_set():
            self.run_cycle()
            if self._stop_event.wait(interval):
                break

    def _poll_once(self) -> float:
        body = self._fetch()
        return self.extractor.extract(body, self.config.selector)

    def _fetch(self) -> str:
        attempts = self.config.fetch_retries + 1
        attempt = 1
        while True:
            try:
                return self.fetcher.retrieve(self.config.url)
            except FetchError as exc:
                if attempt >= attempts or self._stop_event.is_set():
                    raise
                logger.info(
                    "Retrying fetch",
                    extra={"device": self.name, "attempt": attempt, "reason": str(exc)},
                )
                attempt += 1

    def _commit_success(self, value: float, was_faulted: bool, cycle_ms: int) -> SensorReading:
        reading = self._sensor.commit_value(value)
        self._state = PollerState.healthy
        self._completed_cycles += 1
        logger.debug(
            "Poll cycle succeeded",
            extra={"device": self.name, "value": value, "cycle_ms": cycle_ms},
        )
        self._notify("on_reading", value)
        if was_faulted:
            self._notify("on_fault", False)
        return reading

    def _commit_fault(self, error: Optional[BaseException], cycle_ms: int) -> SensorReading:
        reading = self._sensor.commit_fault()
        self._state = PollerState.faulted
        self._completed_cycles += 1
        reason = getattr(error, "reason", type(error).__name__)
        logger.warning(
            "Poll cycle failed: %s",
            error,
            extra={
                "device": self.name,
                "reason": reason,
                "status_code": getattr(error, "status_code", None),
                "cycle_ms": cycle_ms,
            },
        )
        self._notify("on_fault", True)
        return reading

    def _notify(self, channel: str, payload: Any) -> None:
        # A callback may have stopped the poller mid-cycle.
        if self._stop_event.is_set():
            return
        try:
            getattr(self.publisher, channel)(payload)
        except Exception:
            logger.exception(
                "Publisher %s callback failed",
                channel,
                extra={"device": self.name},
            )
