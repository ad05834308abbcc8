"""Notification interface between a poller and its home-automation host."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol


class Publisher(Protocol):
    """Receives poll outcomes.

    Both methods are called synchronously from the poller's worker thread,
    at most once each per poll cycle, while the poller holds its commit
    lock. A callback must not wait on a lock that another thread holds
    while calling ``Poller.stop()``; that pairing deadlocks. Calling
    ``stop()`` from inside a callback is safe and suppresses any remaining
    notification of the cycle.
    """

    def on_reading(self, value: float) -> None: ...

    def on_fault(self, is_fault: bool) -> None: ...


class NullPublisher:
    """Publisher for hosts that only use the reading getter."""

    def on_reading(self, value: float) -> None:
        return None

    def on_fault(self, is_fault: bool) -> None:
        return None


class LoggingPublisher:

    def __init__(self, device: str, logger: Optional[logging.Logger] = None) -> None:
        self.device = device
        self.logger = logger or logging.getLogger(__name__)

    def on_reading(self, value: float) -> None:
        self.logger.info("Reading updated", extra={"device": self.device, "value": value})

    def on_fault(self, is_fault: bool) -> None:
        if is_fault:
            self.logger.warning("Sensor fault raised", extra={"device": self.device})
        else:
            self.logger.info("Sensor fault cleared", extra={"device": self.device})


class CallbackPublisher:
    """Adapts a pair of plain callables to the publisher interface."""

    def __init__(
        self,
        on_reading: Optional[Callable[[float], None]] = None,
        on_fault: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._on_reading = on_reading
        self._on_fault = on_fault

    def on_reading(self, value: float) -> None:
        if self._on_reading is not None:
            self._on_reading(value)

    def on_fault(self, is_fault: bool) -> None:
        if self._on_fault is not None:
            self._on_fault(is_fault)
