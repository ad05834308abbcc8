"""Thread-safe holder of a device's last committed reading."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock

from models.records import SensorReading


class SensorState:

    def __init__(self) -> None:
        self._reading = SensorReading()
        self._lock = Lock()

    def snapshot(self) -> SensorReading:
        with self._lock:
            return self._reading

    def commit_value(self, value: float) -> SensorReading:
        reading = SensorReading(value=value, fault=False, last_updated=_now())
        with self._lock:
            self._reading = reading
        return reading

    def commit_fault(self) -> SensorReading:
        """Flag a fault while keeping the previously committed value."""
        with self._lock:
            self._reading = replace(self._reading, fault=True, last_updated=_now())
            return self._reading


def _now() -> datetime:
    return datetime.now(timezone.utc)
