"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class PollerState(str, Enum):
    """Lifecycle states of a device poller."""

    idle = "idle"
    healthy = "healthy"
    faulted = "faulted"
    stopped = "stopped"


@dataclass(frozen=True, slots=True)
class SensorReading:
    """Last committed reading of a device.

    ``value`` keeps the previous committed number while ``fault`` is set.
    """

    value: float = 0.0
    fault: bool = False
    last_updated: Optional[datetime] = None
