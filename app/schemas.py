"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from models.records import PollerState, SensorReading
from services.poller import Poller


class Reading(BaseModel):
    """Last committed sensor reading."""

    value: float
    fault: bool
    last_updated: Optional[datetime] = Field(
        default=None, description="UTC time of the last completed poll cycle."
    )

    @classmethod
    def from_record(cls, reading: SensorReading) -> "Reading":
        return cls(value=reading.value, fault=reading.fault, last_updated=reading.last_updated)


class DeviceInfo(BaseModel):
    """Accessory information reported to the host."""

    name: str
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None


class DeviceStatus(BaseModel):
    """Full status of one polled device."""

    name: str
    url: str
    selector: str
    refresh_interval_seconds: float = Field(..., gt=0)
    state: PollerState
    reading: Reading
    info: DeviceInfo

    @classmethod
    def from_poller(cls, poller: Poller) -> "DeviceStatus":
        config = poller.config
        return cls(
            name=config.name,
            url=config.url,
            selector=config.selector,
            refresh_interval_seconds=config.refresh_interval_seconds,
            state=poller.state,
            reading=Reading.from_record(poller.reading),
            info=DeviceInfo(**config.device_info()),
        )
