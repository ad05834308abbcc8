"""Validated device configuration."""

from __future__ import annotations

import json
from pathlib import Path
from threading import TIMEOUT_MAX
from typing import Any, Dict, List, Mapping, Optional

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from services.errors import ConfigError
from settings import get_settings

MAX_FETCH_RETRIES = 5


def _default_timeout() -> float:
    return get_settings().default_timeout


def _describe(exc: ValidationError) -> List[str]:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "config"
        problems.append(f"{location}: {error['msg']}")
    return problems


class DeviceConfig(BaseModel):
    """Immutable configuration of one scraped sensor.

    Construction validates every field and raises :class:`ConfigError`
    instead of pydantic's ``ValidationError``, so a bad device never gets
    as far as its first poll. Camel-case keys used by older Homebridge
    configs (``elementSelector``, ``refreshInterval``, ``serialNumber``)
    are accepted as aliases.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(default="Web Sensor", min_length=1, strict=True)
    url: str = Field(..., strict=True)
    selector: str = Field(
        ...,
        strict=True,
        validation_alias=AliasChoices("selector", "elementSelector", "element_selector"),
    )
    refresh_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        le=TIMEOUT_MAX,
        strict=True,
        allow_inf_nan=False,
        validation_alias=AliasChoices(
            "refresh_interval_seconds", "refreshInterval", "refresh_interval"
        ),
    )
    timeout_seconds: float = Field(
        default_factory=_default_timeout,
        gt=0,
        strict=True,
        allow_inf_nan=False,
        validation_alias=AliasChoices("timeout_seconds", "timeout"),
    )
    fetch_retries: int = Field(
        default=0,
        ge=0,
        le=MAX_FETCH_RETRIES,
        strict=True,
        validation_alias=AliasChoices("fetch_retries", "retries"),
    )
    manufacturer: Optional[str] = Field(default=None, strict=True)
    model: Optional[str] = Field(default=None, strict=True)
    serial_number: Optional[str] = Field(
        default=None,
        strict=True,
        validation_alias=AliasChoices("serial_number", "serialNumber"),
    )

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise ConfigError("Invalid device configuration", _describe(exc)) from exc

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("must not be blank")
        return candidate

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        candidate = value.strip()
        try:
            parsed = httpx.URL(candidate)
        except httpx.InvalidURL as exc:
            raise ValueError(f"invalid URL ({exc})") from exc
        if not parsed.is_absolute_url or parsed.scheme not in {"http", "https"} or not parsed.host:
            raise ValueError("must be an absolute http(s) URL")
        return candidate

    @field_validator("selector")
    @classmethod
    def _check_selector(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("must be a non-empty selector")
        return candidate

    @classmethod
    def from_mapping(cls, raw: Any) -> "DeviceConfig":
        if not isinstance(raw, Mapping):
            raise ConfigError(
                f"Device configuration must be a mapping, got {type(raw).__name__}."
            )
        return cls(**{str(key): value for key, value in raw.items()})

    def device_info(self) -> Dict[str, Optional[str]]:
        """Accessory information, falling back to the URL host and path."""
        parsed = httpx.URL(self.url)
        return {
            "name": self.name,
            "manufacturer": self.manufacturer or parsed.host,
            "model": self.model or parsed.path,
            "serial_number": self.serial_number,
        }


def load_device_configs(path: Path) -> List[DeviceConfig]:
    """Read device definitions from a JSON file.

    The file holds either a list of devices or an object with a ``devices``
    (or legacy ``thermometers``) list.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8") or "[]")
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Unable to read device file {str(path)!r}: {exc}") from exc

    if isinstance(raw, Mapping):
        entries = raw.get("devices", raw.get("thermometers", []))
    else:
        entries = raw
    if not isinstance(entries, list):
        raise ConfigError(f"Device file {str(path)!r} must contain a list of devices.")

    configs: List[DeviceConfig] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        try:
            config = DeviceConfig.from_mapping(entry)
        except ConfigError as exc:
            raise ConfigError(f"Device #{index} in {str(path)!r} is invalid", exc.problems) from exc
        if config.name in seen:
            raise ConfigError(f"Duplicate device name {config.name!r} in {str(path)!r}.")
        seen.add(config.name)
        configs.append(config)
    return configs
