"""Holds the pollers of every configured device for the bundled host."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional

from models.config import DeviceConfig, load_device_configs
from models.records import PollerState
from services.poller import Poller
from services.publisher import LoggingPublisher, Publisher
from settings import get_settings

logger = logging.getLogger(__name__)

PublisherFactory = Callable[[DeviceConfig], Publisher]


def _logging_publisher(config: DeviceConfig) -> Publisher:
    return LoggingPublisher(device=config.name)


class DeviceRegistry:
    """Starts, stops and looks up independent device pollers by name."""

    def __init__(
        self,
        configs: Iterable[DeviceConfig] = (),
        publisher_factory: PublisherFactory = _logging_publisher,
    ) -> None:
        self.publisher_factory = publisher_factory
        self._pollers: Dict[str, Poller] = {}
        self._lock = Lock()
        for config in configs:
            self.add(config)

    def add(self, config: DeviceConfig, poller: Optional[Poller] = None) -> Poller:
        with self._lock:
            if config.name in self._pollers:
                raise ValueError(f"Device {config.name!r} is already registered.")
            poller = poller or Poller(config, publisher=self.publisher_factory(config))
            self._pollers[config.name] = poller
        return poller

    def get(self, name: str) -> Poller:
        with self._lock:
            poller = self._pollers.get(name)
        if poller is None:
            raise KeyError(f"Device {name!r} not found.")
        return poller

    def pollers(self) -> List[Poller]:
        with self._lock:
            return sorted(self._pollers.values(), key=lambda poller: poller.name)

    def start_all(self) -> None:
        for poller in self.pollers():
            if poller.state is not PollerState.stopped:
                poller.start()

    def shutdown(self) -> None:
        """Stop every poller; each one's in-flight cycle is discarded."""
        pollers = self.pollers()
        for poller in pollers:
            poller.stop(wait=False)
        for poller in pollers:
            poller.join()
        logger.info("Stopped %d device poller(s)", len(pollers))


@lru_cache
def build_default_registry(devices_path: Optional[str] = None) -> DeviceRegistry:
    """Factory that loads devices from the configured JSON file."""
    settings = get_settings()
    path_value = settings.devices_path if devices_path is None else devices_path
    if not path_value:
        return DeviceRegistry()

    path = Path(path_value)
    if not path.exists():
        logger.warning("Device file %s does not exist; no devices configured", path)
        return DeviceRegistry()
    return DeviceRegistry(load_device_configs(path))
