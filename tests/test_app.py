from typing import Dict, Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from models.config import DeviceConfig
from models.records import PollerState
from services.errors import FetchError
from services.poller import Poller
from services.registry import DeviceRegistry, build_default_registry


class StaticFetcher:
    def __init__(self, body: str) -> None:
        self.body = body

    def retrieve(self, url: str) -> str:
        return self.body


class FailingFetcher:
    def retrieve(self, url: str) -> str:
        raise FetchError("HTTP 500", url=url, status_code=500)


def _poller(name: str, fetcher) -> Poller:
    config = DeviceConfig(
        name=name,
        url=f"http://{name}.local/status",
        selector="#t",
        refresh_interval_seconds=3600,
    )
    return Poller(config, fetcher=fetcher)


@pytest.fixture
def registry() -> DeviceRegistry:
    registry = DeviceRegistry()
    for poller in (
        _poller("attic", StaticFetcher("<span id='t'>23.5</span>")),
        _poller("cellar", FailingFetcher()),
    ):
        registry.add(poller.config, poller)
    return registry


def _install_registry(monkeypatch, registry: DeviceRegistry) -> None:
    registries: List[DeviceRegistry] = [registry]

    def build_test_registry(devices_path: str | None = None) -> DeviceRegistry:
        return registries[0]

    def cache_clear() -> None:
        registries[0].shutdown()

    build_test_registry.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_registry", build_test_registry)
    monkeypatch.setattr("app.api.build_default_registry", build_test_registry)


@pytest.fixture
def api_client(registry: DeviceRegistry, monkeypatch) -> Iterator[TestClient]:
    _install_registry(monkeypatch, registry)
    app = create_app()
    with TestClient(app) as client:
        yield client


def test_lifespan_starts_and_stops_pollers(registry: DeviceRegistry, monkeypatch) -> None:
    _install_registry(monkeypatch, registry)
    app = create_app()

    with TestClient(app):
        assert all(poller.is_running for poller in registry.pollers())

    assert all(poller.state is PollerState.stopped for poller in registry.pollers())


def test_lifespan_clears_default_registry_cache(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("SCRAPER_DEVICES_PATH", "")
    from settings import get_settings

    get_settings.cache_clear()
    try:
        app = create_app()
        with TestClient(app):
            during = build_default_registry()
        after = build_default_registry()
        assert after is not during
    finally:
        build_default_registry.cache_clear()
        get_settings.cache_clear()


def test_list_devices(api_client: TestClient) -> None:
    response = api_client.get("/devices")

    assert response.status_code == 200
    payload = response.json()
    assert [device["name"] for device in payload] == ["attic", "cellar"]
    assert payload[0]["info"]["manufacturer"] == "attic.local"


def test_refresh_reports_new_reading(api_client: TestClient) -> None:
    response = api_client.post("/devices/attic/refresh")

    assert response.status_code == 200
    payload = response.json()
    assert payload["state"] == "healthy"
    assert payload["reading"]["value"] == 23.5
    assert payload["reading"]["fault"] is False
    assert payload["reading"]["last_updated"] is not None


def test_refresh_of_failing_device_reports_fault(api_client: TestClient) -> None:
    response = api_client.post("/devices/cellar/refresh")

    assert response.status_code == 200
    payload = response.json()
    assert payload["state"] == "faulted"
    assert payload["reading"] == {
        "value": 0.0,
        "fault": True,
        "last_updated": payload["reading"]["last_updated"],
    }


def test_get_device(api_client: TestClient) -> None:
    api_client.post("/devices/attic/refresh")

    response = api_client.get("/devices/attic")

    assert response.status_code == 200
    body: Dict = response.json()
    assert body["selector"] == "#t"
    assert body["refresh_interval_seconds"] == 3600


def test_get_missing_device_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/devices/garage")

    assert response.status_code == 404
    assert "garage" in response.json()["detail"]


def test_refresh_stopped_device_returns_conflict(api_client: TestClient, registry: DeviceRegistry) -> None:
    registry.get("attic").stop()

    response = api_client.post("/devices/attic/refresh")

    assert response.status_code == 409


def test_health_counts_devices(api_client: TestClient) -> None:
    api_client.post("/devices/cellar/refresh")

    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "devices": 2, "faulted": 1}
