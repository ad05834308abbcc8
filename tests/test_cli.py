from __future__ import annotations

from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from cli.app import app
from services.errors import FetchError


class StubFetcher:
    body = "<div class='temp'>23.5 °C</div>"
    error: Exception | None = None
    instances: List["StubFetcher"] = []

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        self.urls: List[str] = []
        self.closed = False
        StubFetcher.instances.append(self)

    def retrieve(self, url: str) -> str:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.body

    def close(self) -> None:
        self.closed = True


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.refreshed: List[str] = []
        self.closed = False
        self.device: Dict[str, Any] = {
            "name": "attic",
            "url": "http://attic.local/",
            "selector": "#t",
            "refresh_interval_seconds": 60.0,
            "state": "healthy",
            "reading": {"value": 21.5, "fault": False, "last_updated": "2024-01-01T00:00:00Z"},
            "info": {"name": "attic", "manufacturer": "attic.local", "model": "/", "serial_number": None},
        }

    def list_devices(self) -> List[Dict[str, Any]]:
        return [self.device]

    def get_device(self, name: str) -> Dict[str, Any]:
        return {**self.device, "name": name}

    def refresh_device(self, name: str) -> Dict[str, Any]:
        self.refreshed.append(name)
        return {**self.device, "name": name}

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def stub_fetcher(monkeypatch) -> type[StubFetcher]:
    StubFetcher.instances = []
    StubFetcher.error = None
    monkeypatch.setattr("cli.app.Fetcher", StubFetcher)
    return StubFetcher


def _install_client(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def test_probe_prints_value(runner: CliRunner) -> None:
    result = runner.invoke(app, ["probe", "http://attic.local/", ".temp", "--timeout", "2"])

    assert result.exit_code == 0
    assert result.stdout.strip() == "23.5"
    fetcher = StubFetcher.instances[0]
    assert fetcher.timeout == 2.0
    assert fetcher.urls == ["http://attic.local/"]
    assert fetcher.closed is True


def test_probe_reports_fetch_error(runner: CliRunner, stub_fetcher) -> None:
    stub_fetcher.error = FetchError("HTTP 503 fetching http://attic.local/", url="http://attic.local/", status_code=503)

    result = runner.invoke(app, ["probe", "http://attic.local/", ".temp"])

    assert result.exit_code == 1
    assert "fetch failed" in result.output


def test_probe_reports_missing_element(runner: CliRunner) -> None:
    result = runner.invoke(app, ["probe", "http://attic.local/", "#missing"])

    assert result.exit_code == 1
    assert "element not found" in result.output


def test_probe_rejects_invalid_url(runner: CliRunner) -> None:
    result = runner.invoke(app, ["probe", "attic", ".temp"])

    assert result.exit_code == 1
    assert "Invalid device configuration" in result.output
    assert not StubFetcher.instances


def test_watch_stops_after_count(runner: CliRunner) -> None:
    result = runner.invoke(
        app,
        ["watch", "http://attic.local/", ".temp", "--interval", "0.01", "--count", "2"],
    )

    assert result.exit_code == 0
    assert result.stdout.count("reading: 23.5") >= 2
    assert StubFetcher.instances[0].closed is True


def test_watch_reports_faults(runner: CliRunner, stub_fetcher) -> None:
    stub_fetcher.error = FetchError("HTTP 500", url="http://attic.local/", status_code=500)

    result = runner.invoke(
        app,
        ["watch", "http://attic.local/", ".temp", "--interval", "0.01", "--count", "1"],
    )

    assert result.exit_code == 0
    assert "fault: last value 0.0" in result.stdout


def test_status_lists_devices(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_client(monkeypatch, stub)

    result = runner.invoke(app, ["--base-url", "http://sensors:9000/", "status"])

    assert result.exit_code == 0
    assert "Device attic" in result.stdout
    assert "value: 21.5" in result.stdout
    assert stub.config.base_url == "http://sensors:9000"
    assert stub.closed is True


def test_status_refreshes_single_device(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_client(monkeypatch, stub)

    result = runner.invoke(app, ["status", "cellar", "--refresh"])

    assert result.exit_code == 0
    assert stub.refreshed == ["cellar"]
    assert "Device cellar" in result.stdout
