from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import format_reading, render_device, render_devices
from logging_config import configure_logging
from models.config import DeviceConfig
from services.errors import ConfigError, PollError
from services.extractor import Extractor
from services.fetcher import Fetcher
from services.poller import Poller
from services.publisher import CallbackPublisher


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Scrape a numeric sensor reading from a web page.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _build_device(**fields: object) -> DeviceConfig:
    try:
        return DeviceConfig(**fields)
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Sensor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Emit service logs to stderr at this level.",
    ),
) -> None:
    """Entry point for the CLI."""
    if log_level:
        configure_logging(log_level.upper())
    config = load_config(base_url=base_url)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("probe")
def probe_command(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Page to fetch."),
    selector: str = typer.Argument(..., help="CSS selector of the element holding the value."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Request timeout in seconds."),
) -> None:
    """Fetch the page once and print the extracted value."""
    state = _get_state(ctx)
    device = _build_device(
        name="probe",
        url=url,
        selector=selector,
        timeout_seconds=timeout if timeout is not None else state.config.fetch_timeout,
    )
    fetcher = Fetcher(timeout=device.timeout_seconds)
    try:
        body = fetcher.retrieve(device.url)
        value = Extractor().extract(body, device.selector)
    except PollError as exc:
        typer.secho(f"{exc.reason}: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    finally:
        fetcher.close()
    typer.echo(value)


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Page to poll."),
    selector: str = typer.Argument(..., help="CSS selector of the element holding the value."),
    interval: float = typer.Option(60.0, "--interval", "-i", help="Seconds between poll cycles."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Request timeout in seconds."),
    retries: int = typer.Option(0, "--retries", help="Extra fetch attempts per cycle."),
    count: Optional[int] = typer.Option(
        None, "--count", "-n", min=1, help="Stop after this many poll cycles."
    ),
) -> None:
    """Poll the page repeatedly, printing every reading and fault change."""
    state = _get_state(ctx)
    device = _build_device(
        name="watch",
        url=url,
        selector=selector,
        refresh_interval_seconds=interval,
        timeout_seconds=timeout if timeout is not None else state.config.fetch_timeout,
        fetch_retries=retries,
    )

    def show_reading(value: float) -> None:
        typer.echo(f"reading: {format_reading(value, False)}")

    def show_fault(is_fault: bool) -> None:
        if is_fault:
            typer.secho(f"fault: last value {poller.reading.value}", fg=typer.colors.RED)
        else:
            typer.secho("fault cleared", fg=typer.colors.GREEN)

    fetcher = Fetcher(timeout=device.timeout_seconds)
    poller = Poller(
        device,
        publisher=CallbackPublisher(on_reading=show_reading, on_fault=show_fault),
        fetcher=fetcher,
    )
    typer.echo(f"Watching {device.selector!r} on {device.url} every {device.refresh_interval_seconds}s ...")
    poller.start()
    try:
        while count is None or poller.completed_cycles < count:
            time.sleep(0.05)
    except KeyboardInterrupt:
        typer.echo("Interrupted.")
    finally:
        poller.stop()
        fetcher.close()


@app.command("status")
def status_command(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Device name; omit to list all devices."),
    refresh: bool = typer.Option(
        False,
        "--refresh/--no-refresh",
        help="Run a poll cycle on the server before showing the device.",
    ),
) -> None:
    """Show device state and readings reported by the sensor API."""
    state = _get_state(ctx)
    if name is None:
        render_devices(state.client.list_devices())
        return
    if refresh:
        payload = state.client.refresh_device(name)
    else:
        payload = state.client.get_device(name)
    render_device(payload)
