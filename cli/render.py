from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_reading(value: float, fault: bool) -> str:
    if fault:
        return typer.style(f"{value} (fault)", fg=typer.colors.RED)
    return typer.style(str(value), fg=typer.colors.GREEN)


def render_device(payload: Dict[str, Any]) -> None:
    echo_heading(f"Device {payload.get('name')}")
    reading = payload.get("reading") or {}
    echo_key_values(
        [
            ("url", payload.get("url")),
            ("selector", payload.get("selector")),
            ("refresh_interval_seconds", payload.get("refresh_interval_seconds")),
            ("state", payload.get("state")),
            ("value", format_reading(reading.get("value"), bool(reading.get("fault")))),
            ("last_updated", reading.get("last_updated") or "never"),
        ]
    )

    info = payload.get("info") or {}
    extra = [(key, info.get(key)) for key in ("manufacturer", "model", "serial_number") if info.get(key)]
    if extra:
        echo_key_values(extra)


def render_devices(payloads: List[Dict[str, Any]]) -> None:
    if not payloads:
        typer.echo("No devices configured.")
        return
    for index, payload in enumerate(payloads):
        if index:
            typer.echo()
        render_device(payload)
