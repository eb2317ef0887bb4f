from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Sequence

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_reading(reading: Mapping[str, Any]) -> str:
    name = reading.get("deviceName") or "-"
    return (
        f"{reading.get('timestamp')}  {reading.get('deviceId')}  {name}  "
        f"{reading.get('temperature')}°C  {reading.get('humidity')}%"
    )


def render_reading(payload: Dict[str, Any]) -> None:
    echo_heading("Stored Reading")
    echo_key_values(
        [
            ("id", payload.get("id")),
            ("deviceId", payload.get("deviceId")),
            ("deviceName", payload.get("deviceName")),
            ("temperature", payload.get("temperature")),
            ("humidity", payload.get("humidity")),
            ("timestamp", payload.get("timestamp")),
        ]
    )


def render_readings(title: str, readings: Sequence[Mapping[str, Any]]) -> None:
    echo_heading(f"{title} ({len(readings)})")
    if not readings:
        typer.echo("No readings available.")
        return
    for reading in readings:
        typer.echo(f"  - {format_reading(reading)}")


def render_seed_report(cleared: int, inserted: Mapping[str, int], failed: Mapping[str, int]) -> None:
    echo_heading("Seed Result")
    echo_key_values([("cleared", cleared)])
    for device_id, count in inserted.items():
        typer.echo(f"  - {device_id}: inserted={count} failed={failed.get(device_id, 0)}")
