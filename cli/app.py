from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import echo_key_values, render_reading, render_readings, render_seed_report
from datastore.reading_store import build_default_store
from logging_config import configure_logging
from services.seeder import seed_store


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the IoT device monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:5001).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier, e.g. DEV001."),
    temperature: float = typer.Option(..., "--temperature", "-t", help="Temperature in °C."),
    humidity: float = typer.Option(..., "--humidity", "-H", help="Relative humidity in %."),
    name: Optional[str] = typer.Option(
        None,
        "--name",
        "-n",
        help="Display name; inherited from the previous reading when omitted.",
    ),
) -> None:
    """Submit a single reading."""
    state = _get_state(ctx)
    payload = state.client.create_reading(
        device_id, temperature=temperature, humidity=humidity, device_name=name
    )
    typer.secho("Reading stored.", fg=typer.colors.GREEN)
    render_reading(payload)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the latest reading of every device."""
    state = _get_state(ctx)
    render_readings("Latest Readings", state.client.get_latest())


@app.command("history")
def history_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-l",
        min=1,
        help="Maximum readings per device (server default 48).",
    ),
) -> None:
    """Show recent readings across all devices."""
    state = _get_state(ctx)
    render_readings("Reading History", state.client.get_history(limit))


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device whose readings should be removed."),
) -> None:
    """Delete every reading stored for a device."""
    state = _get_state(ctx)
    payload = state.client.delete_device(device_id)
    typer.secho(payload.get("message", "Device deleted."), fg=typer.colors.GREEN)
    echo_key_values([("deletedCount", payload.get("deletedCount"))])


@app.command("seed")
def seed_command(
    reset: bool = typer.Option(
        True,
        "--reset/--no-reset",
        help="Clear all stored readings before seeding.",
    ),
) -> None:
    """Write 24 hours of synthetic readings straight into the local store."""
    configure_logging()
    store = build_default_store()
    try:
        report = seed_store(store, reset=reset)
    finally:
        store.close()
        build_default_store.cache_clear()
    render_seed_report(report.cleared, report.inserted, report.failed)
    typer.secho(
        f"Seeding completed: inserted={report.total_inserted} failed={report.total_failed}",
        fg=typer.colors.GREEN,
    )
