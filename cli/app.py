from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alerts, render_history, render_ingest, render_thresholds


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the WaterGuard monitoring service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="WaterGuard API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("history")
def history_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier, e.g. PS01-DEV."),
    range_name: Optional[str] = typer.Option(
        None,
        "--range",
        "-r",
        help="Lookback window: 24h, 7d or 30d.",
    ),
) -> None:
    """Show hourly or daily summaries of a device's readings."""
    state = _get_state(ctx)
    buckets = state.client.get_history(device_id, range_name)
    if buckets is None:
        typer.secho(
            f"No readings found for {device_id} in the selected range.",
            fg=typer.colors.YELLOW,
        )
        return
    render_history(device_id, buckets)


@app.command("send")
def send_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    ph: Optional[float] = typer.Option(None, "--ph", help="pH value."),
    tds: Optional[float] = typer.Option(None, "--tds", help="TDS in ppm."),
    temp: Optional[float] = typer.Option(None, "--temp", help="Temperature in °C."),
    turbidity: Optional[float] = typer.Option(None, "--turbidity", help="Turbidity in NTU."),
) -> None:
    """Submit one reading and show the alerts it raised."""
    values = {
        name: value
        for name, value in (("PH", ph), ("TDS", tds), ("TEMP", temp), ("TURBIDITY", turbidity))
        if value is not None
    }
    if not values:
        raise typer.BadParameter("Provide at least one of --ph, --tds, --temp or --turbidity.")
    state = _get_state(ctx)
    render_ingest(state.client.send_reading(device_id, values))


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    lifecycle: Optional[str] = typer.Option(None, "--lifecycle", help="Active, Recent or History."),
    severity: Optional[str] = typer.Option(None, "--severity", help="Warning or Critical."),
    originator: Optional[str] = typer.Option(
        None, "--originator", help="Only alerts raised by this device."
    ),
) -> None:
    """List alerts, newest first."""
    state = _get_state(ctx)
    render_alerts(
        state.client.list_alerts(lifecycle=lifecycle, severity=severity, originator=originator)
    )


@app.command("thresholds")
def thresholds_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
) -> None:
    """Show the thresholds in effect for a device."""
    state = _get_state(ctx)
    render_thresholds(state.client.get_thresholds(device_id))
