from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

PARAMETERS = ("PH", "TDS", "TEMP", "TURBIDITY")

_SEVERITY_COLORS = {
    "Critical": typer.colors.RED,
    "Warning": typer.colors.YELLOW,
    "Normal": typer.colors.GREEN,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_stat(value: Any) -> str:
    if value is None:
        return "-"
    return f"{value:.2f}"


def render_history(device_id: str, buckets: List[Dict[str, Any]]) -> None:
    echo_heading(f"Reading history for {device_id}")
    for bucket in buckets:
        typer.echo(bucket.get("timestamp"))
        for parameter in PARAMETERS:
            stats = bucket.get(parameter) or {}
            typer.echo(
                f"  {parameter}: avg={_format_stat(stats.get('avg'))} "
                f"min={_format_stat(stats.get('min'))} "
                f"max={_format_stat(stats.get('max'))}"
            )


def echo_alert(alert: Dict[str, Any]) -> None:
    severity = alert.get("severity")
    line = f"  - [{severity}] {alert.get('originator')} {alert.get('message')}"
    if alert.get("note"):
        line += f" ({alert['note']})"
    typer.secho(line, fg=_SEVERITY_COLORS.get(severity))


def render_alerts(alerts: List[Dict[str, Any]]) -> None:
    echo_heading("Alerts")
    if not alerts:
        typer.echo("No alerts recorded.")
        return
    for alert in alerts:
        echo_alert(alert)


def render_ingest(payload: Dict[str, Any]) -> None:
    echo_heading("Reading accepted")
    echo_key_values(
        [
            ("device_id", payload.get("device_id")),
            ("timestamp", payload.get("timestamp")),
        ]
    )

    typer.echo()
    render_alerts(payload.get("alerts") or [])

    actions = payload.get("actions") or []
    if actions:
        typer.echo()
        echo_heading("Actions")
        for action in actions:
            typer.echo(f"  - {action}")


def render_thresholds(payload: Dict[str, Any]) -> None:
    source = "device override" if payload.get("overridden") else "defaults"
    echo_heading(f"Thresholds for {payload.get('device_id')} ({source})")
    for section, limits in (payload.get("thresholds") or {}).items():
        typer.echo(f"{section}:")
        for name, value in limits.items():
            typer.echo(f"  {name}: {value}")
