from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_LEVEL_COLORS = {
    "safe": typer.colors.GREEN,
    "moderate": typer.colors.YELLOW,
    "unhealthy": typer.colors.MAGENTA,
    "dangerous": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _fmt(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def render_devices(devices: List[Dict[str, Any]]) -> None:
    echo_heading("Devices")
    if not devices:
        typer.echo("No devices registered.")
        return
    for device in devices:
        typer.echo(f"  - {device.get('id')}: {device.get('name')} ({device.get('lat')}, {device.get('long')})")


def render_statistics(payload: Dict[str, Any]) -> None:
    echo_heading(f"Statistics: {payload.get('field')} on {payload.get('device_id')}")
    window = payload.get("window") or {}
    summary = payload.get("summary") or {}
    echo_key_values(
        [
            ("window", f"{window.get('start')} .. {window.get('end')}"),
            ("count", payload.get("count")),
        ]
    )
    if not payload.get("count"):
        typer.echo("No data available for statistical analysis.")
        return
    echo_key_values(
        (key, _fmt(summary.get(key)))
        for key in ("mean", "median", "min", "max", "std_dev", "variance")
    )
    echo_key_values(
        (key, _fmt(payload.get(key)))
        for key in ("range", "coefficient_of_variation", "p25", "p75", "p95", "slope")
    )
    typer.echo(f"direction: {payload.get('direction')}")


def render_trend(payload: Dict[str, Any]) -> None:
    echo_heading(
        f"Trend: {payload.get('field')} on {payload.get('device_id')} "
        f"(window={payload.get('moving_average_window')})"
    )
    points = payload.get("points") or []
    if not points:
        typer.echo("No data available for trend analysis.")
        return
    for point in points:
        typer.echo(f"  {point.get('timestamp')}  value={_fmt(point.get('value'))}  avg={_fmt(point.get('moving_average'))}")
    echo_key_values(
        [
            ("direction", payload.get("direction")),
            ("latest_change", _fmt(payload.get("latest_change"))),
        ]
    )


def render_comparison(payload: Dict[str, Any]) -> None:
    device_ids = payload.get("device_ids") or []
    echo_heading(f"Comparison: {payload.get('field')} across {', '.join(device_ids)}")
    points = payload.get("points") or []
    if not points:
        typer.echo("No data available for comparison.")
        return
    for point in points:
        values = point.get("values") or {}
        cells = [
            f"{device_id}={_fmt(values[device_id]) if device_id in values else '-'}"
            for device_id in device_ids
        ]
        typer.echo(f"  {point.get('timestamp')}  {'  '.join(cells)}")


def render_risk(payload: Dict[str, Any]) -> None:
    overall = payload.get("overall", "safe")
    echo_heading(f"Health Risk Assessment: {payload.get('device_id')}")
    if not payload.get("reading_count"):
        typer.echo("No data available for health risk assessment.")
        return
    typer.secho(f"overall: {overall}", fg=_LEVEL_COLORS.get(overall))
    alerts = payload.get("alerts") or []
    if not alerts:
        typer.echo("All readings within safe limits.")
        return
    for alert in alerts:
        typer.secho(
            f"  - {alert.get('field')}: {_fmt(alert.get('value'))} ({alert.get('level')})",
            fg=_LEVEL_COLORS.get(alert.get("level")),
        )


def render_analysis(payload: Dict[str, Any]) -> None:
    echo_heading(f"Environment Analysis: {payload.get('device_id')}")
    if not payload.get("sufficient_data"):
        typer.echo(payload.get("summary") or "Insufficient data to generate analysis.")
        return
    typer.echo(payload.get("summary"))
    typer.echo()
    for key in ("temperature", "humidity"):
        section = payload.get(key) or {}
        typer.echo(f"{key}: {_fmt(section.get('avg'))} {section.get('trend')} [{section.get('status')}]")
    air = payload.get("air_quality") or {}
    pollutants = ", ".join(air.get("pollutants") or []) or "none"
    typer.echo(f"air_quality: {air.get('status')} (pollutants: {pollutants})")
    for key in ("noise", "rain"):
        section = payload.get(key) or {}
        typer.echo(f"{key}: {_fmt(section.get('avg'))} [{section.get('status')}]")
