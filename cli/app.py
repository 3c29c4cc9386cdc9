from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_analysis,
    render_comparison,
    render_devices,
    render_risk,
    render_statistics,
    render_trend,
)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Query sensor analytics from the environment monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)

_RANGE_HELP = "Time range: 1h, 6h, 24h, 7d or 30d (defaults to the service setting)."


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
        help="Analytics API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("devices")
def devices_command(ctx: typer.Context) -> None:
    """List registered devices."""
    state = _get_state(ctx)
    render_devices(state.client.list_devices())


@app.command("stats")
def stats_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    field: str = typer.Option("temperature", "--field", "-f", help="Sensor field to summarize."),
    range_: Optional[str] = typer.Option(None, "--range", "-r", help=_RANGE_HELP),
) -> None:
    """Show descriptive statistics for one sensor field."""
    state = _get_state(ctx)
    render_statistics(state.client.get_statistics(device_id, field, range_))


@app.command("trend")
def trend_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    field: str = typer.Option("temperature", "--field", "-f", help="Sensor field to trend."),
    window: Optional[int] = typer.Option(None, "--window", "-w", min=1, help="Moving-average window."),
    range_: Optional[str] = typer.Option(None, "--range", "-r", help=_RANGE_HELP),
) -> None:
    """Show the moving-average trend for one sensor field."""
    state = _get_state(ctx)
    render_trend(state.client.get_trend(device_id, field, window, range_))


@app.command("risk")
def risk_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    range_: Optional[str] = typer.Option(None, "--range", "-r", help=_RANGE_HELP),
) -> None:
    """Show the health-risk assessment for a device."""
    state = _get_state(ctx)
    render_risk(state.client.get_health_risk(device_id, range_))


@app.command("analyze")
def analyze_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    range_: Optional[str] = typer.Option(None, "--range", "-r", help=_RANGE_HELP),
) -> None:
    """Show the environment analysis summary for a device."""
    state = _get_state(ctx)
    render_analysis(state.client.get_analysis(device_id, range_))


@app.command("compare")
def compare_command(
    ctx: typer.Context,
    device_ids: List[str] = typer.Argument(..., help="Device identifiers to compare."),
    field: str = typer.Option("temperature", "--field", "-f", help="Sensor field to compare."),
    range_: Optional[str] = typer.Option(None, "--range", "-r", help=_RANGE_HELP),
) -> None:
    """Compare one sensor field across devices on a shared timeline."""
    state = _get_state(ctx)
    render_comparison(state.client.get_comparison(device_ids, field, range_))
