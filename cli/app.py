from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_reading
from models.records import Metric


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the telemetry store service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between reads when watching a sensor.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Maximum seconds to wait when watching a sensor.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        poll_interval=poll_interval,
        poll_timeout=timeout,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("write")
def write_command(
    ctx: typer.Context,
    metric: Metric = typer.Argument(..., help="Metric to write."),
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
    value: str = typer.Argument(..., help="Reading value."),
    seq_num: str = typer.Argument(..., help="Sequence number reported by the sensor."),
) -> None:
    """Store one reading."""
    state = _get_state(ctx)
    url = state.client.write_reading(metric, sensor_id, value, seq_num)
    typer.secho(f"Stored {url}", fg=typer.colors.GREEN)


@app.command("last")
def last_command(
    ctx: typer.Context,
    metric: Metric = typer.Argument(..., help="Metric to read."),
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
) -> None:
    """Show the most recent reading of a sensor."""
    state = _get_state(ctx)
    render_reading(metric, sensor_id, state.client.get_last(metric, sensor_id))


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    metric: Metric = typer.Argument(..., help="Metric to watch."),
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
) -> None:
    """Wait for the next reading of a sensor and show it."""
    state = _get_state(ctx)
    current = state.client.get_last(metric, sensor_id)
    typer.echo(
        f"Waiting for a reading after seqNum={current.get('seqNum')} "
        f"(interval={state.config.poll_interval}s, timeout={state.config.poll_timeout}s)..."
    )
    payload = state.client.wait_for_update(
        metric,
        sensor_id,
        since_seq=str(current.get("seqNum")),
        interval=state.config.poll_interval,
        timeout=state.config.poll_timeout,
    )
    render_reading(metric, sensor_id, payload)


@app.command("ip")
def ip_command(ctx: typer.Context) -> None:
    """Print the address advertised by the service host."""
    typer.echo(_get_state(ctx).client.get_ip())


def _report_admin(answer: str, action: str) -> None:
    if answer == "GOOD":
        typer.secho(f"{action}: GOOD", fg=typer.colors.GREEN)
        return
    typer.secho(f"{action}: {answer or 'no answer'}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.command("close-db")
def close_db_command(ctx: typer.Context) -> None:
    """Ask the service to close its database connection."""
    _report_admin(_get_state(ctx).client.close_database(), "close-db")


@app.command("clear-db")
def clear_db_command(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Drop every collection and restore the default readings."""
    if not yes:
        typer.confirm("This drops every stored reading. Continue?", abort=True)
    _report_admin(_get_state(ctx).client.clear_database(), "clear-db")
