from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

from models.records import Metric


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(metric: Metric, sensor_id: str, payload: Dict[str, Any]) -> None:
    echo_heading(f"Latest {metric.name} reading")
    echo_key_values(
        [
            ("sensorId", sensor_id),
            ("sensorValue", payload.get("sensorValue")),
            ("seqNum", payload.get("seqNum")),
        ]
    )
