from __future__ import annotations

import time
from typing import Any, Dict

import httpx
import typer

from cli.config import CLIConfig
from models.records import Metric


class ApiClient:
    """Minimal HTTP client for the telemetry store service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.request_timeout)

    def close(self) -> None:
        self._client.close()

    def write_reading(self, metric: Metric, sensor_id: str, value: str, seq_num: str) -> str:
        response = self._get(
            f"/{metric.value}",
            params={"sensorId": sensor_id, "value": value, "seqNum": seq_num},
        )
        url = response.json().get("URL")
        if not isinstance(url, str):
            raise typer.BadParameter("Unexpected response payload when writing a reading.")
        return url

    def get_last(self, metric: Metric, sensor_id: str) -> Dict[str, Any]:
        response = self._client.get(f"/{metric.value}/{sensor_id}")
        if response.status_code == 404:
            raise typer.BadParameter(f"No {metric.name} reading for sensor {sensor_id}.")
        self._raise_for_status(response)
        return response.json()

    def wait_for_update(
        self,
        metric: Metric,
        sensor_id: str,
        since_seq: str,
        interval: float,
        timeout: float,
    ) -> Dict[str, Any]:
        """Poll until the sensor's sequence number differs from ``since_seq``."""
        deadline = time.monotonic() + timeout
        last_payload: Dict[str, Any] | None = None
        while time.monotonic() <= deadline:
            last_payload = self.get_last(metric, sensor_id)
            if last_payload.get("seqNum") != since_seq:
                return last_payload
            time.sleep(interval)
        typer.secho(
            (
                f"Timed out waiting for a new {metric.name} reading from sensor {sensor_id}. "
                f"Last seqNum: {last_payload.get('seqNum') if last_payload else 'unknown'}"
            ),
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    def get_ip(self) -> str:
        return str(self._get("/ipAddr").json().get("ip", ""))

    def close_database(self) -> str:
        return self._client.get("/closeDB").text.strip()

    def clear_database(self) -> str:
        return self._client.get("/clearDB").text.strip()

    def _get(self, path: str, **kwargs: Any) -> httpx.Response:
        response = self._client.get(path, **kwargs)
        self._raise_for_status(response)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            data = response.json()
            detail = f"{data.get('code')}: {data.get('message')}"
        except ValueError:
            detail = response.text.strip() or "no detail provided."
        typer.secho(
            f"Request failed with status {response.status_code}: {detail}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)
