from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

# Numeric settings that may come from the environment, by field name.
_NUMERIC_ENV = {
    "poll_interval": "CLI_POLL_INTERVAL",
    "poll_timeout": "CLI_POLL_TIMEOUT",
    "request_timeout": "CLI_REQUEST_TIMEOUT",
}


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = "http://localhost:8000"
    poll_interval: float = 1.0
    poll_timeout: float = 30.0
    request_timeout: float = 10.0

    @classmethod
    def resolve(
        cls,
        overrides: Mapping[str, Optional[object]],
        environ: Mapping[str, str] = os.environ,
    ) -> "CLIConfig":
        """Pick each field from ``overrides``, then ``environ``, then the default."""
        defaults = {field.name: field.default for field in fields(cls)}
        values = {}
        for name, default in defaults.items():
            explicit = overrides.get(name)
            if explicit:
                values[name] = explicit
            elif name in _NUMERIC_ENV:
                values[name] = _seconds(environ.get(_NUMERIC_ENV[name]), default)
            else:
                values[name] = default
        url = str(overrides.get("base_url") or environ.get("API_BASE_URL") or defaults["base_url"])
        values["base_url"] = url.rstrip("/")
        return cls(**values)


def _seconds(raw: Optional[str], fallback: float) -> float:
    try:
        parsed = float((raw or "").strip())
    except ValueError:
        return fallback
    return parsed if parsed > 0 else fallback


def load_config(
    base_url: Optional[str] = None,
    poll_interval: Optional[float] = None,
    poll_timeout: Optional[float] = None,
) -> CLIConfig:
    return CLIConfig.resolve(
        {"base_url": base_url, "poll_interval": poll_interval, "poll_timeout": poll_timeout}
    )
