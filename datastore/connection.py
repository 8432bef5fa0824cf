"""Connection-string parsing for the document store backends."""

from __future__ import annotations

import re
from dataclasses import dataclass

from core.exceptions import ConfigError

_CONNECTION_PATTERN = re.compile(
    r"^(?P<server_url>(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*)://[^/\s]+)/(?P<database_name>\w+)$"
)


@dataclass(frozen=True)
class ConnectionInfo:
    scheme: str
    server_url: str
    database_name: str


def parse_connection_string(url: str) -> ConnectionInfo:
    """Split ``scheme://host[:port]/databaseName`` into its server URL and database name."""
    candidate = (url or "").strip()
    match = _CONNECTION_PATTERN.match(candidate)
    if match is None:
        raise ConfigError(
            f"Malformed connection string {url!r}; expected scheme://host[:port]/databaseName"
        )
    return ConnectionInfo(
        scheme=match.group("scheme").lower(),
        server_url=match.group("server_url"),
        database_name=match.group("database_name"),
    )
