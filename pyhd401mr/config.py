"""Connection settings for the HD-401MR switcher."""

import ipaddress
from dataclasses import dataclass
from typing import Any

from pyhd401mr.exceptions import ConfigurationError

DEFAULT_PORT = 60000


@dataclass(frozen=True)
class SwitcherConfig:
    """Target host and TCP port.

    Both must be present before a connection attempt is made. The host is an
    IPv4 or IPv6 address, the port 1-65535.
    """
    host: str = ""
    port: int = DEFAULT_PORT

    @property
    def is_configured(self) -> bool:
        return bool(self.host) and bool(self.port)

    def validate(self) -> "SwitcherConfig":
        if not self.is_configured:
            raise ConfigurationError("Host and port are both required")
        try:
            ipaddress.ip_address(self.host)
        except ValueError:
            raise ConfigurationError(f"Invalid IP address: {self.host!r}") from None
        if not (1 <= self.port <= 65535):
            raise ConfigurationError(f"Invalid port {self.port}, must be 1-65535")
        return self

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "SwitcherConfig":
        """Build a config from adapter form values, where the port may be a string."""
        host = str(values.get("host") or "").strip()
        port = values.get("port", DEFAULT_PORT)
        if port in (None, ""):
            port = 0
        try:
            port = int(port)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid port {port!r}") from None
        return cls(host=host, port=port)
