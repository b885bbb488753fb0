"""
Exporter configuration.

Built once by the CLI and handed to constructors. Nothing in the package
reads process-wide flag state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

DEFAULT_LISTEN_ADDRESS = ":9100"
DEFAULT_METRICS_PATH = "/metrics"
DEFAULT_SVR_LOCATION = "./metrics.sh"
DEFAULT_GATEWAY_URL = "http://localhost:9091/metrics/job/nls/instance/serviceName"
DEFAULT_NAMESPACE = "node"


@dataclass
class ExporterConfig:
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    metrics_path: str = DEFAULT_METRICS_PATH

    # Where the service collector reads from: a local executable/file or a URL
    svr_location: str = DEFAULT_SVR_LOCATION
    # Upper bound for one acquisition in seconds; None keeps it unbounded
    source_timeout: Optional[float] = None

    namespace: str = DEFAULT_NAMESPACE

    # Push relay
    gateway_url: str = DEFAULT_GATEWAY_URL
    push_interval: int = 0  # seconds, 0 disables pushing

    # Serve HTTP forever, or idle until a signal arrives
    web: bool = False

    # Per-collector overrides of the registered default_enabled flag
    collectors: Dict[str, bool] = field(default_factory=dict)

    log_level: str = "info"

    @property
    def push_enabled(self) -> bool:
        return self.push_interval > 0


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split "host:port" (host may be empty) into a bindable tuple.

    >>> parse_listen_address(":9100")
    ('', 9100)
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"listen address {address!r} is missing a port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in listen address {address!r}") from None
    if not 0 <= port_number <= 65535:
        raise ValueError(f"port out of range in listen address {address!r}")
    return host, port_number
