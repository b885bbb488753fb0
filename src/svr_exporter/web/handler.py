"""
The scrape handler shared by pull (HTTP) and push (relay) delivery.

Every call builds a fresh registry holding a NodeCollector, gathers it
together with the process-wide default registry and the handler's own
instrumentation, and writes the encoded result into a Sink.
"""

from __future__ import annotations

import gzip
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Dict, Iterator, List, Sequence
from urllib.parse import parse_qs, urlsplit

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge
from prometheus_client.exposition import choose_encoder
from prometheus_client.metrics_core import Metric

from svr_exporter import __version__
from svr_exporter.collector.node import NodeCollector
from svr_exporter.config import ExporterConfig
from svr_exporter.errors import UnknownCollector
from svr_exporter.web.sink import Sink

log = logging.getLogger(__name__)


@dataclass
class ScrapeRequest:
    method: str
    path: str
    query: Dict[str, List[str]] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_url(cls, method: str, url: str, headers: Dict[str, str] = None) -> "ScrapeRequest":
        """Build a request from an absolute or origin-form URL ("/metrics?x=1")."""
        parts = urlsplit(url)
        return cls(
            method=method.upper(),
            path=parts.path or "/",
            query=parse_qs(parts.query, keep_blank_values=True),
            headers={k.lower(): v for k, v in (headers or {}).items()},
        )

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    @property
    def collect_filters(self) -> List[str]:
        return self.query.get("collect[]", [])


class _Gatherers:
    """Yields the families of several registries as if they were one."""

    def __init__(self, registries: Sequence[CollectorRegistry]):
        self._registries = registries

    def collect(self) -> Iterator[Metric]:
        for registry in self._registries:
            yield from registry.collect()


class MetricsHandler:

    def __init__(self, config: ExporterConfig, default_registry: CollectorRegistry = REGISTRY):
        self.config = config
        self._default_registry = default_registry

        # Lives as long as the handler, unlike the per-scrape registry
        self.instrumentation = CollectorRegistry()
        self._requests_total = Counter(
            "promhttp_metric_handler_requests",
            "Total number of scrapes by HTTP status code.",
            ["code"],
            registry=self.instrumentation,
        )
        self._in_flight = Gauge(
            "promhttp_metric_handler_requests_in_flight",
            "Current number of scrapes being served.",
            registry=self.instrumentation,
        )
        build_info = Gauge(
            "svr_exporter_build_info",
            "A metric with a constant '1' value labeled by version.",
            ["version"],
            registry=self.instrumentation,
        )
        build_info.labels(version=__version__).set(1)

    def handle(self, request: ScrapeRequest, sink: Sink) -> int:
        """Serve one scrape into sink. Returns the status code written.

        Never raises for collection problems; those end up as a status
        code and an error body.
        """
        self._in_flight.inc()
        try:
            code = self._serve(request, sink)
        finally:
            self._in_flight.dec()
        self._requests_total.labels(code=str(int(code))).inc()
        return code

    def _serve(self, request: ScrapeRequest, sink: Sink) -> int:
        filters = request.collect_filters
        log.debug("collect query: %s", filters)

        try:
            node_collector = NodeCollector(self.config, filters)
        except UnknownCollector as e:
            log.warning("Couldn't create %s", e)
            return _write_error(sink, HTTPStatus.BAD_REQUEST, f"Couldn't create {e}")

        registry = CollectorRegistry()
        try:
            registry.register(node_collector)
        except ValueError as e:
            log.error("Couldn't register collector: %s", e)
            return _write_error(sink, HTTPStatus.INTERNAL_SERVER_ERROR, f"Couldn't register collector: {e}")

        gatherers = _Gatherers([self._default_registry, self.instrumentation, registry])
        encoder, content_type = choose_encoder(request.header("Accept"))

        try:
            body = encoder(gatherers)
        except Exception as e:
            log.error("Error encoding metric families: %s", e)
            return _write_error(sink, HTTPStatus.INTERNAL_SERVER_ERROR, f"An error has occurred while serving metrics:\n\n{e}")

        sink.set_header("Content-Type", content_type)
        if "gzip" in request.header("Accept-Encoding"):
            body = gzip.compress(body)
            sink.set_header("Content-Encoding", "gzip")
        sink.set_header("Content-Length", str(len(body)))
        sink.set_status(HTTPStatus.OK)
        sink.append_body(body)
        return HTTPStatus.OK


def landing_page(metrics_path: str) -> bytes:
    return f"""<html>
<head><title>Service Exporter</title></head>
<body>
<h1>Service Exporter</h1>
<p><a href="{metrics_path}">Metrics</a></p>
</body>
</html>
""".encode("utf-8")


def _write_error(sink: Sink, code: int, message: str) -> int:
    body = message.encode("utf-8")
    sink.set_header("Content-Type", "text/plain; charset=utf-8")
    sink.set_header("Content-Length", str(len(body)))
    sink.set_status(code)
    sink.append_body(body)
    return code
