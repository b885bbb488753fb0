"""
Collector for an external service's own numbers.

Reads the configured location (script, file or URL), parses whatever it
returns, and exposes every value as a gauge named
``<namespace>_svr_<name>``. The whole MetricSet is built before anything
is emitted, so a bad line or a failed fetch yields no metrics at all for
that cycle.
"""

from __future__ import annotations

import logging

from prometheus_client.core import GaugeMetricFamily

from svr_exporter.collector.base import DEFAULT_ENABLED, Collector, Emit, register_collector
from svr_exporter.collector.location import LocationKind, classify
from svr_exporter.collector.source_reader import read_local, read_remote
from svr_exporter.collector.text_parser import parse_payload
from svr_exporter.config import ExporterConfig
from svr_exporter.errors import CollectionFailed, ExporterError, MalformedMetrics, UnsupportedLocation
from svr_exporter.metrics import MetricSet, build_fq_name, is_valid_metric_name

log = logging.getLogger(__name__)

SUBSYSTEM = "svr"


@register_collector(SUBSYSTEM, DEFAULT_ENABLED)
class ServiceCollector(Collector):

    def __init__(self, config: ExporterConfig):
        self._location = config.svr_location
        self._namespace = config.namespace
        self._timeout = config.source_timeout

    def acquire(self) -> MetricSet:
        """One detect -> read -> parse pass over the configured location."""
        kind = classify(self._location)

        if kind is LocationKind.LOCAL:
            payload = read_local(self._location, timeout=self._timeout)
        elif kind is LocationKind.REMOTE:
            payload = read_remote(self._location, timeout=self._timeout)
        else:
            raise UnsupportedLocation(self._location)

        metrics = parse_payload(payload, kind)

        for name in metrics:
            if not name or not is_valid_metric_name(build_fq_name(self._namespace, SUBSYSTEM, name)):
                raise MalformedMetrics("invalid metric name", name)

        return metrics

    def update(self, emit: Emit) -> None:
        try:
            metrics = self.acquire()
        except ExporterError as e:
            raise CollectionFailed(e) from e

        log.debug("Set service: %r", metrics)

        for name, value in metrics.items():
            emit(GaugeMetricFamily(
                build_fq_name(self._namespace, SUBSYSTEM, name),
                f"Service information field {name}.",
                value=value,
            ))

    def name(self) -> str:
        return f"svr ({self._location})"
