"""
Aggregate collector handed to the prometheus_client registry.

Runs every enabled collector on its own thread per scrape and reports,
next to their observations, how long each one took and whether it
succeeded. One failing collector never hides the others' output.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterator, List, Sequence, Tuple

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.metrics_core import Metric

from svr_exporter.collector import service_collector  # noqa: F401  registers "svr"
from svr_exporter.collector.base import Collector, CollectorTable
from svr_exporter.config import ExporterConfig
from svr_exporter.errors import UnknownCollector
from svr_exporter.metrics import build_fq_name

log = logging.getLogger(__name__)


class NodeCollector:
    """Runs the selected collectors; registered into a CollectorRegistry."""

    def __init__(self, config: ExporterConfig, filters: Sequence[str] = ()):
        self._namespace = config.namespace
        enabled = CollectorTable.enabled(config)

        names = enabled
        if filters:
            for name in filters:
                if name not in enabled:
                    raise UnknownCollector(f"missing collector: {name}")
            names = sorted(set(filters))

        self.collectors: Dict[str, Collector] = {
            name: CollectorTable.get(name).factory(config) for name in names
        }

    def collect(self) -> Iterator[Metric]:
        duration = GaugeMetricFamily(
            build_fq_name(self._namespace, "scrape", "collector_duration_seconds"),
            "svr_exporter: Duration of a collector scrape.",
            labels=["collector"],
        )
        success = GaugeMetricFamily(
            build_fq_name(self._namespace, "scrape", "collector_success"),
            "svr_exporter: Whether a collector succeeded.",
            labels=["collector"],
        )

        if not self.collectors:
            yield duration
            yield success
            return

        with ThreadPoolExecutor(max_workers=len(self.collectors), thread_name_prefix="collector") as pool:
            futures = {
                name: pool.submit(_run_collector, name, collector)
                for name, collector in self.collectors.items()
            }
            results = {name: future.result() for name, future in futures.items()}

        for name in sorted(results):
            metrics, elapsed, ok = results[name]
            duration.add_metric([name], elapsed)
            success.add_metric([name], 1.0 if ok else 0.0)
            yield from metrics

        yield duration
        yield success


def _run_collector(name: str, collector: Collector) -> Tuple[List[Metric], float, bool]:
    buffered: List[Metric] = []
    start = time.monotonic()
    try:
        collector.update(buffered.append)
    except Exception as e:
        elapsed = time.monotonic() - start
        log.error("ERROR: %s collector failed after %fs: %s", name, elapsed, e)
        return [], elapsed, False

    elapsed = time.monotonic() - start
    log.debug("OK: %s collector succeeded after %fs.", name, elapsed)
    return buffered, elapsed, True
