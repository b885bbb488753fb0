"""
Push relay: every N seconds, run a scrape through the normal handler into
an in-memory sink and POST the captured body to a gateway.

Failures are logged and the relay simply waits for the next tick. Each
tick runs on its own worker thread, so the timer never waits on a slow
source. While a worker is still busy, later ticks are skipped rather
than piling up more blocked threads.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import httpx

from svr_exporter.config import ExporterConfig
from svr_exporter.web.handler import MetricsHandler, ScrapeRequest
from svr_exporter.web.sink import CaptureSink

log = logging.getLogger(__name__)

PUSH_CONTENT_TYPE = "application/octet-stream"


class PushRelay:

    def __init__(self, config: ExporterConfig, metrics_handler: MetricsHandler):
        self._gateway_url = config.gateway_url
        self._interval = config.push_interval
        self._timeout = config.source_timeout
        self._metrics_path = config.metrics_path
        self._handler = metrics_handler

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._worker: Optional[threading.Thread] = None
        self.ticks = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start ticking. Returns False (and stays idle) when the interval is 0."""
        if self._interval <= 0:
            log.info("Push relay disabled (interval 0)")
            return False
        if self.running:
            return True

        log.info("Pushing to %s every %d second(s)", self._gateway_url, self._interval)
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="push-relay", daemon=True)
        self._thread.start()
        return True

    def stop(self):
        """Stop scheduling new ticks. Ticks already running are not waited for."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval + 1)
            self._thread = None

    def _loop(self):
        while not self._stop.wait(self._interval):
            self.ticks += 1
            if self._worker is not None and self._worker.is_alive():
                self.skipped += 1
                log.warning("Previous push still running, skipping tick %d", self.ticks)
                continue
            self._worker = threading.Thread(target=self.push_once, name=f"push-tick-{self.ticks}", daemon=True)
            self._worker.start()

    def capture(self) -> CaptureSink:
        """Run one synthetic scrape and return what the handler wrote."""
        request = ScrapeRequest.from_url(
            "GET",
            f"http://localhost{self._metrics_path}",
            headers={"Accept-Encoding": ""},
        )
        sink = CaptureSink()
        self._handler.handle(request, sink)
        return sink

    def push_once(self) -> bool:
        """One full tick. Never raises; returns whether the gateway accepted it."""
        try:
            sink = self.capture()
            if sink.status_code != 200:
                log.warning("Local scrape returned %d, pushing it anyway", sink.status_code)
            response = httpx.post(
                self._gateway_url,
                content=bytes(sink.body),
                headers={"Content-Type": PUSH_CONTENT_TYPE},
                timeout=self._timeout,
            )
        except Exception as e:
            log.error("Push to %s failed: %s", self._gateway_url, e)
            return False

        if not response.is_success:
            log.warning("Gateway %s answered %d", self._gateway_url, response.status_code)
            return False

        log.debug("Pushed %d bytes to %s", len(sink.body), self._gateway_url)
        return True
