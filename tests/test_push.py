"""
Tests for the push relay, against a recording gateway on loopback.
"""

import time

from prometheus_client import CollectorRegistry

from svr_exporter.config import ExporterConfig
from svr_exporter.push import PUSH_CONTENT_TYPE, PushRelay
from svr_exporter.web.handler import MetricsHandler, ScrapeRequest
from svr_exporter.web.sink import CaptureSink


def _relay(tmp_path, gateway_url: str, interval: int = 0) -> PushRelay:
    fixture = tmp_path / "metrics.txt"
    fixture.write_text("cpu 0.42\nmem 128\n")
    config = ExporterConfig(svr_location=str(fixture), gateway_url=gateway_url, push_interval=interval)
    return PushRelay(config, MetricsHandler(config, default_registry=CollectorRegistry()))


def _values_without_timing(body: bytes):
    """Drop the lines that legitimately differ between two scrapes."""
    return [
        line for line in body.decode().splitlines()
        if "duration_seconds" not in line and "promhttp_metric_handler" not in line
    ]


def test_push_once_posts_captured_body(tmp_path, gateway):
    relay = _relay(tmp_path, gateway.url)

    assert relay.push_once() is True

    assert len(gateway.received) == 1
    path, headers, body = gateway.received[0]
    assert path == "/metrics/job/test"
    assert headers["content-type"] == PUSH_CONTENT_TYPE
    assert b"node_svr_cpu 0.42\n" in body
    assert b"node_svr_mem 128.0\n" in body


def test_pushed_body_matches_a_pull_scrape(tmp_path, gateway):
    relay = _relay(tmp_path, gateway.url)
    relay.push_once()
    pushed = gateway.received[0][2]

    sink = CaptureSink()
    relay._handler.handle(ScrapeRequest.from_url("GET", "/metrics", {"Accept-Encoding": ""}), sink)

    assert _values_without_timing(pushed) == _values_without_timing(bytes(sink.body))


def test_synthetic_request_is_uncompressed(tmp_path, gateway):
    sink = _relay(tmp_path, gateway.url).capture()

    assert sink.status_code == 200
    assert "Content-Encoding" not in sink.headers
    assert b"node_svr_cpu" in sink.body


def test_gateway_error_is_swallowed(tmp_path, gateway):
    gateway.status = 500
    relay = _relay(tmp_path, gateway.url)

    assert relay.push_once() is False
    assert len(gateway.received) == 1


def test_unreachable_gateway_is_swallowed(tmp_path):
    relay = _relay(tmp_path, "http://127.0.0.1:9/metrics/job/test")
    assert relay.push_once() is False


def test_bad_gateway_url_is_swallowed(tmp_path):
    relay = _relay(tmp_path, "not a url")
    assert relay.push_once() is False


def test_interval_zero_never_pushes(tmp_path, gateway):
    relay = _relay(tmp_path, gateway.url, interval=0)

    assert relay.start() is False
    time.sleep(1.5)

    assert relay.running is False
    assert relay.ticks == 0
    assert gateway.received == []
    relay.stop()


def test_relay_pushes_on_interval(tmp_path, gateway):
    relay = _relay(tmp_path, gateway.url, interval=1)

    assert relay.start() is True
    try:
        deadline = time.monotonic() + 5
        while len(gateway.received) < 2 and time.monotonic() < deadline:
            time.sleep(0.1)
    finally:
        relay.stop()

    assert len(gateway.received) >= 2
    assert relay.running is False


def test_relay_keeps_going_after_failures(tmp_path, gateway):
    gateway.status = 502
    relay = _relay(tmp_path, gateway.url, interval=1)

    relay.start()
    try:
        deadline = time.monotonic() + 5
        while len(gateway.received) < 2 and time.monotonic() < deadline:
            time.sleep(0.1)
    finally:
        relay.stop()

    assert len(gateway.received) >= 2


def test_busy_worker_skips_ticks(tmp_path, gateway):
    script = tmp_path / "slow.sh"
    script.write_text("#!/bin/sh\nexec sleep 3\n")
    config = ExporterConfig(svr_location=str(script), gateway_url=gateway.url, push_interval=1)
    relay = PushRelay(config, MetricsHandler(config, default_registry=CollectorRegistry()))

    relay.start()
    try:
        time.sleep(2.6)
    finally:
        relay.stop()

    assert relay.ticks >= 2
    assert relay.skipped >= 1
    assert gateway.received == []
