"""
svr-exporter entry point.

Usage:
    svr-exporter --web                                   Serve /metrics on :9100
    svr-exporter --pushgateway.interval 15               Push every 15s, no HTTP
    svr-exporter --collector.svr.path http://host/stats  Read from a URL
    svr-exporter check                                   One collection, printed
    svr-exporter fake-source --port 7001                 Local fake service
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import Optional

import click

from svr_exporter import __version__
from svr_exporter.collector.base import CollectorTable
from svr_exporter.collector.service_collector import SUBSYSTEM, ServiceCollector
from svr_exporter.config import (
    DEFAULT_GATEWAY_URL,
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_METRICS_PATH,
    DEFAULT_SVR_LOCATION,
    ExporterConfig,
    parse_listen_address,
)
from svr_exporter.errors import ExporterError
from svr_exporter.push import PushRelay
from svr_exporter.web.handler import MetricsHandler
from svr_exporter.web.server import make_server


log = logging.getLogger("svr_exporter")

LOG_LEVELS = ("debug", "info", "warn", "error")

_QUIT_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM", "SIGUSR1", "SIGUSR2") if hasattr(signal, name)
)


def setup_logging(level: str):
    logging.basicConfig(
        level=logging.WARNING if level == "warn" else getattr(logging, level.upper()),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _validate_listen_address(ctx, param, value):
    try:
        parse_listen_address(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from None
    return value


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="svr-exporter")
@click.option("--web.listen-address", "listen_address", default=DEFAULT_LISTEN_ADDRESS,
              envvar="SVR_EXPORTER_LISTEN_ADDRESS", callback=_validate_listen_address,
              help="Address on which to expose metrics and web interface.")
@click.option("--web.telemetry-path", "metrics_path", default=DEFAULT_METRICS_PATH,
              envvar="SVR_EXPORTER_TELEMETRY_PATH", help="Path under which to expose metrics.")
@click.option("--collector.svr.path", "svr_location", default=DEFAULT_SVR_LOCATION,
              envvar="SVR_EXPORTER_SVR_PATH",
              help="Script, file or http(s) URL that reports the service's numbers.")
@click.option("--collector.svr.timeout", "source_timeout", type=click.FloatRange(min=0, min_open=True),
              default=None, envvar="SVR_EXPORTER_SVR_TIMEOUT",
              help="Seconds allowed for one read of the service (default: no limit).")
@click.option("--collector.svr/--no-collector.svr", "svr_enabled", default=True,
              help="Enable the svr collector.")
@click.option("--pushgateway.uri", "gateway_url", default=DEFAULT_GATEWAY_URL,
              envvar="SVR_EXPORTER_PUSHGATEWAY_URI", help="URL the metrics are POSTed to.")
@click.option("--pushgateway.interval", "push_interval", type=click.IntRange(min=0), default=0,
              envvar="SVR_EXPORTER_PUSHGATEWAY_INTERVAL", help="Push every N seconds, 0 disables pushing.")
@click.option("--web", "web", is_flag=True, default=False, help="Serve HTTP instead of waiting for a signal.")
@click.option("--log.level", "log_level", type=click.Choice(LOG_LEVELS), default="info",
              envvar="SVR_EXPORTER_LOG_LEVEL", help="Only log messages with the given severity or above.")
@click.pass_context
def cli(ctx, listen_address: str, metrics_path: str, svr_location: str, source_timeout: Optional[float],
        svr_enabled: bool, gateway_url: str, push_interval: int, web: bool, log_level: str):
    """svr-exporter - expose a service's numbers as Prometheus metrics."""
    setup_logging(log_level)

    config = ExporterConfig(
        listen_address=listen_address,
        metrics_path=metrics_path,
        svr_location=svr_location,
        source_timeout=source_timeout,
        gateway_url=gateway_url,
        push_interval=push_interval,
        web=web,
        collectors={SUBSYSTEM: svr_enabled},
        log_level=log_level,
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    if ctx.invoked_subcommand is None:
        run_exporter(config)


def run_exporter(config: ExporterConfig):
    log.info("Starting svr-exporter %s", __version__)
    log.info("Enabled collectors:")
    for name in CollectorTable.enabled(config):
        log.info(" - %s", name)

    handler = MetricsHandler(config)
    relay = PushRelay(config, handler)
    relay.start()

    try:
        if config.web:
            _serve(config, handler)
        else:
            signum = wait_for_signal()
            log.info("Quit %s", signal.Signals(signum).name)
    finally:
        relay.stop()


def _serve(config: ExporterConfig, handler: MetricsHandler):
    try:
        server = make_server(config, handler)
    except OSError as e:
        log.error("Couldn't listen on %s: %s", config.listen_address, e)
        raise SystemExit(1)

    def _interrupt(signum, frame):
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, _interrupt)

    log.info("Listening on %s", config.listen_address)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        log.info("Shutting down")
    finally:
        server.server_close()


def wait_for_signal() -> int:
    """Block until one of the quit signals arrives; return its number."""
    received = threading.Event()
    caught = []

    def _on_signal(signum, frame):
        caught.append(signum)
        received.set()

    for sig in _QUIT_SIGNALS:
        signal.signal(sig, _on_signal)

    while not received.wait(timeout=1.0):
        pass
    return caught[0]


@cli.command()
@click.pass_context
def check(ctx):
    """Run the svr collector once and print what it found."""
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table
    from svr_exporter.collector.location import classify
    from svr_exporter.metrics import build_fq_name, to_samples

    config: ExporterConfig = ctx.obj["config"]
    console = Console()

    kind = classify(config.svr_location)
    console.print(f"\n[bold]Source:[/bold] {escape(config.svr_location)} [dim]({kind.value})[/dim]")

    try:
        metrics = ServiceCollector(config).acquire()
    except ExporterError as e:
        console.print(f"[red]Collection failed:[/red] {escape(str(e))}")
        raise SystemExit(1)

    if not metrics:
        console.print("[yellow]Source returned no metrics[/yellow]\n")
        return

    table = Table(title=f"{len(metrics)} metric(s)", show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Exported as", style="dim")
    table.add_column("Value", justify="right")

    for sample in to_samples(metrics):
        table.add_row(sample.name, build_fq_name(config.namespace, SUBSYSTEM, sample.name), repr(sample.value))

    console.print(table)
    console.print()


@cli.command("fake-source")
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", default=7001, help="Port to bind")
@click.option("--format", "output_format", type=click.Choice(["json", "text"]), default="json",
              help="Payload format served at /metrics")
def fake_source(host: str, port: int, output_format: str):
    """Serve a fake service metrics endpoint for local testing."""
    from svr_exporter.mock.fake_source import run_fake_source

    run_fake_source(host=host, port=port, output_format=output_format)


if __name__ == "__main__":
    cli()
