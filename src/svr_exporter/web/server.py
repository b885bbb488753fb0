"""
HTTP front end: the metrics path goes to the scrape handler, everything
else gets the landing page. Each request runs on its own thread.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from svr_exporter.config import ExporterConfig, parse_listen_address
from svr_exporter.web.handler import MetricsHandler, ScrapeRequest, landing_page
from svr_exporter.web.sink import LiveSink

log = logging.getLogger(__name__)


class ExporterHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address, metrics_handler: MetricsHandler, metrics_path: str):
        self.metrics_handler = metrics_handler
        self.metrics_path = metrics_path
        super().__init__(address, _RequestHandler)


class _RequestHandler(BaseHTTPRequestHandler):
    server: ExporterHTTPServer

    def do_GET(self):
        request = ScrapeRequest.from_url("GET", self.path, dict(self.headers.items()))

        if request.path == self.server.metrics_path:
            sink = LiveSink(self)
            self.server.metrics_handler.handle(request, sink)
            sink.finish()
            return

        body = landing_page(self.server.metrics_path)
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        log.debug("%s - %s", self.address_string(), format % args)


def make_server(config: ExporterConfig, metrics_handler: MetricsHandler) -> ExporterHTTPServer:
    host, port = parse_listen_address(config.listen_address)
    return ExporterHTTPServer((host, port), metrics_handler, config.metrics_path)
