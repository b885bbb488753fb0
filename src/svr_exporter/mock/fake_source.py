"""
Fake service metrics endpoint for trying the exporter without a real
service behind it.

    svr-exporter fake-source --port 7001 --format json
    svr-exporter --collector.svr.path http://localhost:7001/metrics --web

GET /metrics answers with a flat JSON object or ``name value`` lines,
chosen by the server's format (or ``?format=`` per request). Values drift
a little on every request so graphs have something to show.
"""

from __future__ import annotations

import json
import math
import random
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict
from urllib.parse import parse_qs, urlsplit

FORMATS = ("json", "text")


class FakeService:
    """Deterministic (seeded) source of service numbers."""

    def __init__(self, seed: int = 42):
        self._rng = random.Random(seed)
        self._tick = 0
        self._requests_total = 0
        self._lock = threading.Lock()

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            self._tick += 1
            t = self._tick
            self._requests_total += self._rng.randint(20, 60)

            return {
                "cpu": round(max(0.01, min(0.99, 0.4 + 0.2 * math.sin(t * 0.3) + self._rng.gauss(0, 0.03))), 4),
                "mem": float(128 + self._rng.randint(0, 64)),
                "connections": float(max(0, int(30 + 10 * math.sin(t * 0.1)))),
                "requests_total": float(self._requests_total),
                "up": 1.0,
            }


def render_json(values: Dict[str, float]) -> str:
    # Mix numbers and numeric strings, plus a field the exporter skips
    body = {}
    for i, (name, value) in enumerate(sorted(values.items())):
        body[name] = str(value) if i % 2 else value
    body["healthy"] = True
    return json.dumps(body)


def render_text(values: Dict[str, float]) -> str:
    return "".join(f"{name} {value}\n" for name, value in sorted(values.items()))


class _SourceHandler(BaseHTTPRequestHandler):
    server: "FakeSourceServer"

    def do_GET(self):
        parts = urlsplit(self.path)
        if parts.path != "/metrics":
            self.send_response(404)
            self.end_headers()
            return

        fmt = parse_qs(parts.query).get("format", [self.server.output_format])[0]
        values = self.server.service.snapshot()
        if fmt == "json":
            body = render_json(values).encode()
            content_type = "application/json"
        else:
            body = render_text(values).encode()
            content_type = "text/plain; charset=utf-8"

        self.send_response(200)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


class FakeSourceServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address, output_format: str = "json", seed: int = 42):
        self.output_format = output_format
        self.service = FakeService(seed=seed)
        super().__init__(address, _SourceHandler)


def run_fake_source(host: str = "127.0.0.1", port: int = 7001, output_format: str = "json"):
    server = FakeSourceServer((host, port), output_format=output_format)
    print(f"Fake service metrics at http://{host}:{port}/metrics ({output_format})")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_source()
