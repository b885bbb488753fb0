"""Shared fixtures: loopback HTTP servers for sources and gateways."""

import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

_PROXY_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy")


@pytest.fixture(autouse=True)
def _direct_connections(monkeypatch):
    """Keep loopback traffic away from any proxy configured on the machine."""
    for var in _PROXY_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def serve():
    """Start an HTTPServer in a daemon thread; returns its base URL."""
    servers = []

    def _serve(server: HTTPServer) -> str:
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append(server)
        host, port = server.server_address[:2]
        return f"http://{host}:{port}"

    yield _serve

    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def static_source(serve):
    """Factory for a source answering every GET with a fixed status and body."""

    def _make(body: bytes, status: int = 200, content_type: str = "text/plain") -> str:
        class _Handler(BaseHTTPRequestHandler):
            def do_GET(self):
                self.send_response(status)
                self.send_header("Content-Type", content_type)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format, *args):
                pass

        return serve(HTTPServer(("127.0.0.1", 0), _Handler)) + "/metrics"

    return _make


class _GatewayServer(HTTPServer):
    def __init__(self, address, status: int):
        self.status = status
        self.received = []
        super().__init__(address, _GatewayHandler)


class _GatewayHandler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        headers = {k.lower(): v for k, v in self.headers.items()}
        self.server.received.append((self.path, headers, body))
        self.send_response(self.server.status)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, format, *args):
        pass


@pytest.fixture
def gateway(serve):
    """A push gateway stand-in that records every POST it gets."""
    server = _GatewayServer(("127.0.0.1", 0), status=200)
    server.url = serve(server) + "/metrics/job/test"
    return server
