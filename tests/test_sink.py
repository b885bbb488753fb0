"""Tests for the in-memory and live response sinks."""

import io

from svr_exporter.web.sink import CaptureSink, LiveSink


def test_capture_headers_created_lazily():
    sink = CaptureSink()
    assert sink._headers is None

    sink.headers["X-Test"] = "1"

    assert sink.headers == {"X-Test": "1"}


def test_capture_status_can_be_overwritten():
    sink = CaptureSink()
    sink.set_status(500)
    sink.set_status(404)
    assert sink.status_code == 404


def test_capture_first_write_implies_200():
    sink = CaptureSink()
    sink.append_body(b"a ")
    sink.append_body(b"b")

    assert sink.status_code == 200
    assert bytes(sink.body) == b"a b"
    assert sink.text() == "a b"


def test_capture_explicit_status_survives_writes():
    sink = CaptureSink()
    sink.set_status(400)
    sink.append_body(b"bad")
    assert sink.status_code == 400


class _FakeRequestHandler:
    """Records what a BaseHTTPRequestHandler would have been asked to send."""

    def __init__(self):
        self.calls = []
        self.wfile = io.BytesIO()

    def send_response(self, code):
        self.calls.append(("status", code))

    def send_header(self, name, value):
        self.calls.append(("header", name, value))

    def end_headers(self):
        self.calls.append(("end",))


def test_live_sink_commits_on_first_write():
    handler = _FakeRequestHandler()
    sink = LiveSink(handler)
    sink.set_header("Content-Type", "text/plain")

    sink.append_body(b"hello")
    sink.set_header("X-Late", "ignored")
    sink.append_body(b" world")

    assert handler.calls == [("status", 200), ("header", "Content-Type", "text/plain"), ("end",)]
    assert handler.wfile.getvalue() == b"hello world"
    assert sink.committed


def test_live_sink_status_is_final():
    handler = _FakeRequestHandler()
    sink = LiveSink(handler)

    sink.set_status(400)
    sink.set_status(500)
    sink.append_body(b"x")

    assert [c for c in handler.calls if c[0] == "status"] == [("status", 400)]


def test_live_sink_finish_without_body():
    handler = _FakeRequestHandler()
    sink = LiveSink(handler)

    sink.finish()
    sink.finish()

    assert handler.calls == [("status", 200), ("end",)]
