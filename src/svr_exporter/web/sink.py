"""
Response sinks for the scrape handler.

The handler only talks to a Sink: set a status, set headers, append body
bytes. LiveSink writes to a real HTTP connection; CaptureSink keeps
everything in memory so the push relay can run the exact same handler
and forward the body somewhere else.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler
from typing import Dict, Optional


class Sink(ABC):

    @property
    @abstractmethod
    def headers(self) -> Dict[str, str]:
        """Mutable header mapping for the response."""
        ...

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    @abstractmethod
    def set_status(self, code: int) -> None:
        ...

    @abstractmethod
    def append_body(self, data: bytes) -> None:
        """Append to the body. The first call commits an implicit 200."""
        ...


class CaptureSink(Sink):
    """In-memory sink. Status can be rewritten until someone reads it."""

    def __init__(self):
        self._headers: Optional[Dict[str, str]] = None
        self.status_code = 0
        self.body = bytearray()

    @property
    def headers(self) -> Dict[str, str]:
        if self._headers is None:
            self._headers = {}
        return self._headers

    def set_status(self, code: int) -> None:
        self.status_code = code

    def append_body(self, data: bytes) -> None:
        if self.status_code == 0:
            self.status_code = HTTPStatus.OK
        self.body.extend(data)

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class LiveSink(Sink):
    """Writes through a BaseHTTPRequestHandler.

    Status and headers are sent on the first body write (or on finish()),
    after which they can no longer change.
    """

    def __init__(self, request_handler: BaseHTTPRequestHandler):
        self._request_handler = request_handler
        self._headers: Dict[str, str] = {}
        self._status = 0
        self._committed = False

    @property
    def headers(self) -> Dict[str, str]:
        return self._headers

    @property
    def committed(self) -> bool:
        return self._committed

    def set_status(self, code: int) -> None:
        if self._committed:
            return
        self._status = code
        self._commit()

    def append_body(self, data: bytes) -> None:
        if not self._committed:
            if self._status == 0:
                self._status = HTTPStatus.OK
            self._commit()
        self._request_handler.wfile.write(data)

    def finish(self) -> None:
        if not self._committed:
            self._status = self._status or HTTPStatus.OK
            self._commit()

    def _commit(self) -> None:
        self._request_handler.send_response(self._status)
        for name, value in self._headers.items():
            self._request_handler.send_header(name, value)
        self._request_handler.end_headers()
        self._committed = True
