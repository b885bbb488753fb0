"""
Error types raised while acquiring service metrics.

Each one is fatal to the current collection cycle only. The node
collector logs it and reports that collector as failed for the scrape.
"""

from __future__ import annotations

from typing import Optional


class ExporterError(Exception):
    """Base class for everything this package raises on purpose."""


class UnsupportedLocation(ExporterError):
    """The location is neither an existing path nor an http(s) URL."""

    def __init__(self, location: str):
        super().__init__(f"Unsupported path: {location}")
        self.location = location


class SourceExecutionFailed(ExporterError):
    def __init__(self, path: str, reason: str, stderr: str = "", returncode: Optional[int] = None):
        message = f"running {path} failed: {reason}"
        if stderr:
            message += f" (stderr: {stderr.strip()})"
        super().__init__(message)
        self.path = path
        self.stderr = stderr
        self.returncode = returncode


class SourceFetchFailed(ExporterError):
    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"fetching {url} failed: {reason}")
        self.url = url
        self.status_code = status_code


class MalformedMetrics(ExporterError):
    """Payload could not be turned into a name -> value mapping."""

    def __init__(self, reason: str, fragment: str = ""):
        message = reason if not fragment else f"{reason}: {fragment!r}"
        super().__init__(message)
        self.fragment = fragment


class CollectionFailed(ExporterError):
    """Wraps any acquisition error with collector context."""

    def __init__(self, cause: Exception):
        super().__init__(f"couldn't get service info: {cause}")
        self.cause = cause


class UnknownCollector(ValueError):
    """A collect[] filter named a collector that is missing or disabled."""
