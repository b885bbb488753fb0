"""
Decide how a source location should be read.

An existing filesystem entry always wins over URL syntax: a relative path
such as ``http://host/metrics`` that exists on disk (directories ``http:``
and ``host``) is read as LOCAL. That precedence is intentional.
"""

from __future__ import annotations

import enum
import os
from urllib.parse import urlsplit


class LocationKind(str, enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"
    UNKNOWN = "unknown"


_REMOTE_SCHEMES = ("http", "https")


def classify(location: str) -> LocationKind:
    # Existence only; executability is dealt with by the reader.
    if location and os.path.exists(location):
        return LocationKind.LOCAL

    if _is_url(location):
        return LocationKind.REMOTE

    return LocationKind.UNKNOWN


def _is_url(location: str) -> bool:
    try:
        parts = urlsplit(location)
    except ValueError:
        return False
    return parts.scheme.lower() in _REMOTE_SCHEMES and bool(parts.netloc)
