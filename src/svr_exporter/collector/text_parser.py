"""
Parsers for the two payload formats services hand us.

Line format (scripts, files, and plain-text HTTP endpoints):

    cpu 0.42
    mem 128

one ``name value`` pair per line, separated by a single space. Anything
else on a non-empty line fails the whole payload.

JSON format (HTTP endpoints only): a flat object. Numbers and numeric
strings are kept. Booleans, nulls, arrays and nested objects are skipped.
A bare ``null`` body means no metrics.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, Optional

from svr_exporter.collector.location import LocationKind
from svr_exporter.errors import MalformedMetrics
from svr_exporter.metrics import MetricSet

log = logging.getLogger(__name__)


def parse_float(text: str) -> Optional[float]:
    """Strict float parsing: no surrounding whitespace, no digit separators."""
    if not text or text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_lines(text: str) -> MetricSet:
    metrics: MetricSet = {}

    for line in text.split("\n"):
        line = line.rstrip("\r")
        if not line:
            continue

        parts = line.split(" ")
        if len(parts) != 2:
            raise MalformedMetrics("expected '<name> <value>'", line)

        name, value_text = parts
        value = parse_float(value_text)
        if value is None:
            raise MalformedMetrics("invalid metric value", line)

        metrics[name] = value

    return metrics


def parse_json_object(data: Dict[str, Any]) -> MetricSet:
    metrics: MetricSet = {}

    for key, raw in data.items():
        # bool is an int subclass, so it has to be ruled out first
        if isinstance(raw, bool) or raw is None or isinstance(raw, (list, dict)):
            log.debug("Skipping non-numeric JSON field %s", key)
            continue

        if isinstance(raw, (int, float)):
            try:
                metrics[key] = float(raw)
            except OverflowError:
                metrics[key] = math.inf if raw > 0 else -math.inf
            continue

        value = parse_float(raw)
        if value is None:
            raise MalformedMetrics(f"invalid value for {key}", raw)
        metrics[key] = value

    return metrics


def parse_payload(payload: bytes, kind: LocationKind) -> MetricSet:
    """Turn a raw payload into a MetricSet, or raise MalformedMetrics.

    REMOTE payloads are tried as a JSON object first and fall back to the
    line format when they aren't one. LOCAL payloads only use lines.
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedMetrics("payload is not valid UTF-8") from e

    if kind is LocationKind.REMOTE:
        data = _load_json_object(text)
        if data is not None:
            return parse_json_object(data)

    return parse_lines(text)


def _load_json_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except ValueError:
        return None
    if data is None:
        # "null" decodes to an empty object, not a line payload
        return {}
    if not isinstance(data, dict):
        return None
    return data
