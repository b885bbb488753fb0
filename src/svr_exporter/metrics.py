"""
Core metric definitions for the service exporter.

A collection cycle turns one payload into a MetricSet: a plain
name -> value mapping. Duplicate names within a payload overwrite
each other (last one wins).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List

MetricSet = Dict[str, float]

# Exposition-format metric name
_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")


@dataclass(frozen=True)
class MetricSample:
    """A single (name, value) reading from the service."""

    name: str
    value: float


def is_valid_metric_name(name: str) -> bool:
    return bool(_METRIC_NAME_RE.match(name))


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty parts with underscores, e.g. node_svr_cpu."""
    return "_".join(part for part in (namespace, subsystem, name) if part)


def to_samples(metric_set: MetricSet) -> List[MetricSample]:
    """Sorted samples, for display. Collection itself never relies on order."""
    return [MetricSample(name=k, value=v) for k, v in sorted(metric_set.items())]
