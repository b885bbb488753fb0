"""
Base collector interface and the table of known collectors.

A collector produces a batch of gauge observations once per collection
cycle. Collectors register under a short name with a default-enabled
flag; the node collector decides which ones run for a given scrape.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Type

from prometheus_client.metrics_core import Metric

from svr_exporter.config import ExporterConfig

log = logging.getLogger(__name__)

Emit = Callable[[Metric], None]


class Collector(ABC):
    """Interface for all metrics sources."""

    @abstractmethod
    def update(self, emit: Emit) -> None:
        """Push this cycle's observations into emit.

        Raise to report the whole cycle as failed.
        """
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...


@dataclass(frozen=True)
class CollectorEntry:
    name: str
    default_enabled: bool
    factory: Callable[[ExporterConfig], Collector]


class CollectorTable:
    """Collector classes keyed by their registration name."""

    _entries: Dict[str, CollectorEntry] = {}

    @classmethod
    def register(cls, entry: CollectorEntry) -> None:
        cls._entries[entry.name] = entry
        log.debug("Registered collector: %s", entry.name)

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._entries)

    @classmethod
    def get(cls, name: str) -> CollectorEntry:
        return cls._entries[name]

    @classmethod
    def enabled(cls, config: ExporterConfig) -> List[str]:
        """Names of the collectors switched on for this config, sorted."""
        return [
            name for name in cls.names()
            if config.collectors.get(name, cls._entries[name].default_enabled)
        ]


DEFAULT_ENABLED = True


def register_collector(name: str, default_enabled: bool = DEFAULT_ENABLED):
    """
    Class decorator adding a collector to the table.

    Usage:
        @register_collector("svr", DEFAULT_ENABLED)
        class ServiceCollector(Collector):
            ...
    """
    def decorator(cls: Type[Collector]):
        CollectorTable.register(CollectorEntry(name=name, default_enabled=default_enabled, factory=cls))
        return cls
    return decorator
