"""Service metrics exporter with pull and push delivery."""

__version__ = "0.1.0"
