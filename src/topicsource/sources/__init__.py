"""Data source contract and built-in implementations.

A `DataSource` presents a stable interface for hosts to fetch topics and data
regardless of the underlying external service.
"""

from .base import DataSource
from .http_source import HttpDataSource
from .lifecycle import initialized, open_sources
from .registry import SourceRegistry, default_registry
from .static_source import StaticDataSource, StaticEntry, load_fixture

__all__ = [
    "DataSource",
    "HttpDataSource",
    "SourceRegistry",
    "StaticDataSource",
    "StaticEntry",
    "default_registry",
    "initialized",
    "load_fixture",
    "open_sources",
]
