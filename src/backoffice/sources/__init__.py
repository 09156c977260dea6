"""Polled backend collections (orders, reviews, questions, leads)."""

from backoffice.sources.base import BaseSourceAdapter, SourceAdapter, SourceError
from backoffice.sources.registry import SourceRegistry, create_source_registry

__all__ = [
    "BaseSourceAdapter",
    "SourceAdapter",
    "SourceError",
    "SourceRegistry",
    "create_source_registry",
]
