"""Provider registry for source adapter backends."""

from __future__ import annotations

from backoffice.sources.adapters.fixture import create_fixture_sources
from backoffice.sources.adapters.http import create_http_sources

PROVIDER_REGISTRY = {
    "fixture": create_fixture_sources,
    "http": create_http_sources,
}

__all__ = ["PROVIDER_REGISTRY", "create_fixture_sources", "create_http_sources"]
