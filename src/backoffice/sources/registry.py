"""Source registry grouping adapters by notification category."""

from __future__ import annotations

from backoffice.core.config import SourcesConfig
from backoffice.core.types import ConnectionStatus, SourceType
from backoffice.sources.base import SourceAdapter


class SourceRegistry:
    """Registry for source adapters. Provides register/get/list and health checking.

    A category may be backed by more than one adapter (leads come from
    both the single-lead and the bulk RFQ collections).
    """

    def __init__(self, adapters: list[SourceAdapter] | None = None) -> None:
        self._adapters: dict[str, SourceAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: SourceAdapter) -> None:
        """Register a source adapter, replacing any adapter of the same name."""
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> SourceAdapter | None:
        return self._adapters.get(name)

    def all(self) -> list[SourceAdapter]:
        return list(self._adapters.values())

    def for_category(self, category: SourceType) -> list[SourceAdapter]:
        return [a for a in self._adapters.values() if a.category == category]

    @property
    def categories(self) -> list[SourceType]:
        return [c for c in SourceType if self.for_category(c)]

    def health_check_all(self) -> dict[str, ConnectionStatus]:
        """Run health checks on all adapters."""
        return {name: adapter.health_check() for name, adapter in self._adapters.items()}

    async def close(self) -> None:
        for adapter in self._adapters.values():
            close = getattr(adapter, "close", None)
            if close is not None:
                await close()

    @property
    def adapter_names(self) -> list[str]:
        return list(self._adapters.keys())


def create_source_registry(config: SourcesConfig) -> SourceRegistry:
    """Factory: build the registry for ``config.provider``."""

    from backoffice.sources.adapters import PROVIDER_REGISTRY

    provider = config.provider.lower()
    if provider not in PROVIDER_REGISTRY:
        available = ", ".join(sorted(PROVIDER_REGISTRY))
        raise ValueError(
            f"Unknown source provider {config.provider!r}. "
            f"Available: {available}"
        )

    if provider == "fixture":
        adapters = PROVIDER_REGISTRY[provider](timeout_seconds=config.timeout_seconds)
    else:
        adapters = PROVIDER_REGISTRY[provider](config)
    return SourceRegistry(adapters)
