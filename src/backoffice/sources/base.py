"""Base source adapter with Protocol definition and ABC implementation."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from backoffice.core.types import ConnectionStatus, SourceType
from backoffice.sources.models import FetchResult

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """Raised by adapters when a backend collection cannot be read."""


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for a polled backend collection."""

    @property
    def name(self) -> str: ...

    @property
    def category(self) -> SourceType: ...

    async def fetch(self, limit: int) -> FetchResult: ...

    def health_check(self) -> ConnectionStatus: ...


class BaseSourceAdapter(ABC):
    """Abstract base class for source adapters.

    Provides a per-attempt timeout, at-most-N retry and graceful
    degradation: ``fetch`` never raises, a failure comes back as an
    unsuccessful ``FetchResult`` and the adapter is marked degraded until
    its next successful fetch.
    """

    category: SourceType

    def __init__(
        self,
        name: str,
        *,
        timeout_seconds: float = 10.0,
        max_retries: int = 1,
        enabled: bool = True,
    ) -> None:
        self._name = name
        self._timeout = timeout_seconds
        self._max_retries = max_retries
        self._enabled = enabled
        self._status = ConnectionStatus.CONNECTED

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    async def _do_fetch(self, limit: int) -> list[Any]:
        """Fetch and parse one page of entities. Subclasses implement this."""

    async def fetch(self, limit: int) -> FetchResult:
        """Fetch one page with timeout, retry and graceful degradation."""
        if not self._enabled:
            return FetchResult(
                source_name=self.name,
                category=self.category,
                success=False,
                error="Source is disabled",
            )

        start = time.monotonic()
        attempts = max(1, self._max_retries + 1)
        error: str | None = None
        for attempt in range(attempts):
            try:
                entities = await asyncio.wait_for(self._do_fetch(limit), timeout=self._timeout)
            except asyncio.TimeoutError:
                error = f"Timed out after {self._timeout:.1f}s"
            except Exception as exc:
                error = str(exc) or exc.__class__.__name__
            else:
                self._status = ConnectionStatus.CONNECTED
                return FetchResult(
                    source_name=self.name,
                    category=self.category,
                    success=True,
                    entities=entities,
                    elapsed_ms=round((time.monotonic() - start) * 1000, 2),
                )
            if attempt < attempts - 1:
                logger.warning(
                    "Fetch from %s failed (%s), retrying (%d/%d)",
                    self.name, error, attempt + 1, attempts,
                )

        self._status = ConnectionStatus.DEGRADED
        logger.warning("Source %s unavailable this pass: %s", self.name, error)
        return FetchResult(
            source_name=self.name,
            category=self.category,
            success=False,
            error=error,
            elapsed_ms=round((time.monotonic() - start) * 1000, 2),
        )

    def health_check(self) -> ConnectionStatus:
        return self._status

    async def close(self) -> None:
        """Release held connections. Override if the adapter holds any."""
