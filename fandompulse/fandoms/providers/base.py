"""
Base interface for scrape providers.

A provider turns (platform, handle/keyword, limit) into raw items in the
managed-actor key vocabulary. Providers never raise: every failure comes back
as ProviderResult(success=False, error=...).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

DEFAULT_ITEM_LIMIT = 20


@dataclass
class ScrapeParams:
    handle: str
    keyword: str | None = None
    limit: int | None = None

    @property
    def bare_handle(self) -> str:
        """Handle without any '@' characters."""
        return self.handle.replace("@", "")

    @property
    def effective_limit(self) -> int:
        return self.limit or DEFAULT_ITEM_LIMIT


@dataclass
class ProviderResult:
    """
    Outcome of one provider call.

    success=True with an empty items list is a valid answer; the failover
    orchestrator decides whether it counts as a failure.
    """

    success: bool
    items: list[dict[str, Any]] = field(default_factory=list)
    source: str = ""
    error: str | None = None
    dataset_id: str | None = None  # managed-actor runs only


class ScrapeProvider(ABC):
    """Abstract base class for scrape providers."""

    name: str = ""

    @abstractmethod
    def supports(self, platform: str) -> bool:
        """Return True if this provider can scrape the platform."""

    @abstractmethod
    def scrape(self, platform: str, params: ScrapeParams) -> ProviderResult:
        """
        Fetch raw items for the platform.

        Returns:
            ProviderResult. Implementations catch their own errors.
        """

    def failure(self, error: str) -> ProviderResult:
        return ProviderResult(success=False, items=[], source=self.name, error=error)
