"""
Per-platform provider routing.

The routing table lives in settings.PROVIDER_ROUTING so priority can be
swapped per platform without touching orchestration code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from django.conf import settings

from fandompulse.fandoms.providers.apify import ApifyProvider
from fandompulse.fandoms.providers.base import ScrapeProvider
from fandompulse.fandoms.providers.sociavault import SociavaultProvider

PROVIDER_CLASSES: dict[str, type[ScrapeProvider]] = {
    ApifyProvider.name: ApifyProvider,
    SociavaultProvider.name: SociavaultProvider,
}


@dataclass(frozen=True)
class ProviderRoute:
    primary: str
    secondary: str


def get_route(platform: str, routing: Mapping[str, Any] | None = None) -> ProviderRoute | None:
    """Return the configured route for a platform, or None if it has none."""
    table = routing if routing is not None else getattr(settings, "PROVIDER_ROUTING", {})
    entry = table.get(platform)
    if not entry or not entry.get("primary") or not entry.get("secondary"):
        return None
    return ProviderRoute(primary=entry["primary"], secondary=entry["secondary"])


def get_provider(name: str) -> ScrapeProvider | None:
    """Instantiate a provider by name. Each call gets its own HTTP session."""
    provider_class = PROVIDER_CLASSES.get(name)
    if provider_class is None:
        return None
    return provider_class()
