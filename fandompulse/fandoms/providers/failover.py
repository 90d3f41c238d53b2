"""
Failover orchestration.

Per call, not persisted:
    TryPrimary -> success and non-empty -> Done
    TryPrimary -> failed or empty -> TrySecondary -> Done

If the secondary cannot serve the platform the call short-circuits with a
combined error. Every returned item is tagged with `_source`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from fandompulse.fandoms.providers.base import ProviderResult, ScrapeParams, ScrapeProvider
from fandompulse.fandoms.providers.routing import get_provider, get_route

logger = logging.getLogger(__name__)

SOURCE_FIELD = "_source"
EMPTY_RESULTS = "Empty results"


@dataclass
class FailoverResult:
    success: bool
    items: list[dict[str, Any]] = field(default_factory=list)
    source: str = ""
    failover_triggered: bool = False
    error: str | None = None
    primary_error: str | None = None
    dataset_id: str | None = None


def scrape_with_failover(
    platform: str,
    params: ScrapeParams,
    providers: Mapping[str, ScrapeProvider] | None = None,
    routing: Mapping[str, Any] | None = None,
) -> FailoverResult:
    """
    Scrape a platform through its primary provider, falling back to the secondary.

    Args:
        platform: Platform to scrape
        params: Handle/keyword/limit
        providers: Provider instances by name (default: fresh instances from the registry)
        routing: Routing table (default: settings.PROVIDER_ROUTING)

    Returns:
        FailoverResult. Never raises.
    """
    route = get_route(platform, routing)
    if route is None:
        return FailoverResult(success=False, error=f"No provider config for platform: {platform}")

    primary = _resolve(route.primary, providers)
    secondary = _resolve(route.secondary, providers)

    if primary is None:
        primary_result = ProviderResult(
            success=False,
            source=route.primary,
            error=f"Unknown provider: {route.primary}",
        )
    else:
        logger.info("Trying %s for %s (%s)", route.primary, platform, params.handle)
        primary_result = primary.scrape(platform, params)

    if _usable(primary_result):
        return _done(primary_result, route.primary, failover_triggered=False)

    primary_error = primary_result.error or EMPTY_RESULTS
    logger.warning(
        "%s failed for %s (%s): %s. Trying %s",
        route.primary,
        platform,
        params.handle,
        primary_error,
        route.secondary,
    )

    if secondary is None or not secondary.supports(platform):
        return FailoverResult(
            success=False,
            source=route.primary,
            failover_triggered=True,
            primary_error=primary_error,
            error=(
                f"Primary ({route.primary}): {primary_error}. "
                f"Secondary ({route.secondary}): not supported for {platform}."
            ),
        )

    secondary_result = secondary.scrape(platform, params)
    if _usable(secondary_result):
        logger.info(
            "%s succeeded for %s (%s) with %d items",
            route.secondary,
            platform,
            params.handle,
            len(secondary_result.items),
        )
        result = _done(secondary_result, route.secondary, failover_triggered=True)
        result.primary_error = primary_error
        return result

    secondary_error = secondary_result.error or EMPTY_RESULTS
    logger.error(
        "Both providers failed for %s (%s): primary(%s): %s, secondary(%s): %s",
        platform,
        params.handle,
        route.primary,
        primary_error,
        route.secondary,
        secondary_error,
    )
    return FailoverResult(
        success=False,
        source=route.primary,
        failover_triggered=True,
        primary_error=primary_error,
        error=(
            f"Both providers failed. Primary ({route.primary}): {primary_error}. "
            f"Secondary ({route.secondary}): {secondary_error}."
        ),
    )


def _resolve(name: str, providers: Mapping[str, ScrapeProvider] | None) -> ScrapeProvider | None:
    if providers is not None:
        return providers.get(name)
    return get_provider(name)


def _usable(result: ProviderResult) -> bool:
    return result.success and len(result.items) > 0


def _done(result: ProviderResult, source: str, failover_triggered: bool) -> FailoverResult:
    for item in result.items:
        item[SOURCE_FIELD] = source
    return FailoverResult(
        success=True,
        items=result.items,
        source=source,
        failover_triggered=failover_triggered,
        dataset_id=result.dataset_id,
    )
