"""
Scrape-and-ingest pipeline.

Exposed operations:
- ingest(fandom_id, platform): one platform for one fandom
- ingest_all_platforms(fandom_id): every configured platform, concurrently
- ingest_fleet(): every tracked fandom, in bounded batches with a delay

Failures are reported per unit as IngestResult records; nothing raises past
these functions, so a fleet run always completes with a per-unit table.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import timedelta
from typing import Any, Iterable
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import close_old_connections
from django.utils import timezone

from fandompulse.fandoms.directory import TrackedEntity, list_tracked_entities
from fandompulse.fandoms.enums import Platform, ScrapeRunStatus
from fandompulse.fandoms.ingestion.service import IngestResult, ingest_raw_items
from fandompulse.fandoms.models import Fandom, FandomPlatform, ScrapeRun
from fandompulse.fandoms.providers import ScrapeParams, scrape_with_failover
from fandompulse.fandoms.providers.routing import get_route

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLE UNIT
# =============================================================================


def ingest(fandom_id: UUID, platform: str) -> IngestResult:
    """
    Scrape one platform for one fandom and persist the batch.

    The handle comes from the fandom's platform record, falling back to the
    fandom name; the fandom name is also passed as the search keyword.
    Every call leaves a ScrapeRun audit row.
    """
    if platform not in Platform.values:
        return IngestResult(
            success=False,
            fandom_id=fandom_id,
            platform=platform,
            error=f"Unknown platform: {platform}",
        )

    try:
        fandom = Fandom.objects.get(pk=fandom_id)
    except (Fandom.DoesNotExist, ValidationError, ValueError):
        return IngestResult(
            success=False,
            fandom_id=fandom_id,
            platform=platform,
            error=f"Fandom not found: {fandom_id}",
        )

    handle_row = FandomPlatform.objects.filter(fandom=fandom, platform=platform).first()
    params = ScrapeParams(
        handle=handle_row.handle if handle_row and handle_row.handle else fandom.name,
        keyword=fandom.name,
        limit=getattr(settings, "SCRAPE_ITEM_LIMIT", 20),
    )

    try:
        run = ScrapeRun.objects.create(
            actor_id=_route_label(platform),
            fandom=fandom,
            platform=platform,
            status=ScrapeRunStatus.RUNNING,
        )
    except Exception as e:
        logger.exception("Could not open scrape run for %s/%s", fandom.slug, platform)
        return IngestResult(
            success=False,
            fandom_id=fandom.id,
            platform=platform,
            error=f"Could not record scrape run: {e}",
        )

    try:
        scraped = scrape_with_failover(platform, params)
        if not scraped.success:
            result = IngestResult(
                success=False,
                fandom_id=fandom.id,
                platform=platform,
                source=scraped.source,
                failover_triggered=scraped.failover_triggered,
                error=scraped.error,
            )
        else:
            result = ingest_raw_items(scraped.items, fandom.id, platform, scraped.source)
            result.failover_triggered = scraped.failover_triggered
    except Exception as e:
        logger.exception("Ingest failed for %s/%s", fandom.slug, platform)
        _finish_run(run, success=False, items_count=0, error=str(e))
        return IngestResult(success=False, fandom_id=fandom.id, platform=platform, error=str(e))

    if scraped.source:
        run.actor_id = scraped.source
    run.apify_run_id = scraped.dataset_id or ""
    _finish_run(
        run,
        success=result.success,
        items_count=result.items_count,
        error=result.error or "; ".join(result.step_errors),
    )

    if not result.success:
        logger.warning("Ingest failed for %s/%s: %s", fandom.slug, platform, result.error)
    return result


def _route_label(platform: str) -> str:
    route = get_route(platform)
    if route is None:
        return "unrouted"
    return f"{route.primary}>{route.secondary}"


def _finish_run(run: ScrapeRun, success: bool, items_count: int, error: str = "") -> None:
    run.status = ScrapeRunStatus.SUCCEEDED if success else ScrapeRunStatus.FAILED
    run.finished_at = timezone.now()
    run.items_count = items_count
    run.error_message = error or ""
    run.save(update_fields=["actor_id", "apify_run_id", "status", "finished_at", "items_count", "error_message"])


# =============================================================================
# ONE FANDOM, ALL PLATFORMS
# =============================================================================


def _ingest_in_thread(fandom_id: UUID, platform: str) -> IngestResult:
    try:
        return ingest(fandom_id, platform)
    finally:
        close_old_connections()


def ingest_all_platforms(
    fandom_id: UUID,
    platforms: Iterable[str] | None = None,
    max_workers: int | None = None,
) -> list[IngestResult]:
    """
    Ingest every configured platform of one fandom concurrently.

    Platforms write disjoint snapshot rows and hit independent provider
    endpoints. Results are returned in platform order.
    """
    if platforms is None:
        platforms = list(
            FandomPlatform.objects.filter(fandom_id=fandom_id)
            .order_by("platform")
            .values_list("platform", flat=True)
        )
    platforms = list(platforms)
    if not platforms:
        return []

    results: dict[str, IngestResult] = {}
    with ThreadPoolExecutor(max_workers=max_workers or len(platforms)) as executor:
        futures = {
            executor.submit(_ingest_in_thread, fandom_id, platform): platform
            for platform in platforms
        }
        for future in as_completed(futures):
            platform = futures[future]
            try:
                results[platform] = future.result()
            except Exception as e:
                logger.warning("Ingest future failed for %s/%s: %s", fandom_id, platform, e)
                results[platform] = IngestResult(
                    success=False,
                    fandom_id=fandom_id,
                    platform=platform,
                    error=str(e),
                )

    return [results[platform] for platform in platforms]


# =============================================================================
# FLEET
# =============================================================================


def ingest_fleet(
    cancel_event: threading.Event | None = None,
    batch_size: int | None = None,
    delay_s: float | None = None,
    entities: list[TrackedEntity] | None = None,
    platform: str | None = None,
) -> list[IngestResult]:
    """
    Ingest every tracked fandom in batches of `batch_size` concurrent fandoms.

    Between batches the run waits `delay_s` seconds. Cancellation is checked
    between batches only; a batch in flight always completes.

    Args:
        cancel_event: Set to stop before the next batch
        batch_size: Concurrent fandoms per batch (default FLEET_BATCH_SIZE)
        delay_s: Pause between batches (default FLEET_BATCH_DELAY_S)
        entities: Fandoms to ingest (default: every tracked fandom)
        platform: Restrict every fandom to one platform

    Returns:
        One IngestResult per fandom per platform attempted.
    """
    batch_size = batch_size or getattr(settings, "FLEET_BATCH_SIZE", 3)
    delay_s = getattr(settings, "FLEET_BATCH_DELAY_S", 2) if delay_s is None else delay_s
    cancel_event = cancel_event or threading.Event()
    if entities is None:
        entities = list_tracked_entities()

    results: list[IngestResult] = []
    batches = [entities[i:i + batch_size] for i in range(0, len(entities), batch_size)]

    for index, batch in enumerate(batches):
        if index > 0 and cancel_event.wait(delay_s):
            logger.info("Fleet ingest cancelled after %d of %d batches", index, len(batches))
            break
        if cancel_event.is_set():
            break

        logger.info(
            "Fleet batch %d/%d: %s",
            index + 1,
            len(batches),
            ", ".join(entity.slug for entity in batch),
        )
        results.extend(_ingest_batch(batch, platform))

    summary = summarize(results)
    logger.info(
        "Fleet ingest finished: %d succeeded, %d failed, %d new items",
        summary["succeeded"],
        summary["failed"],
        summary["items"],
    )
    return results


def _ingest_batch(batch: list[TrackedEntity], platform: str | None) -> list[IngestResult]:
    by_entity: dict[UUID, list[IngestResult]] = {}
    with ThreadPoolExecutor(max_workers=len(batch)) as executor:
        futures = {
            executor.submit(_ingest_entity, entity, platform): entity
            for entity in batch
        }
        for future in as_completed(futures):
            entity = futures[future]
            try:
                by_entity[entity.id] = future.result()
            except Exception as e:
                logger.warning("Fleet future failed for %s: %s", entity.slug, e)
                by_entity[entity.id] = [
                    IngestResult(success=False, fandom_id=entity.id, platform=platform or "", error=str(e))
                ]

    return [result for entity in batch for result in by_entity[entity.id]]


def _ingest_entity(entity: TrackedEntity, platform: str | None) -> list[IngestResult]:
    try:
        platforms = [p.platform for p in entity.platforms]
        if platform is not None:
            platforms = [p for p in platforms if p == platform]
        return ingest_all_platforms(entity.id, platforms=platforms)
    finally:
        close_old_connections()


def summarize(results: list[IngestResult]) -> dict[str, Any]:
    """Operator summary: counts plus the reason string of every failure."""
    failures = [
        {
            "fandom_id": str(r.fandom_id) if r.fandom_id else None,
            "platform": r.platform,
            "error": r.error,
        }
        for r in results
        if not r.success
    ]
    return {
        "total": len(results),
        "succeeded": len(results) - len(failures),
        "failed": len(failures),
        "items": sum(r.items_count for r in results),
        "influencers": sum(r.influencer_count for r in results),
        "failures": failures,
    }


# =============================================================================
# ACTIVE-RUN GUARD
# =============================================================================


def has_active_scrape(fandom_id: UUID | None = None) -> bool:
    """True if a ScrapeRun is running and started inside the active window."""
    window = getattr(settings, "SCRAPE_ACTIVE_WINDOW_MINUTES", 30)
    qs = ScrapeRun.objects.filter(
        status=ScrapeRunStatus.RUNNING,
        started_at__gte=timezone.now() - timedelta(minutes=window),
    )
    if fandom_id is not None:
        qs = qs.filter(fandom_id=fandom_id)
    return qs.exists()
