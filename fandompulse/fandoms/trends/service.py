"""
Trends collection job.

collect_trends() refreshes the national interest-over-time series of every
tracked fandom in one comparative run; collect_regional_trends() stores
today's interest-by-region breakdown.

Both run under a persisted TrendsJob record. Starting a job is a
compare-and-set on that row: only a caller whose conditional UPDATE touches
the row proceeds, and a row stuck in "running" longer than
TRENDS_JOB_STALE_MINUTES can be reclaimed after a crash.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Any, Iterable
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from fandompulse.fandoms.enums import TrendsJobStatus
from fandompulse.fandoms.models import Fandom, TrendPoint, TrendsJob
from fandompulse.fandoms.trends.client import GoogleTrendsClient
from fandompulse.fandoms.trends.keywords import artist_keyword, simplify_keyword

logger = logging.getLogger(__name__)

JOB_NAME = "google_trends"
REGIONAL_JOB_NAME = "regional_trends"
ALREADY_RUNNING = "Trends collection already running"


@dataclass
class CollectTrendsResult:
    success: bool
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    per_entity: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# JOB RECORD
# =============================================================================


def _acquire_job(name: str) -> bool:
    """Flip the job row to RUNNING unless another live run holds it."""
    TrendsJob.objects.get_or_create(name=name)

    now = timezone.now()
    cutoff = now - timedelta(minutes=getattr(settings, "TRENDS_JOB_STALE_MINUTES", 30))

    # Atomic claim: only succeeds if not running, or running but stale
    rows_updated = (
        TrendsJob.objects.filter(name=name)
        .filter(
            ~Q(status=TrendsJobStatus.RUNNING)
            | Q(started_at__isnull=True)
            | Q(started_at__lt=cutoff)
        )
        .update(
            status=TrendsJobStatus.RUNNING,
            started_at=now,
            finished_at=None,
            error="",
        )
    )
    return rows_updated == 1


def _finish_job(name: str, result: CollectTrendsResult) -> None:
    TrendsJob.objects.filter(name=name).update(
        status=TrendsJobStatus.SUCCEEDED if result.success else TrendsJobStatus.FAILED,
        finished_at=timezone.now(),
        summary={
            "total": result.total,
            "succeeded": result.succeeded,
            "failed": result.failed,
        },
        error=result.error or "",
    )


def get_trends_job(name: str = JOB_NAME) -> TrendsJob | None:
    return TrendsJob.objects.filter(name=name).first()


def _fandoms(fandom_ids: Iterable[UUID] | None) -> list[Fandom]:
    qs = Fandom.objects.order_by("name")
    if fandom_ids is not None:
        qs = qs.filter(id__in=list(fandom_ids))
    return list(qs)


# =============================================================================
# NATIONAL SERIES
# =============================================================================


def collect_trends(
    fandom_ids: Iterable[UUID] | None = None,
    client: GoogleTrendsClient | None = None,
) -> CollectTrendsResult:
    """
    Refresh interest-over-time for tracked fandoms.

    Fandoms are mapped to search keywords (several fandoms may share one),
    fetched in a single comparative run, and each fandom's national series is
    replaced wholesale (delete then insert).

    Returns:
        CollectTrendsResult. Never raises.
    """
    if not _acquire_job(JOB_NAME):
        logger.info("Trends collection skipped: job already running")
        return CollectTrendsResult(success=False, error=ALREADY_RUNNING)

    try:
        result = _collect_trends(_fandoms(fandom_ids), client or GoogleTrendsClient())
    except Exception as e:
        logger.exception("Trends collection failed")
        result = CollectTrendsResult(success=False, error=str(e))

    _finish_job(JOB_NAME, result)
    return result


def _collect_trends(fandoms: list[Fandom], client: GoogleTrendsClient) -> CollectTrendsResult:
    by_keyword: dict[str, list[Fandom]] = {}
    for fandom in fandoms:
        by_keyword.setdefault(simplify_keyword(fandom.name), []).append(fandom)

    result = CollectTrendsResult(success=True, total=len(fandoms))
    if not by_keyword:
        return result

    logger.info("Collecting trends for %d fandoms (%d keywords)", len(fandoms), len(by_keyword))
    trends = {t.keyword: t for t in client.fetch_comparative(list(by_keyword))}

    for keyword, members in by_keyword.items():
        trend = trends.get(keyword)
        points = trend.data_points if trend and not trend.error else []
        error = None if points else ((trend.error if trend else None) or "No data")

        for fandom in members:
            result.per_entity.append(
                {
                    "fandom_id": str(fandom.id),
                    "fandom_name": fandom.name,
                    "keyword": keyword,
                    "data_points": len(points),
                    "error": error,
                }
            )
            if error:
                result.failed += 1
                continue

            _replace_series(fandom, keyword, points, client.geo)
            result.succeeded += 1

    logger.info(
        "Trends collection finished: %d succeeded, %d failed",
        result.succeeded,
        result.failed,
    )
    return result


def _replace_series(fandom: Fandom, keyword: str, points, region: str) -> None:
    with transaction.atomic():
        TrendPoint.objects.filter(fandom=fandom, region=region).delete()
        TrendPoint.objects.bulk_create(
            [
                TrendPoint(
                    fandom=fandom,
                    keyword=keyword,
                    date=point.date,
                    interest_value=point.value,
                    region=region,
                )
                for point in points
            ]
        )


# =============================================================================
# REGIONAL BREAKDOWN
# =============================================================================


def collect_regional_trends(
    fandom_ids: Iterable[UUID] | None = None,
    client: GoogleTrendsClient | None = None,
) -> CollectTrendsResult:
    """
    Store today's interest-by-region for each fandom keyword and its artist keyword.

    Rows are keyed by region code; rows for the same fandom/keyword/day are
    replaced. National rows (region == geo) are never touched.
    """
    if not _acquire_job(REGIONAL_JOB_NAME):
        logger.info("Regional trends skipped: job already running")
        return CollectTrendsResult(success=False, error=ALREADY_RUNNING)

    try:
        result = _collect_regional(_fandoms(fandom_ids), client or GoogleTrendsClient())
    except Exception as e:
        logger.exception("Regional trends collection failed")
        result = CollectTrendsResult(success=False, error=str(e))

    _finish_job(REGIONAL_JOB_NAME, result)
    return result


def _regional_keywords(fandom: Fandom) -> list[str]:
    keywords = [fandom.name]
    artist = fandom.fandom_group or artist_keyword(fandom.name)
    if artist and artist.lower() != fandom.name.lower():
        keywords.append(artist)
    return keywords


def _collect_regional(fandoms: list[Fandom], client: GoogleTrendsClient) -> CollectTrendsResult:
    result = CollectTrendsResult(success=True, total=len(fandoms))
    today = timezone.now().date()

    for index, fandom in enumerate(fandoms):
        keywords = _regional_keywords(fandom)
        if index > 0:
            # Same pacing as between keywords inside one fandom
            client.wait_between_regional()
        regional = client.fetch_regional_interest_batch(keywords)

        stored = 0
        errors = []
        for item in regional:
            if item.error or not item.regions:
                errors.append(f"{item.keyword}: {item.error or 'No regional data points'}")
                continue
            with transaction.atomic():
                TrendPoint.objects.filter(
                    fandom=fandom,
                    keyword=item.keyword,
                    date=today,
                ).exclude(region=client.geo).delete()
                TrendPoint.objects.bulk_create(
                    [
                        TrendPoint(
                            fandom=fandom,
                            keyword=item.keyword,
                            date=today,
                            interest_value=region.interest_value,
                            region=region.region_code or region.region_name,
                        )
                        for region in item.regions
                    ]
                )
            stored += len(item.regions)

        entry = {
            "fandom_id": str(fandom.id),
            "fandom_name": fandom.name,
            "keyword": ", ".join(keywords),
            "data_points": stored,
            "error": "; ".join(errors) or None,
        }
        if stored:
            result.succeeded += 1
        else:
            result.failed += 1
        result.per_entity.append(entry)

    logger.info(
        "Regional trends finished: %d succeeded, %d failed",
        result.succeeded,
        result.failed,
    )
    return result
