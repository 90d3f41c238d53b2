"""
Ingestion service.

ingest_raw_items() persists one provider batch for one (fandom, platform):

1. Normalize content
2. Insert unseen content items (single existence query, then bulk insert)
3. Normalize metrics, falling back to stored followers when the batch has none
4. Upsert today's snapshot with growth/engagement rates
5. Propagate observed followers to the FandomPlatform row
6. Filter and upsert influencers
7. Collect discovery candidates (advisory only)

Step 2 commits before anything else runs. Steps 3-7 each run in their own
guarded block: a failure is logged and recorded in step_errors, and the
remaining steps still run.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from fandompulse.fandoms.ingestion.discovery import DiscoveryCandidate, analyze_scrape_batch
from fandompulse.fandoms.ingestion.locks import key_lock
from fandompulse.fandoms.models import ContentItem, FandomPlatform, Influencer, MetricSnapshot
from fandompulse.fandoms.normalization import (
    NormalizedContent,
    NormalizedInfluencer,
    NormalizedMetrics,
    normalize_content,
    normalize_influencers,
    normalize_metrics,
)

logger = logging.getLogger(__name__)

MIN_INFLUENCER_FOLLOWERS = 1000
MIN_INFLUENCER_POSTS = 5

# Location tokens accepted for influencers that report a location
PH_LOCATION_PATTERN = re.compile(
    r"\b(philippines|filipino|filipina|pinoy|pinay|manila|cebu|davao|quezon|makati|taguig|pasig|bgc|ph)\b",
    re.IGNORECASE,
)

RATE_QUANTUM = Decimal("0.0001")
# Largest value a Decimal(12, 4) column holds
MAX_RATE = Decimal("99999999.9999")


@dataclass
class IngestResult:
    success: bool
    items_count: int = 0
    influencer_count: int = 0
    discoveries: list[DiscoveryCandidate] = field(default_factory=list)
    error: str | None = None
    step_errors: list[str] = field(default_factory=list)
    fandom_id: UUID | None = None
    platform: str = ""
    source: str = ""
    failover_triggered: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "fandom_id": str(self.fandom_id) if self.fandom_id else None,
            "platform": self.platform,
            "source": self.source,
            "failover_triggered": self.failover_triggered,
            "items_count": self.items_count,
            "influencer_count": self.influencer_count,
            "discoveries": [{"tag": d.tag, "occurrences": d.occurrences} for d in self.discoveries],
            "error": self.error,
            "step_errors": list(self.step_errors),
        }


def ingest_raw_items(
    raw_items: list[dict[str, Any]],
    fandom_id: UUID,
    platform: str,
    source: str,
    today: date | None = None,
) -> IngestResult:
    """
    Persist one batch of raw provider items.

    Serialized per (fandom, platform) within the process. Never raises.
    """
    result = IngestResult(success=True, fandom_id=fandom_id, platform=platform, source=source)
    if not raw_items:
        return result

    today = today or timezone.now().date()

    with key_lock((str(fandom_id), platform)):
        contents = normalize_content(platform, raw_items)

        try:
            result.items_count = insert_new_content(fandom_id, platform, contents)
        except Exception as e:
            logger.exception("Content insert failed for %s/%s", fandom_id, platform)
            result.success = False
            result.error = f"Content insert failed: {e}"
            return result

        metrics = _guarded(result, "snapshot", lambda: upsert_snapshot(fandom_id, platform, raw_items, today))

        if metrics is not None and metrics.followers > 0:
            _guarded(
                result,
                "followers",
                lambda: FandomPlatform.objects.filter(fandom_id=fandom_id, platform=platform).update(
                    followers=metrics.followers
                ),
            )

        influencer_count = _guarded(result, "influencers", lambda: upsert_influencers(fandom_id, platform, raw_items))
        result.influencer_count = influencer_count or 0

        result.discoveries = _guarded(result, "discovery", lambda: analyze_scrape_batch(contents, platform)) or []

    logger.info(
        "Ingested %s/%s: %d new items, %d influencers (source=%s)",
        fandom_id,
        platform,
        result.items_count,
        result.influencer_count,
        source,
    )
    return result


def _guarded(result: IngestResult, step: str, func: Callable[[], Any]) -> Any:
    try:
        return func()
    except Exception as e:
        logger.exception("Ingest step %s failed for %s/%s", step, result.fandom_id, result.platform)
        result.step_errors.append(f"{step}: {e}")
        return None


# =============================================================================
# CONTENT
# =============================================================================


def insert_new_content(fandom_id: UUID, platform: str, contents: list[NormalizedContent]) -> int:
    """Insert items whose external id is not stored yet. Returns the number inserted."""
    if not contents:
        return 0

    # First occurrence wins when a batch repeats an external id
    unique: dict[str, NormalizedContent] = {}
    for content in contents:
        unique.setdefault(content.external_id, content)

    existing = set(
        ContentItem.objects.filter(
            fandom_id=fandom_id,
            platform=platform,
            external_id__in=list(unique),
        ).values_list("external_id", flat=True)
    )

    new_rows = [
        ContentItem(
            fandom_id=fandom_id,
            platform=platform,
            external_id=content.external_id,
            content_type=content.content_type,
            text=content.text,
            url=content.url,
            likes=content.likes,
            comments=content.comments,
            shares=content.shares,
            views=content.views,
            published_at=content.published_at,
            hashtags=content.hashtags,
        )
        for external_id, content in unique.items()
        if external_id not in existing
    ]
    if new_rows:
        ContentItem.objects.bulk_create(new_rows, ignore_conflicts=True)
    return len(new_rows)


# =============================================================================
# SNAPSHOT
# =============================================================================


def growth_rate(current_followers: int, previous_followers: int) -> Decimal:
    """Percent change against the previous snapshot; 0 without a usable baseline."""
    if previous_followers <= 0 or current_followers <= 0:
        return Decimal("0")
    return _rate((current_followers - previous_followers) / previous_followers * 100)


def engagement_rate(metrics: NormalizedMetrics) -> Decimal:
    if metrics.followers <= 0:
        return Decimal("0")
    per_post = metrics.avg_likes + metrics.avg_comments + metrics.avg_shares
    return _rate(per_post / metrics.followers * 100)


def _rate(value: float) -> Decimal:
    rate = Decimal(str(value)).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)
    return max(-MAX_RATE, min(MAX_RATE, rate))


def upsert_snapshot(
    fandom_id: UUID,
    platform: str,
    raw_items: list[dict[str, Any]],
    today: date,
) -> NormalizedMetrics:
    """
    Write today's snapshot for (fandom, platform), overwriting a same-day row.

    The FandomPlatform row is locked for the read-previous/write-today pair so
    concurrent processes cannot compute growth from a racing snapshot.
    """
    metrics = normalize_metrics(platform, raw_items)

    with transaction.atomic():
        handle_row = (
            FandomPlatform.objects.select_for_update()
            .filter(fandom_id=fandom_id, platform=platform)
            .first()
        )
        if metrics.followers == 0 and handle_row is not None and handle_row.followers > 0:
            metrics.followers = handle_row.followers

        previous = (
            MetricSnapshot.objects.filter(fandom_id=fandom_id, platform=platform, date__lt=today)
            .order_by("-date")
            .first()
        )
        previous_followers = previous.followers if previous else 0

        MetricSnapshot.objects.update_or_create(
            fandom_id=fandom_id,
            platform=platform,
            date=today,
            defaults={
                "followers": metrics.followers,
                "posts_count": metrics.posts_count,
                "engagement_total": metrics.engagement_total,
                "engagement_rate": engagement_rate(metrics),
                "growth_rate": growth_rate(metrics.followers, previous_followers),
                "avg_likes": metrics.avg_likes,
                "avg_comments": metrics.avg_comments,
                "avg_shares": metrics.avg_shares,
            },
        )
    return metrics


# =============================================================================
# INFLUENCERS
# =============================================================================


def is_qualified_influencer(influencer: NormalizedInfluencer) -> bool:
    if not influencer.username or influencer.followers <= MIN_INFLUENCER_FOLLOWERS:
        return False
    if influencer.post_count < MIN_INFLUENCER_POSTS:
        return False
    if influencer.location and not PH_LOCATION_PATTERN.search(influencer.location):
        return False
    return True


def upsert_influencers(fandom_id: UUID, platform: str, raw_items: list[dict[str, Any]]) -> int:
    """Upsert qualified influencers from the batch. Returns the number upserted."""
    qualified = [i for i in normalize_influencers(platform, raw_items) if is_qualified_influencer(i)]
    for influencer in qualified:
        upsert_influencer(fandom_id, platform, influencer)
    return len(qualified)


def upsert_influencer(fandom_id: UUID, platform: str, influencer: NormalizedInfluencer) -> Influencer:
    """
    Insert or merge one influencer.

    Usernames match case-insensitively and keep their stored spelling.
    On conflict the higher follower count wins, display fields only fill
    values that are still empty, and engagement_rate is overwritten.
    """
    rate = Decimal(str(influencer.engagement_rate)).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)
    with transaction.atomic():
        row = (
            Influencer.objects.select_for_update()
            .filter(fandom_id=fandom_id, platform=platform, username__iexact=influencer.username)
            .first()
        )
        if row is None:
            return Influencer.objects.create(
                fandom_id=fandom_id,
                platform=platform,
                username=influencer.username,
                display_name=influencer.display_name,
                followers=influencer.followers,
                engagement_rate=rate,
                profile_url=influencer.profile_url,
                avatar_url=influencer.avatar_url,
                bio=influencer.bio,
            )

        row.followers = max(row.followers, influencer.followers)
        row.engagement_rate = rate
        for attr in ("display_name", "profile_url", "avatar_url", "bio"):
            if not getattr(row, attr) and getattr(influencer, attr):
                setattr(row, attr, getattr(influencer, attr))
        row.save(
            update_fields=["followers", "engagement_rate", "display_name", "profile_url", "avatar_url", "bio"]
        )
    return row
