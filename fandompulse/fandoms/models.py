"""
Fandom Pulse models.

Models:
- Fandom: Tracked entity (maintained by the directory, read-only to ingestion)
- FandomPlatform: (platform, handle) pair for a fandom, with last known followers
- ContentItem: Canonical post/video/thread record, unique per external id
- MetricSnapshot: One row per fandom/platform/day with derived growth rate
- Influencer: Account posting about a fandom, unique per username
- TrendPoint: Search-interest value for a keyword on a date in a region
- ScrapeRun: Audit record for one ingest of one fandom/platform
- TrendsJob: Persisted status of the trends collection job (compare-and-set)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone

from fandompulse.fandoms.enums import (
    ContentType,
    FandomTier,
    Platform,
    ScrapeRunStatus,
    TrendsJobStatus,
)


class Fandom(models.Model):
    """A tracked fan community with a stable slug."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    tier = models.CharField(max_length=20, choices=FandomTier.choices, default=FandomTier.EMERGING)
    fandom_group = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "fandoms"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class FandomPlatform(models.Model):
    """
    Platform handle for a fandom.

    followers holds the last observed follower count; ingestion falls back to it
    when a content listing cannot report followers.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fandom = models.ForeignKey(Fandom, on_delete=models.CASCADE, related_name="platforms")
    platform = models.CharField(max_length=20, choices=Platform.choices)
    handle = models.CharField(max_length=255)
    followers = models.BigIntegerField(default=0)
    url = models.URLField(max_length=500, blank=True)

    class Meta:
        db_table = "fandom_platforms"
        constraints = [
            models.UniqueConstraint(
                fields=["fandom", "platform"],
                name="uniq_fandom_platform",
            )
        ]

    def __str__(self) -> str:
        return f"{self.fandom_id}:{self.platform}:{self.handle}"


class ContentItem(models.Model):
    """
    Canonical content record. Created once at first sighting, never updated.

    Unique constraint on (fandom, platform, external_id) backs the
    existence-check dedup in ingestion.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fandom = models.ForeignKey(Fandom, on_delete=models.CASCADE, related_name="content_items")
    platform = models.CharField(max_length=20, choices=Platform.choices)
    external_id = models.CharField(max_length=255)
    content_type = models.CharField(max_length=20, choices=ContentType.choices)
    text = models.TextField(null=True, blank=True)
    url = models.TextField(null=True, blank=True)
    likes = models.BigIntegerField(default=0)
    comments = models.BigIntegerField(default=0)
    shares = models.BigIntegerField(default=0)
    views = models.BigIntegerField(default=0)
    published_at = models.DateTimeField(null=True, blank=True)
    scraped_at = models.DateTimeField(default=timezone.now)
    hashtags = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "content_items"
        constraints = [
            models.UniqueConstraint(
                fields=["fandom", "platform", "external_id"],
                name="uniq_content_external_id",
            )
        ]
        indexes = [
            models.Index(fields=["fandom", "external_id"], name="content_fandom_ext_idx"),
            models.Index(fields=["-scraped_at"], name="content_scraped_at_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.platform}:{self.external_id}"


class MetricSnapshot(models.Model):
    """
    Daily metrics for a fandom on one platform.

    At most one row per (fandom, platform, date); a second ingestion on the
    same day overwrites the row. growth_rate is always derived, never scraped.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fandom = models.ForeignKey(Fandom, on_delete=models.CASCADE, related_name="snapshots")
    platform = models.CharField(max_length=20, choices=Platform.choices)
    date = models.DateField()
    followers = models.BigIntegerField(default=0)
    posts_count = models.PositiveIntegerField(default=0)
    engagement_total = models.BigIntegerField(default=0)
    engagement_rate = models.DecimalField(max_digits=12, decimal_places=4, default=Decimal("0"))
    growth_rate = models.DecimalField(max_digits=12, decimal_places=4, default=Decimal("0"))
    avg_likes = models.BigIntegerField(default=0)
    avg_comments = models.BigIntegerField(default=0)
    avg_shares = models.BigIntegerField(default=0)

    class Meta:
        db_table = "metric_snapshots"
        constraints = [
            models.UniqueConstraint(
                fields=["fandom", "platform", "date"],
                name="uniq_snapshot_per_day",
            )
        ]
        indexes = [
            models.Index(fields=["fandom", "platform", "-date"], name="snapshot_fandom_date_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.fandom_id}:{self.platform}@{self.date.isoformat()}"


class Influencer(models.Model):
    """Account posting about a fandom. Upserted on (fandom, platform, username)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fandom = models.ForeignKey(Fandom, on_delete=models.CASCADE, related_name="influencers")
    platform = models.CharField(max_length=20, choices=Platform.choices)
    username = models.CharField(max_length=255)
    display_name = models.CharField(max_length=255, null=True, blank=True)
    followers = models.BigIntegerField(default=0)
    engagement_rate = models.DecimalField(max_digits=12, decimal_places=4, default=Decimal("0"))
    profile_url = models.URLField(max_length=500, null=True, blank=True)
    avatar_url = models.TextField(null=True, blank=True)
    bio = models.TextField(null=True, blank=True)
    relevance_score = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))

    class Meta:
        db_table = "influencers"
        constraints = [
            models.UniqueConstraint(
                fields=["fandom", "platform", "username"],
                name="uniq_influencer_username",
            )
        ]

    def __str__(self) -> str:
        return f"{self.platform}:@{self.username}"


class TrendPoint(models.Model):
    """
    Search-interest value (0-100) for a keyword on a date.

    region is the geo code for national series ("PH") or a region code
    ("PH-NCR") for regional breakdown rows.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    fandom = models.ForeignKey(Fandom, on_delete=models.CASCADE, related_name="trend_points")
    keyword = models.CharField(max_length=255)
    date = models.DateField()
    interest_value = models.PositiveSmallIntegerField(default=0)
    region = models.CharField(max_length=20, default="PH")

    class Meta:
        db_table = "google_trends"
        indexes = [
            models.Index(fields=["fandom", "region", "date"], name="trends_fandom_region_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.keyword}@{self.date.isoformat()}[{self.region}]={self.interest_value}"


class ScrapeRun(models.Model):
    """Audit record for one scrape + ingest of a fandom/platform."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor_id = models.CharField(max_length=255)
    fandom = models.ForeignKey(
        Fandom,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="scrape_runs",
    )
    platform = models.CharField(max_length=20, choices=Platform.choices, null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=ScrapeRunStatus.choices,
        default=ScrapeRunStatus.PENDING,
    )
    started_at = models.DateTimeField(default=timezone.now)
    finished_at = models.DateTimeField(null=True, blank=True)
    items_count = models.PositiveIntegerField(default=0)
    apify_run_id = models.CharField(max_length=255, blank=True)
    error_message = models.TextField(blank=True)

    class Meta:
        db_table = "scrape_runs"
        indexes = [
            models.Index(fields=["status", "started_at"], name="scrape_run_status_idx"),
            models.Index(fields=["fandom", "-started_at"], name="scrape_run_fandom_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.actor_id} {self.platform} [{self.status}]"


class TrendsJob(models.Model):
    """
    Persisted status record for the trends collection job.

    One row per job name. "Start if not already running" is a conditional
    UPDATE on this row, so concurrent callers and restarted processes see the
    same state.
    """

    name = models.CharField(max_length=100, primary_key=True)
    status = models.CharField(
        max_length=20,
        choices=TrendsJobStatus.choices,
        default=TrendsJobStatus.IDLE,
    )
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)
    summary = models.JSONField(default=dict, blank=True)
    error = models.TextField(blank=True)

    class Meta:
        db_table = "trends_jobs"

    def __str__(self) -> str:
        return f"{self.name} [{self.status}]"
