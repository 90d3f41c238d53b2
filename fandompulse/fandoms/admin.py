"""Django admin configuration for fandom models."""

from django.contrib import admin

from .models import (
    ContentItem,
    Fandom,
    FandomPlatform,
    Influencer,
    MetricSnapshot,
    ScrapeRun,
    TrendPoint,
    TrendsJob,
)


class FandomPlatformInline(admin.TabularInline):
    model = FandomPlatform
    extra = 0


@admin.register(Fandom)
class FandomAdmin(admin.ModelAdmin):
    """Admin for Fandom model."""

    list_display = ["name", "slug", "tier", "fandom_group", "updated_at"]
    list_filter = ["tier"]
    search_fields = ["name", "slug", "fandom_group"]
    prepopulated_fields = {"slug": ("name",)}
    inlines = [FandomPlatformInline]


@admin.register(ContentItem)
class ContentItemAdmin(admin.ModelAdmin):
    """Admin for ContentItem model."""

    list_display = ["__str__", "fandom", "platform", "content_type", "likes", "published_at", "scraped_at"]
    list_filter = ["platform", "content_type"]
    search_fields = ["external_id", "text"]
    ordering = ["-scraped_at"]


@admin.register(MetricSnapshot)
class MetricSnapshotAdmin(admin.ModelAdmin):
    """Admin for MetricSnapshot model."""

    list_display = ["fandom", "platform", "date", "followers", "posts_count", "engagement_rate", "growth_rate"]
    list_filter = ["platform"]
    ordering = ["-date"]


@admin.register(Influencer)
class InfluencerAdmin(admin.ModelAdmin):
    list_display = ["__str__", "fandom", "followers", "engagement_rate"]
    list_filter = ["platform"]
    search_fields = ["username", "display_name"]


@admin.register(TrendPoint)
class TrendPointAdmin(admin.ModelAdmin):
    list_display = ["fandom", "keyword", "date", "interest_value", "region"]
    list_filter = ["region"]
    search_fields = ["keyword"]
    ordering = ["-date"]


@admin.register(ScrapeRun)
class ScrapeRunAdmin(admin.ModelAdmin):
    """Admin for ScrapeRun model."""

    list_display = ["id", "fandom", "platform", "actor_id", "status", "items_count", "started_at", "finished_at"]
    list_filter = ["status", "platform"]
    ordering = ["-started_at"]


@admin.register(TrendsJob)
class TrendsJobAdmin(admin.ModelAdmin):
    list_display = ["name", "status", "started_at", "finished_at"]
