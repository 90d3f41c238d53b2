"""
Initial schema for the fandoms app.

Tables:
- fandoms, fandom_platforms (entity directory)
- content_items, metric_snapshots, influencers (ingestion targets)
- google_trends (trend points)
- scrape_runs (per-ingest audit), trends_jobs (persisted job status)

Natural-key unique constraints back every upsert path:
- content_items (fandom, platform, external_id)
- metric_snapshots (fandom, platform, date)
- influencers (fandom, platform, username)
"""

from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


PLATFORM_CHOICES = [
    ("instagram", "Instagram"),
    ("tiktok", "TikTok"),
    ("facebook", "Facebook"),
    ("youtube", "YouTube"),
    ("twitter", "X (Twitter)"),
    ("reddit", "Reddit"),
]


class Migration(migrations.Migration):
    """Create the fandom pipeline tables."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Fandom",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(max_length=255, unique=True)),
                (
                    "tier",
                    models.CharField(
                        choices=[
                            ("emerging", "Emerging"),
                            ("trending", "Trending"),
                            ("existing", "Existing"),
                        ],
                        default="emerging",
                        max_length=20,
                    ),
                ),
                ("fandom_group", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "fandoms",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="FandomPlatform",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("platform", models.CharField(choices=PLATFORM_CHOICES, max_length=20)),
                ("handle", models.CharField(max_length=255)),
                ("followers", models.BigIntegerField(default=0)),
                ("url", models.URLField(blank=True, max_length=500)),
                (
                    "fandom",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="platforms",
                        to="fandoms.fandom",
                    ),
                ),
            ],
            options={
                "db_table": "fandom_platforms",
            },
        ),
        migrations.CreateModel(
            name="ContentItem",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("platform", models.CharField(choices=PLATFORM_CHOICES, max_length=20)),
                ("external_id", models.CharField(max_length=255)),
                (
                    "content_type",
                    models.CharField(
                        choices=[
                            ("post", "Post"),
                            ("video", "Video"),
                            ("reel", "Reel"),
                            ("tweet", "Tweet"),
                            ("thread", "Thread"),
                        ],
                        max_length=20,
                    ),
                ),
                ("text", models.TextField(blank=True, null=True)),
                ("url", models.TextField(blank=True, null=True)),
                ("likes", models.BigIntegerField(default=0)),
                ("comments", models.BigIntegerField(default=0)),
                ("shares", models.BigIntegerField(default=0)),
                ("views", models.BigIntegerField(default=0)),
                ("published_at", models.DateTimeField(blank=True, null=True)),
                ("scraped_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("hashtags", models.JSONField(blank=True, default=list)),
                (
                    "fandom",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="content_items",
                        to="fandoms.fandom",
                    ),
                ),
            ],
            options={
                "db_table": "content_items",
            },
        ),
        migrations.CreateModel(
            name="MetricSnapshot",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("platform", models.CharField(choices=PLATFORM_CHOICES, max_length=20)),
                ("date", models.DateField()),
                ("followers", models.BigIntegerField(default=0)),
                ("posts_count", models.PositiveIntegerField(default=0)),
                ("engagement_total", models.BigIntegerField(default=0)),
                (
                    "engagement_rate",
                    models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=12),
                ),
                (
                    "growth_rate",
                    models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=12),
                ),
                ("avg_likes", models.BigIntegerField(default=0)),
                ("avg_comments", models.BigIntegerField(default=0)),
                ("avg_shares", models.BigIntegerField(default=0)),
                (
                    "fandom",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="snapshots",
                        to="fandoms.fandom",
                    ),
                ),
            ],
            options={
                "db_table": "metric_snapshots",
            },
        ),
        migrations.CreateModel(
            name="Influencer",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("platform", models.CharField(choices=PLATFORM_CHOICES, max_length=20)),
                ("username", models.CharField(max_length=255)),
                ("display_name", models.CharField(blank=True, max_length=255, null=True)),
                ("followers", models.BigIntegerField(default=0)),
                (
                    "engagement_rate",
                    models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=12),
                ),
                ("profile_url", models.URLField(blank=True, max_length=500, null=True)),
                ("avatar_url", models.TextField(blank=True, null=True)),
                ("bio", models.TextField(blank=True, null=True)),
                (
                    "relevance_score",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5),
                ),
                (
                    "fandom",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="influencers",
                        to="fandoms.fandom",
                    ),
                ),
            ],
            options={
                "db_table": "influencers",
            },
        ),
        migrations.CreateModel(
            name="TrendPoint",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("keyword", models.CharField(max_length=255)),
                ("date", models.DateField()),
                ("interest_value", models.PositiveSmallIntegerField(default=0)),
                ("region", models.CharField(default="PH", max_length=20)),
                (
                    "fandom",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="trend_points",
                        to="fandoms.fandom",
                    ),
                ),
            ],
            options={
                "db_table": "google_trends",
            },
        ),
        migrations.CreateModel(
            name="ScrapeRun",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("actor_id", models.CharField(max_length=255)),
                (
                    "platform",
                    models.CharField(
                        blank=True,
                        choices=PLATFORM_CHOICES,
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("running", "Running"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("items_count", models.PositiveIntegerField(default=0)),
                ("apify_run_id", models.CharField(blank=True, max_length=255)),
                ("error_message", models.TextField(blank=True)),
                (
                    "fandom",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="scrape_runs",
                        to="fandoms.fandom",
                    ),
                ),
            ],
            options={
                "db_table": "scrape_runs",
            },
        ),
        migrations.CreateModel(
            name="TrendsJob",
            fields=[
                (
                    "name",
                    models.CharField(max_length=100, primary_key=True, serialize=False),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("idle", "Idle"),
                            ("running", "Running"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                        ],
                        default="idle",
                        max_length=20,
                    ),
                ),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("summary", models.JSONField(blank=True, default=dict)),
                ("error", models.TextField(blank=True)),
            ],
            options={
                "db_table": "trends_jobs",
            },
        ),
        # Constraints
        migrations.AddConstraint(
            model_name="fandomplatform",
            constraint=models.UniqueConstraint(
                fields=["fandom", "platform"],
                name="uniq_fandom_platform",
            ),
        ),
        migrations.AddConstraint(
            model_name="contentitem",
            constraint=models.UniqueConstraint(
                fields=["fandom", "platform", "external_id"],
                name="uniq_content_external_id",
            ),
        ),
        migrations.AddConstraint(
            model_name="metricsnapshot",
            constraint=models.UniqueConstraint(
                fields=["fandom", "platform", "date"],
                name="uniq_snapshot_per_day",
            ),
        ),
        migrations.AddConstraint(
            model_name="influencer",
            constraint=models.UniqueConstraint(
                fields=["fandom", "platform", "username"],
                name="uniq_influencer_username",
            ),
        ),
        # Indexes
        migrations.AddIndex(
            model_name="contentitem",
            index=models.Index(
                fields=["fandom", "external_id"],
                name="content_fandom_ext_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="contentitem",
            index=models.Index(
                fields=["-scraped_at"],
                name="content_scraped_at_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="metricsnapshot",
            index=models.Index(
                fields=["fandom", "platform", "-date"],
                name="snapshot_fandom_date_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="trendpoint",
            index=models.Index(
                fields=["fandom", "region", "date"],
                name="trends_fandom_region_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="scraperun",
            index=models.Index(
                fields=["status", "started_at"],
                name="scrape_run_status_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="scraperun",
            index=models.Index(
                fields=["fandom", "-started_at"],
                name="scrape_run_fandom_idx",
            ),
        ),
    ]
