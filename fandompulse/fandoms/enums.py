"""
Fandom Pulse domain enums.

All enums are Django TextChoices stored as lowercase strings.
"""

from django.db import models


class Platform(models.TextChoices):
    """Social platforms the pipeline can scrape."""
    INSTAGRAM = "instagram", "Instagram"
    TIKTOK = "tiktok", "TikTok"
    FACEBOOK = "facebook", "Facebook"
    YOUTUBE = "youtube", "YouTube"
    TWITTER = "twitter", "X (Twitter)"
    REDDIT = "reddit", "Reddit"


class FandomTier(models.TextChoices):
    EMERGING = "emerging", "Emerging"
    TRENDING = "trending", "Trending"
    EXISTING = "existing", "Existing"


class ContentType(models.TextChoices):
    """Canonical content kinds across platforms."""
    POST = "post", "Post"
    VIDEO = "video", "Video"
    REEL = "reel", "Reel"
    TWEET = "tweet", "Tweet"
    THREAD = "thread", "Thread"


class ScrapeRunStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    RUNNING = "running", "Running"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


class TrendsJobStatus(models.TextChoices):
    """Status of the persisted trends collection job."""
    IDLE = "idle", "Idle"
    RUNNING = "running", "Running"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
