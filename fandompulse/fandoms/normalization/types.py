"""Canonical record shapes produced by the platform normalizers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class NormalizedContent:
    external_id: str
    content_type: str
    text: str | None
    url: str | None
    likes: int = 0
    comments: int = 0
    shares: int = 0
    views: int = 0
    published_at: datetime | None = None
    hashtags: list[str] = field(default_factory=list)


@dataclass
class NormalizedMetrics:
    """Snapshot fields derivable from one batch (growth/engagement rates are computed at ingest)."""

    followers: int = 0
    posts_count: int = 0
    engagement_total: int = 0
    avg_likes: int = 0
    avg_comments: int = 0
    avg_shares: int = 0


@dataclass
class NormalizedInfluencer:
    username: str
    display_name: str | None = None
    followers: int = 0
    engagement_rate: float = 0.0
    profile_url: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    location: str | None = None
    post_count: int = 0
