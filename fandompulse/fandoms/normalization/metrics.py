"""Batch-level metric aggregation."""

from __future__ import annotations

from typing import Any

from fandompulse.fandoms.enums import Platform
from fandompulse.fandoms.normalization.content import normalize_content
from fandompulse.fandoms.normalization.fields import average, pick_int
from fandompulse.fandoms.normalization.types import NormalizedMetrics

# Platforms absent here report 0 followers; ingestion falls back to the stored value
FOLLOWER_FIELDS: dict[str, tuple[str, ...]] = {
    Platform.INSTAGRAM: ("ownerFollowerCount", "ownerFollowersCount"),
    Platform.TIKTOK: ("authorMeta.fans", "authorMeta.followers", "followerCount", "fans"),
    Platform.YOUTUBE: ("channelSubscribers",),
}


def normalize_metrics(platform: str, raw_items: list[dict[str, Any]]) -> NormalizedMetrics:
    """
    Aggregate one batch into snapshot metrics.

    engagement_total = likes + comments + shares over content items; averages
    are rounded half up. An empty batch yields all zeros.
    """
    contents = normalize_content(platform, raw_items)
    posts_count = len(contents)

    total_likes = sum(c.likes for c in contents)
    total_comments = sum(c.comments for c in contents)
    total_shares = sum(c.shares for c in contents)

    return NormalizedMetrics(
        followers=_followers(platform, raw_items),
        posts_count=posts_count,
        engagement_total=total_likes + total_comments + total_shares,
        avg_likes=average(total_likes, posts_count),
        avg_comments=average(total_comments, posts_count),
        avg_shares=average(total_shares, posts_count),
    )


def _followers(platform: str, raw_items: list[dict[str, Any]]) -> int:
    paths = FOLLOWER_FIELDS.get(platform)
    if not paths:
        return 0
    for item in raw_items or []:
        followers = pick_int(item, paths)
        if followers:
            return followers
    return 0
