"""
Influencer extraction.

Every content item names its author; the extractor tables below say where.
Accounts are deduplicated case-insensitively by username within a batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from fandompulse.fandoms.enums import Platform
from fandompulse.fandoms.normalization.content import CONTENT_FIELDS, ContentFields, is_profile_item
from fandompulse.fandoms.normalization.fields import pick_int, pick_str
from fandompulse.fandoms.normalization.types import NormalizedInfluencer

REDDIT_EXCLUDED_AUTHORS = frozenset({"[deleted]", "AutoModerator"})


@dataclass(frozen=True)
class AuthorFields:
    username: tuple[str, ...]
    followers: tuple[str, ...]
    profile_url: Callable[[str, dict[str, Any]], str | None]
    display_name: tuple[str, ...] = ()
    avatar_url: tuple[str, ...] = ()
    bio: tuple[str, ...] = ()
    location: tuple[str, ...] = ()
    excluded: frozenset[str] = frozenset()


def _url_template(template: str) -> Callable[[str, dict[str, Any]], str]:
    return lambda username, item: template.format(username=username)


def _url_field(*paths: str) -> Callable[[str, dict[str, Any]], str | None]:
    return lambda username, item: pick_str(item, paths)


AUTHOR_FIELDS: dict[str, AuthorFields] = {
    Platform.INSTAGRAM: AuthorFields(
        username=("ownerUsername",),
        display_name=("ownerFullName",),
        followers=("ownerFollowerCount", "ownerFollowersCount"),
        avatar_url=("ownerProfilePicUrl",),
        location=("locationName",),
        profile_url=_url_template("https://www.instagram.com/{username}"),
    ),
    Platform.TIKTOK: AuthorFields(
        username=("authorMeta.name", "author.uniqueId", "authorName"),
        display_name=("authorMeta.nickName", "authorMeta.nickname", "author.nickname"),
        followers=("authorMeta.fans", "authorMeta.followers"),
        avatar_url=("authorMeta.avatar",),
        bio=("authorMeta.signature",),
        location=("authorMeta.region", "author.region"),
        profile_url=_url_template("https://www.tiktok.com/@{username}"),
    ),
    Platform.TWITTER: AuthorFields(
        username=("user.screen_name", "user.userName", "author.screen_name", "author.userName", "username"),
        display_name=("user.name", "user.displayName", "author.name", "author.displayName"),
        followers=("user.followers_count", "user.followers", "author.followers_count", "author.followers"),
        avatar_url=(
            "user.profile_image_url_https",
            "user.profileImageUrl",
            "author.profile_image_url_https",
            "author.profileImageUrl",
        ),
        bio=("user.description", "author.description"),
        location=("user.location", "author.location"),
        profile_url=_url_template("https://x.com/{username}"),
    ),
    Platform.YOUTUBE: AuthorFields(
        username=("channelName", "channelTitle"),
        display_name=("channelName", "channelTitle"),
        followers=("channelSubscribers",),
        avatar_url=("channelThumbnail",),
        location=("channelCountry",),
        profile_url=_url_field("channelUrl"),
    ),
    Platform.FACEBOOK: AuthorFields(
        username=("pageName", "userName"),
        display_name=("pageName",),
        followers=("pageLikes", "pageFollowers"),
        location=("pageLocation", "location"),
        profile_url=_url_field("pageUrl"),
    ),
    Platform.REDDIT: AuthorFields(
        username=("author", "username"),
        followers=("authorKarma",),
        profile_url=_url_template("https://www.reddit.com/user/{username}"),
        excluded=REDDIT_EXCLUDED_AUTHORS,
    ),
}


def normalize_influencers(platform: str, raw_items: list[dict[str, Any]]) -> list[NormalizedInfluencer]:
    """
    Extract one record per distinct author in the batch.

    Duplicates (case-insensitive username) are merged: post_count counts
    appearances, the highest follower count wins along with that variant's
    display name, avatar and bio, and location is filled if still missing.

    engagement_rate is the author's mean likes + comments + shares per post
    in this batch, as a percentage of followers (0 without followers).
    """
    fields = AUTHOR_FIELDS.get(platform)
    if fields is None:
        return []
    content_fields = CONTENT_FIELDS.get(platform)

    by_username: dict[str, NormalizedInfluencer] = {}
    interactions: dict[str, int] = {}
    for item in raw_items or []:
        if not isinstance(item, dict) or is_profile_item(item):
            continue
        candidate = _extract(fields, item)
        if candidate is None:
            continue

        key = candidate.username.lower()
        interactions[key] = interactions.get(key, 0) + _interactions(content_fields, item)
        existing = by_username.get(key)
        if existing is None:
            candidate.post_count = 1
            by_username[key] = candidate
            continue

        existing.post_count += 1
        if candidate.followers > existing.followers:
            existing.followers = candidate.followers
            existing.display_name = candidate.display_name or existing.display_name
            existing.avatar_url = candidate.avatar_url or existing.avatar_url
            existing.bio = candidate.bio or existing.bio
        if not existing.location and candidate.location:
            existing.location = candidate.location

    for key, influencer in by_username.items():
        if influencer.followers > 0:
            per_post = interactions[key] / influencer.post_count
            influencer.engagement_rate = round(per_post / influencer.followers * 100, 4)

    return list(by_username.values())


def _interactions(fields: ContentFields | None, item: dict[str, Any]) -> int:
    if fields is None:
        return 0
    return pick_int(item, fields.likes) + pick_int(item, fields.comments) + pick_int(item, fields.shares)


def _extract(fields: AuthorFields, item: dict[str, Any]) -> NormalizedInfluencer | None:
    username = pick_str(item, fields.username)
    if not username or username in fields.excluded:
        return None
    return NormalizedInfluencer(
        username=username,
        display_name=pick_str(item, fields.display_name),
        followers=pick_int(item, fields.followers),
        profile_url=fields.profile_url(username, item),
        avatar_url=pick_str(item, fields.avatar_url),
        bio=pick_str(item, fields.bio),
        location=pick_str(item, fields.location),
    )
