"""
Content normalization.

Each platform is described by a ContentFields table: an ordered tuple of
source paths per canonical field. The same table serves both providers
because the direct-API adapter reshapes its payloads into the managed-actor
key vocabulary before returning them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from fandompulse.fandoms.enums import ContentType, Platform
from fandompulse.fandoms.normalization.fields import (
    extract_hashtags,
    get_path,
    native_hashtags,
    parse_date,
    pick,
    pick_int,
    pick_str,
)
from fandompulse.fandoms.normalization.types import NormalizedContent

# Synthetic items carrying only profile-level data (followers), never content
PROFILE_ITEM_TYPE = "profile"


@dataclass(frozen=True)
class ContentFields:
    content_type: Callable[[dict[str, Any]], str]
    external_id: tuple[str, ...]
    text: tuple[str, ...]
    likes: tuple[str, ...]
    comments: tuple[str, ...]
    url: tuple[str, ...] = ("url",)
    shares: tuple[str, ...] = ()
    views: tuple[str, ...] = ()
    published_at: tuple[str, ...] = ()
    native_hashtags: tuple[str, ...] = ()


def _instagram_type(item: dict[str, Any]) -> str:
    return ContentType.REEL if item.get("type") == "Video" else ContentType.POST


def _fixed(content_type: str) -> Callable[[dict[str, Any]], str]:
    return lambda item: content_type


CONTENT_FIELDS: dict[str, ContentFields] = {
    Platform.INSTAGRAM: ContentFields(
        content_type=_instagram_type,
        external_id=("id", "shortCode"),
        text=("caption",),
        likes=("likesCount",),
        comments=("commentsCount",),
        views=("videoViewCount",),
        published_at=("timestamp",),
        native_hashtags=("hashtags",),
    ),
    Platform.TIKTOK: ContentFields(
        content_type=_fixed(ContentType.VIDEO),
        external_id=("id",),
        text=("text", "desc"),
        url=("webVideoUrl", "url"),
        likes=("diggCount", "likes"),
        comments=("commentCount", "comments"),
        shares=("shareCount", "shares"),
        views=("playCount", "views"),
        published_at=("createTime",),
        native_hashtags=("hashtags",),
    ),
    Platform.TWITTER: ContentFields(
        content_type=_fixed(ContentType.TWEET),
        external_id=("id", "id_str"),
        text=("full_text", "text"),
        likes=("favorite_count", "likeCount"),
        comments=("reply_count", "replyCount"),
        shares=("retweet_count", "retweetCount"),
        views=("views_count", "viewCount"),
        published_at=("created_at", "createdAt"),
        native_hashtags=("entities.hashtags",),
    ),
    Platform.YOUTUBE: ContentFields(
        content_type=_fixed(ContentType.VIDEO),
        external_id=("id",),
        text=("title",),
        likes=("likes",),
        comments=("commentsCount",),
        views=("viewCount", "views"),
        published_at=("date", "uploadDate"),
    ),
    Platform.FACEBOOK: ContentFields(
        content_type=_fixed(ContentType.POST),
        external_id=("postId", "id"),
        text=("text", "message"),
        likes=("likes", "reactionsCount"),
        comments=("comments", "commentsCount"),
        shares=("shares", "sharesCount"),
        published_at=("time", "timestamp"),
    ),
    Platform.REDDIT: ContentFields(
        content_type=_fixed(ContentType.THREAD),
        external_id=("id",),
        text=("title",),
        likes=("upVotes", "score"),
        comments=("numberOfComments", "numComments"),
        published_at=("createdAt", "created_utc"),
    ),
}


def is_profile_item(item: Any) -> bool:
    return isinstance(item, dict) and item.get("type") == PROFILE_ITEM_TYPE


def normalize_content(platform: str, raw_items: list[dict[str, Any]]) -> list[NormalizedContent]:
    """
    Map raw provider items to canonical content records.

    Unknown platforms yield an empty list. Items without an external id and
    synthetic profile items are skipped; every other item produces exactly one
    record. Missing numbers default to 0, unparseable dates to None.
    """
    fields = CONTENT_FIELDS.get(platform)
    if fields is None:
        return []

    records = []
    for item in raw_items or []:
        if not isinstance(item, dict) or is_profile_item(item):
            continue
        record = _normalize_item(fields, item)
        if record is not None:
            records.append(record)
    return records


def _normalize_item(fields: ContentFields, item: dict[str, Any]) -> NormalizedContent | None:
    external_id = pick_str(item, fields.external_id)
    if not external_id:
        return None

    text = pick_str(item, fields.text)
    return NormalizedContent(
        external_id=external_id,
        content_type=str(fields.content_type(item)),
        text=text,
        url=pick_str(item, fields.url),
        likes=pick_int(item, fields.likes),
        comments=pick_int(item, fields.comments),
        shares=pick_int(item, fields.shares),
        views=pick_int(item, fields.views),
        published_at=parse_date(pick(item, fields.published_at)),
        hashtags=_hashtags(fields, item, text),
    )


def _hashtags(fields: ContentFields, item: dict[str, Any], text: str | None) -> list[str]:
    for path in fields.native_hashtags:
        tags = native_hashtags(get_path(item, path))
        if tags:
            return tags
    return extract_hashtags(text)
