"""
Untracked-fandom discovery.

Two entry points:
- analyze_scrape_batch(): per-ingest advisory signal from one batch
- discover_fandoms(): fleet-level report over recently stored content

Neither writes to the fandom directory; triage happens downstream.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from fandompulse.fandoms.enums import FandomTier, Platform
from fandompulse.fandoms.models import ContentItem, Fandom
from fandompulse.fandoms.normalization.fields import round_half_up
from fandompulse.fandoms.normalization.types import NormalizedContent

logger = logging.getLogger(__name__)

MIN_OCCURRENCES = 3
MIN_TAG_LENGTH = 3
MAX_TAG_LENGTH = 40
BATCH_TOP_N = 10

REPORT_CONTENT_WINDOW = 1000
REPORT_TOP_N = 20
REPORT_MIN_CONFIDENCE = 15
SAMPLE_LIMIT = 3
SAMPLE_CHARS = 120

MENTION_PATTERN = re.compile(r"@(\w{3,30})")

# Generic tags that say nothing about a specific fandom
EXCLUDE_WORDS = frozenset({
    "fyp", "foryou", "foryoupage", "viral", "trending", "philippines",
    "pinoy", "filipino", "pilipinas", "manila", "cebu", "davao",
    "love", "like", "follow", "share", "comment", "subscribe",
    "reels", "shorts", "tiktok", "instagram", "facebook", "youtube",
    "music", "dance", "kpop", "cpop", "jpop", "concert", "live",
    "2024", "2025", "2026", "new", "latest", "update", "news",
})

PH_FANDOM_INDICATORS = (
    "ppop", "p-pop", "opm",
    "nation", "army", "blooms", "atin", "fans", "stans",
    "abs-cbn", "gma", "star magic", "viva", "cornerstone",
    "idol philippines", "the voice ph", "pinoy big brother",
)

# First matching rule wins
GROUP_RULES = (
    (("pop", "idol", "sb19", "bini"), "P-Pop"),
    (("kpop", "korean", "bts", "blackpink"), "K-Pop"),
    (("drag", "pageant", "queen"), "Reality TV"),
    (("aldub", "abs", "gma"), "TV Fandoms"),
)


@dataclass
class DiscoveryCandidate:
    tag: str
    occurrences: int


@dataclass
class FandomDiscovery:
    name: str
    source: str  # hashtag | mention
    platform: str
    occurrences: int
    sample_content: list[str]
    estimated_reach: int
    suggested_tier: str
    suggested_group: str
    confidence: int


# =============================================================================
# TRACKED NAMES
# =============================================================================


@dataclass
class TrackedNames:
    """Lowercased names, slugs and name tokens of every tracked fandom."""

    exact: set[str] = field(default_factory=set)
    slugs: list[str] = field(default_factory=list)
    compact_names: list[str] = field(default_factory=list)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> "TrackedNames":
        tracked = cls()
        for name, slug in pairs:
            name_lower = name.lower()
            slug_lower = slug.lower()
            tracked.exact.update({name_lower, slug_lower, *name_lower.split()})
            tracked.slugs.append(slug_lower)
            tracked.compact_names.append(re.sub(r"\s+", "", name_lower))
        return tracked

    def matches_tag(self, tag: str) -> bool:
        if tag in self.exact:
            return True
        return any(slug and slug in tag for slug in self.slugs) or any(
            name and name in tag for name in self.compact_names
        )

    def matches_mention(self, mention: str) -> bool:
        if mention in self.exact:
            return True
        return any(slug and (slug in mention or mention in slug) for slug in self.slugs)


def load_tracked_names() -> TrackedNames:
    return TrackedNames.from_pairs(Fandom.objects.values_list("name", "slug"))


def _clean_tag(raw: str) -> str:
    return raw.lower().lstrip("#").strip()


def _mentions(text: str | None) -> list[str]:
    if not text:
        return []
    return [m.lower() for m in MENTION_PATTERN.findall(text)]


# =============================================================================
# PER-BATCH SIGNAL
# =============================================================================


def analyze_scrape_batch(
    contents: list[NormalizedContent],
    platform: str,
    tracked: TrackedNames | None = None,
) -> list[DiscoveryCandidate]:
    """
    Count untracked hashtags and @mentions in one normalized batch.

    Returns at most 10 candidates with at least 3 occurrences, most frequent
    first. Mentions are reported as "@name".
    """
    if tracked is None:
        tracked = load_tracked_names()

    counts: Counter[str] = Counter()
    for content in contents:
        for raw_tag in content.hashtags:
            tag = _clean_tag(raw_tag)
            if len(tag) < MIN_TAG_LENGTH or tag in EXCLUDE_WORDS:
                continue
            if tracked.matches_tag(tag):
                continue
            counts[tag] += 1

        for mention in _mentions(content.text):
            if mention in EXCLUDE_WORDS or tracked.matches_mention(mention):
                continue
            counts[f"@{mention}"] += 1

    candidates = [
        DiscoveryCandidate(tag=tag, occurrences=count)
        for tag, count in counts.most_common()
        if count >= MIN_OCCURRENCES
    ][:BATCH_TOP_N]

    if candidates:
        logger.info(
            "Discovery candidates on %s: %s",
            platform,
            ", ".join(f"{c.tag}({c.occurrences})" for c in candidates),
        )
    return candidates


# =============================================================================
# FLEET REPORT
# =============================================================================


@dataclass
class _TagStats:
    count: int = 0
    total_engagement: int = 0
    platforms: list[str] = field(default_factory=list)
    samples: list[str] = field(default_factory=list)

    def record(self, engagement: int, platform: str, text: str | None) -> None:
        self.count += 1
        self.total_engagement += engagement
        if platform not in self.platforms:
            self.platforms.append(platform)
        if text and len(self.samples) < SAMPLE_LIMIT:
            self.samples.append(text if len(text) <= SAMPLE_CHARS else text[:SAMPLE_CHARS] + "...")


def discover_fandoms(tracked: TrackedNames | None = None) -> list[FandomDiscovery]:
    """
    Rank untracked hashtags/mentions across the most recent stored content.

    confidence = frequency (max 40) + engagement (max 30)
                 + platform spread (max 20) + fandom-indicator bonus (10)
    """
    if tracked is None:
        tracked = load_tracked_names()

    recent = ContentItem.objects.order_by("-scraped_at").values(
        "hashtags", "text", "platform", "likes", "comments", "shares", "views"
    )[:REPORT_CONTENT_WINDOW]

    stats: dict[str, _TagStats] = {}
    for row in recent:
        engagement = row["likes"] + row["comments"] + row["shares"] + row["views"]

        for raw_tag in row["hashtags"] or []:
            tag = _clean_tag(str(raw_tag))
            if not MIN_TAG_LENGTH <= len(tag) <= MAX_TAG_LENGTH:
                continue
            if tag in EXCLUDE_WORDS or tracked.matches_tag(tag):
                continue
            stats.setdefault(tag, _TagStats()).record(engagement, row["platform"], row["text"])

        for mention in _mentions(row["text"]):
            if mention in EXCLUDE_WORDS or tracked.matches_mention(mention):
                continue
            stats.setdefault(f"@{mention}", _TagStats()).record(engagement, row["platform"], row["text"])

    discoveries = []
    for tag, tag_stats in stats.items():
        if tag_stats.count < MIN_OCCURRENCES:
            continue
        confidence = _confidence(tag, tag_stats)
        if confidence < REPORT_MIN_CONFIDENCE:
            continue

        is_mention = tag.startswith("@")
        avg_engagement = tag_stats.total_engagement / tag_stats.count
        discoveries.append(
            FandomDiscovery(
                name=tag[1:] if is_mention else tag,
                source="mention" if is_mention else "hashtag",
                platform=tag_stats.platforms[0] if tag_stats.platforms else Platform.TIKTOK.value,
                occurrences=tag_stats.count,
                sample_content=tag_stats.samples,
                estimated_reach=tag_stats.total_engagement,
                suggested_tier=(FandomTier.TRENDING if avg_engagement > 50000 else FandomTier.EMERGING).value,
                suggested_group=suggest_group(tag),
                confidence=confidence,
            )
        )

    discoveries.sort(key=lambda d: d.confidence, reverse=True)
    return discoveries[:REPORT_TOP_N]


def _confidence(tag: str, tag_stats: _TagStats) -> int:
    frequency = min(tag_stats.count / 10, 1) * 40
    engagement = min(tag_stats.total_engagement / 100000, 1) * 30
    spread = min(len(tag_stats.platforms) / 3, 1) * 20
    bonus = 10 if any(indicator in tag for indicator in PH_FANDOM_INDICATORS) else 0
    return round_half_up(frequency + engagement + spread + bonus)


def suggest_group(tag: str) -> str:
    for needles, group in GROUP_RULES:
        if any(needle in tag for needle in needles):
            return group
    return "Unknown"
