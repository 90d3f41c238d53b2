"""
Managed-actor provider (Apify).

One actor per platform. A scrape starts the actor run, waits for it to reach
a terminal state (bounded by APIFY_RUN_TIMEOUT_S) and returns the first
`limit` dataset items unmodified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import quote

from django.conf import settings

from fandompulse.fandoms.enums import Platform
from fandompulse.fandoms.providers.base import ProviderResult, ScrapeParams, ScrapeProvider
from fandompulse.integrations.apify import ApifyClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActorSpec:
    """
    Apify actor used for one platform.

    Attributes:
        platform: Platform the actor scrapes
        actor_id: Apify actor ID ("owner/name")
        build_input: Builds the actor input JSON from scrape params
        description: Operator-facing note
    """

    platform: str
    actor_id: str
    build_input: Callable[[ScrapeParams], dict[str, Any]]
    description: str = ""


# =============================================================================
# INPUT BUILDERS
# =============================================================================


def build_instagram_input(params: ScrapeParams) -> dict[str, Any]:
    return {
        "directUrls": [f"https://www.instagram.com/{params.bare_handle}/"],
        "resultsType": "posts",
        "resultsLimit": params.effective_limit,
    }


def build_tiktok_input(params: ScrapeParams) -> dict[str, Any]:
    return {
        "profiles": [params.bare_handle],
        "resultsPerPage": params.effective_limit,
        "shouldDownloadVideos": False,
    }


def build_facebook_input(params: ScrapeParams) -> dict[str, Any]:
    return {
        "startUrls": [{"url": f"https://www.facebook.com/{params.handle}"}],
        "resultsLimit": params.effective_limit,
    }


def build_youtube_input(params: ScrapeParams) -> dict[str, Any]:
    return {
        "startUrls": [{"url": f"https://www.youtube.com/@{params.bare_handle}"}],
        "maxResults": params.effective_limit,
        "type": "video",
    }


def build_twitter_input(params: ScrapeParams) -> dict[str, Any]:
    return {
        "searchTerms": [params.keyword or params.handle],
        "maxTweets": params.effective_limit,
        "searchMode": "live",
    }


def build_reddit_input(params: ScrapeParams) -> dict[str, Any]:
    limit = params.effective_limit
    query = quote(params.keyword or params.handle, safe="")
    return {
        "startUrls": [
            {"url": f"https://www.reddit.com/search.json?q={query}&sort=new&limit={limit}"}
        ],
        "maxItems": limit,
        "sort": "new",
    }


# =============================================================================
# ACTOR REGISTRY
# =============================================================================

ACTOR_REGISTRY: dict[str, ActorSpec] = {
    Platform.INSTAGRAM: ActorSpec(
        platform=Platform.INSTAGRAM,
        actor_id="menoob/pldt-instagram-scraper",
        build_input=build_instagram_input,
        description="Instagram profile posts",
    ),
    Platform.TIKTOK: ActorSpec(
        platform=Platform.TIKTOK,
        actor_id="menoob/pldt-tiktok-scraper",
        build_input=build_tiktok_input,
        description="TikTok profile videos",
    ),
    Platform.FACEBOOK: ActorSpec(
        platform=Platform.FACEBOOK,
        actor_id="menoob/facebook-banking-scraper",
        build_input=build_facebook_input,
        description="Facebook page posts and engagement",
    ),
    Platform.YOUTUBE: ActorSpec(
        platform=Platform.YOUTUBE,
        actor_id="menoob/pldt-youtube-scraper",
        build_input=build_youtube_input,
        description="YouTube channel videos via page data extraction",
    ),
    Platform.TWITTER: ActorSpec(
        platform=Platform.TWITTER,
        actor_id="menoob/pldt-twitter-scraper",
        build_input=build_twitter_input,
        description="Tweets by keyword, else by handle",
    ),
    Platform.REDDIT: ActorSpec(
        platform=Platform.REDDIT,
        actor_id="menoob/pldt-reddit-scraper",
        build_input=build_reddit_input,
        description="Reddit search via public JSON API",
    ),
}


def get_actor_spec(platform: str) -> ActorSpec | None:
    return ACTOR_REGISTRY.get(platform)


# =============================================================================
# PROVIDER
# =============================================================================


class ApifyProvider(ScrapeProvider):
    """Scrape provider backed by Apify managed actors."""

    name = "apify"

    def __init__(self, client: ApifyClient | None = None):
        self._client = client

    def supports(self, platform: str) -> bool:
        spec = get_actor_spec(platform)
        return spec is not None and spec.platform == platform

    def scrape(self, platform: str, params: ScrapeParams) -> ProviderResult:
        spec = get_actor_spec(platform)
        if spec is None:
            return self.failure(f"No Apify actor configured for platform: {platform}")

        try:
            client = self._client or _build_client()
            input_json = spec.build_input(params)

            logger.info(
                "Running actor %s for %s (%s)",
                spec.actor_id,
                params.handle,
                platform,
            )
            run_info = client.run_actor(
                spec.actor_id,
                input_json,
                timeout_s=getattr(settings, "APIFY_RUN_TIMEOUT_S", 300),
            )
            if not run_info.is_success():
                error = f"Actor run failed: {run_info.status}"
                if run_info.error_message:
                    error += f" - {run_info.error_message}"
                logger.warning("Apify run %s for %s (%s): %s", run_info.run_id, params.handle, platform, error)
                return self.failure(error)

            if not run_info.dataset_id:
                return self.failure(f"Actor run {run_info.run_id} has no dataset")

            items = client.fetch_dataset_items(run_info.dataset_id, limit=params.effective_limit)
        except Exception as e:
            logger.exception("Apify scrape failed for %s (%s)", params.handle, platform)
            return self.failure(str(e) or "Unknown Apify error")

        logger.info("Apify returned %d items for %s (%s)", len(items), params.handle, platform)
        return ProviderResult(
            success=True,
            items=list(items),
            source=self.name,
            dataset_id=run_info.dataset_id,
        )


def _build_client() -> ApifyClient:
    """
    Create an Apify client from settings.

    Raises:
        ValueError: If APIFY_TOKEN is not configured
    """
    token = getattr(settings, "APIFY_TOKEN", None)
    if not token:
        raise ValueError("APIFY_TOKEN is not configured")
    base_url = getattr(settings, "APIFY_BASE_URL", "https://api.apify.com")
    return ApifyClient(token=token, base_url=base_url)
