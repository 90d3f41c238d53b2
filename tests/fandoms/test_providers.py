"""
Tests for the scrape providers.

HTTP is mocked: SociaVault gets a MagicMock session, Apify a MagicMock client.
"""

from unittest.mock import MagicMock

import pytest
import requests

from fandompulse.fandoms.providers.apify import (
    ACTOR_REGISTRY,
    ApifyProvider,
    build_reddit_input,
    build_twitter_input,
    build_youtube_input,
    _build_client,
)
from fandompulse.fandoms.providers.base import ScrapeParams
from fandompulse.fandoms.providers.sociavault import (
    SociavaultProvider,
    build_headers,
    build_proxy_url,
    indexed_object_to_array,
    reshape_reddit_posts,
    reshape_tiktok_profile,
    reshape_twitter_tweets,
)
from fandompulse.integrations.apify.client import ApifyError, RunInfo


# =============================================================================
# FIXTURES
# =============================================================================


def sv_response(data=None, success=True, status_code=200):
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.text = "body"
    response.json.return_value = {"success": success, "data": data}
    return response


def run_info(status="SUCCEEDED", dataset_id="ds1", error_message=None):
    return RunInfo(
        run_id="run1",
        actor_id="menoob/pldt-tiktok-scraper",
        status=status,
        dataset_id=dataset_id,
        started_at=None,
        finished_at=None,
        error_message=error_message,
    )


TIKTOK_DATA = {
    "user": {"uniqueId": "bini_ph", "nickname": "BINI"},
    "stats": {"followerCount": 250000, "heartCount": 9, "videoCount": 2},
    "itemList": {
        "1": {"id": "v2", "desc": "second #bini", "stats": {"diggCount": 5}},
        "0": {"id": "v1", "desc": "first", "stats": {"diggCount": 7}, "video": {"id": "x"}},
    },
}


# =============================================================================
# SOCIAVAULT HELPERS
# =============================================================================


class TestSociavaultHelpers:
    def test_indexed_object_sorted_numerically(self):
        value = {"10": {"n": 10}, "2": {"n": 2}, "x": {"n": -1}, "3": "skip"}
        assert indexed_object_to_array(value) == [{"n": 2}, {"n": 10}]

    def test_indexed_object_list_and_garbage(self):
        assert indexed_object_to_array([{"a": 1}, "b"]) == [{"a": 1}]
        assert indexed_object_to_array(None) == []

    def test_proxy_url(self, settings):
        settings.MONITOR_PROXY_URL = "http://monitor:3080/"
        assert build_proxy_url("/tiktok/profile") == "http://monitor:3080/proxy/v1/scrape/tiktok/profile"

    def test_headers(self):
        headers = build_headers()
        assert headers["X-API-Key"] == "test-sociavault-key"
        assert headers["X-App-Name"] == "pldt-fandom"
        assert headers["X-Monitor-Key"] == "test-monitor-key"
        assert headers["Content-Type"] == "application/json"


class TestSociavaultReshape:
    def test_tiktok_profile_item_first_then_videos_in_index_order(self):
        items = reshape_tiktok_profile(TIKTOK_DATA)

        assert items[0]["type"] == "profile"
        assert items[0]["followerCount"] == 250000
        assert [i["id"] for i in items[1:]] == ["v1", "v2"]
        assert items[1]["authorMeta"]["name"] == "bini_ph"
        assert items[1]["authorMeta"]["fans"] == 250000
        assert items[1]["webVideoUrl"] == "https://www.tiktok.com/@bini_ph/video/v1"
        assert items[1]["diggCount"] == 7

    def test_reddit_posts(self):
        data = {
            "posts": {
                "0": {
                    "id": "abc",
                    "title": "BINI concert thread",
                    "permalink": "/r/ppop/comments/abc",
                    "score": 42,
                    "num_comments": 7,
                    "author": "fan",
                    "created_utc": 1767225600,
                }
            }
        }
        item = reshape_reddit_posts(data)[0]
        assert item["upVotes"] == 42
        assert item["numberOfComments"] == 7
        assert item["url"] == "https://www.reddit.com/r/ppop/comments/abc"
        assert item["createdAt"] == "2026-01-01T00:00:00Z"

    def test_twitter_legacy_flattened(self):
        data = {
            "tweets": {
                "0": {
                    "rest_id": "123",
                    "legacy": {
                        "full_text": "hello #BINI",
                        "favorite_count": 10,
                        "retweet_count": 2,
                        "reply_count": 1,
                        "created_at": "Wed Oct 10 20:19:24 +0000 2018",
                        "entities": {"hashtags": [{"text": "BINI"}]},
                    },
                    "core": {
                        "user_results": {
                            "result": {"legacy": {"screen_name": "fan", "followers_count": 3000}}
                        }
                    },
                }
            }
        }
        item = reshape_twitter_tweets(data)[0]
        assert item["id"] == "123"
        assert item["favorite_count"] == 10
        assert item["url"] == "https://x.com/fan/status/123"
        assert item["user"]["followers_count"] == 3000
        assert item["entities"]["hashtags"] == [{"text": "BINI"}]


# =============================================================================
# SOCIAVAULT PROVIDER
# =============================================================================


class TestSociavaultProvider:
    def test_supports_all_platforms(self):
        provider = SociavaultProvider(session=MagicMock())
        for platform in ("reddit", "tiktok", "instagram", "youtube", "twitter", "facebook"):
            assert provider.supports(platform)
        assert not provider.supports("myspace")

    def test_tiktok_scrape_success(self):
        session = MagicMock()
        session.get.return_value = sv_response(TIKTOK_DATA)
        provider = SociavaultProvider(session=session)

        result = provider.scrape("tiktok", ScrapeParams(handle="@bini_ph"))

        assert result.success
        assert result.source == "sociavault"
        assert len(result.items) == 3
        _, kwargs = session.get.call_args
        assert kwargs["params"] == {"handle": "bini_ph"}
        assert kwargs["timeout"] == 30

    def test_http_error_is_failure(self):
        session = MagicMock()
        session.get.return_value = sv_response(status_code=500)
        result = SociavaultProvider(session=session).scrape("tiktok", ScrapeParams(handle="x"))

        assert not result.success
        assert "500" in result.error

    def test_falsy_success_is_failure(self):
        session = MagicMock()
        session.get.return_value = sv_response({"user": {}}, success=False)
        result = SociavaultProvider(session=session).scrape("tiktok", ScrapeParams(handle="x"))
        assert not result.success
        assert "SociaVault API error" in result.error

    def test_missing_data_is_failure(self):
        session = MagicMock()
        session.get.return_value = sv_response(None)
        result = SociavaultProvider(session=session).scrape("reddit", ScrapeParams(handle="x"))
        assert not result.success
        assert "missing 'data'" in result.error

    def test_timeout_is_failure(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.Timeout("slow")
        result = SociavaultProvider(session=session).scrape("twitter", ScrapeParams(handle="x"))
        assert not result.success
        assert "timed out" in result.error

    def test_missing_monitor_key_is_failure(self, settings):
        settings.MONITOR_API_KEY = ""
        session = MagicMock()
        result = SociavaultProvider(session=session).scrape("tiktok", ScrapeParams(handle="x"))

        assert not result.success
        assert "MONITOR_API_KEY" in result.error
        session.get.assert_not_called()

    def test_instagram_falls_back_to_profile(self):
        profile = {
            "user": {
                "username": "sb19official",
                "edge_followed_by": {"count": 900000},
                "edge_owner_to_timeline_media": {
                    "edges": [{"node": {"id": "p1", "shortcode": "abc", "is_video": True}}]
                },
            }
        }
        session = MagicMock()
        session.get.side_effect = [sv_response(status_code=404), sv_response(profile)]

        result = SociavaultProvider(session=session).scrape("instagram", ScrapeParams(handle="sb19official"))

        assert result.success
        assert result.items[0]["id"] == "p1"
        assert result.items[0]["type"] == "Video"
        assert result.items[0]["ownerFollowerCount"] == 900000
        assert session.get.call_args_list[1][0][0].endswith("/instagram/profile")

    def test_youtube_tolerates_videos_failure_with_channel_item(self):
        channel = {"name": "SB19", "channelId": "UC1", "subscriberCount": 2000000, "viewCount": 5}
        session = MagicMock()
        session.get.side_effect = [sv_response(channel), sv_response(status_code=502)]

        result = SociavaultProvider(session=session).scrape("youtube", ScrapeParams(handle="SB19Official"))

        assert result.success
        assert len(result.items) == 1
        assert result.items[0]["id"] == "UC1"
        assert result.items[0]["channelSubscribers"] == 2000000

    def test_empty_payload_is_not_success(self):
        session = MagicMock()
        session.get.return_value = sv_response({"posts": {}})
        result = SociavaultProvider(session=session).scrape("reddit", ScrapeParams(handle="bini"))
        assert not result.success
        assert result.items == []


# =============================================================================
# APIFY PROVIDER
# =============================================================================


class TestApifyInputs:
    def test_registry_covers_all_platforms(self):
        assert set(ACTOR_REGISTRY) == {"instagram", "tiktok", "facebook", "youtube", "twitter", "reddit"}

    def test_twitter_prefers_keyword(self):
        assert build_twitter_input(ScrapeParams(handle="h", keyword="BINI"))["searchTerms"] == ["BINI"]
        assert build_twitter_input(ScrapeParams(handle="h"))["searchTerms"] == ["h"]

    def test_youtube_handle_url(self):
        payload = build_youtube_input(ScrapeParams(handle="@SB19Official", limit=5))
        assert payload["startUrls"] == [{"url": "https://www.youtube.com/@SB19Official"}]
        assert payload["maxResults"] == 5

    def test_reddit_search_url(self):
        payload = build_reddit_input(ScrapeParams(handle="h", keyword="BINI Blooms"))
        assert payload["startUrls"][0]["url"] == (
            "https://www.reddit.com/search.json?q=BINI%20Blooms&sort=new&limit=20"
        )


class TestApifyProvider:
    def test_success_fetches_dataset(self):
        client = MagicMock()
        client.run_actor.return_value = run_info()
        client.fetch_dataset_items.return_value = [{"id": "v1"}]

        result = ApifyProvider(client=client).scrape("tiktok", ScrapeParams(handle="@bini_ph", limit=10))

        assert result.success
        assert result.items == [{"id": "v1"}]
        assert result.dataset_id == "ds1"
        assert result.source == "apify"
        actor_id, input_json = client.run_actor.call_args[0]
        assert actor_id == "menoob/pldt-tiktok-scraper"
        assert input_json["profiles"] == ["bini_ph"]
        client.fetch_dataset_items.assert_called_once_with("ds1", limit=10)

    def test_failed_run_reports_status(self):
        client = MagicMock()
        client.run_actor.return_value = run_info(status="FAILED", error_message="blocked")

        result = ApifyProvider(client=client).scrape("tiktok", ScrapeParams(handle="x"))

        assert not result.success
        assert result.error == "Actor run failed: FAILED - blocked"
        client.fetch_dataset_items.assert_not_called()

    def test_client_error_is_caught(self):
        client = MagicMock()
        client.run_actor.side_effect = ApifyError("Apify payment required (402).", status_code=402)

        result = ApifyProvider(client=client).scrape("reddit", ScrapeParams(handle="x"))

        assert not result.success
        assert "402" in result.error

    def test_disabled_apify_is_failure(self, settings):
        settings.APIFY_TOKEN = "token"
        settings.APIFY_ENABLED = False
        result = ApifyProvider().scrape("tiktok", ScrapeParams(handle="x"))
        assert not result.success
        assert "disabled" in result.error

    def test_missing_token(self, settings):
        settings.APIFY_TOKEN = ""
        with pytest.raises(ValueError, match="APIFY_TOKEN is not configured"):
            _build_client()
