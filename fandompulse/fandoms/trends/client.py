"""
Google Trends batch client.

Comparative interest values are only comparable inside one request, and one
request holds at most TRENDS_BATCH_SIZE keywords. For larger keyword sets an
anchor keyword is repeated in every batch and each batch is rescaled onto the
first batch's anchor series. A final pass rescales the whole result set so
its global maximum is 100.

Flow per batch:
1. GET /trends/api/explore -> TIMESERIES widget (request + token)
2. GET /trends/api/widgetdata/multiline -> timelineData

HTTP 429 is retried exactly once after TRENDS_RETRY_DELAY_S; a second 429
fails that batch only.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any

import requests
from django.conf import settings

from fandompulse.fandoms.normalization.fields import round_half_up

logger = logging.getLogger(__name__)

TRENDS_BASE_URL = "https://trends.google.com"
EXPLORE_URL = f"{TRENDS_BASE_URL}/trends/api/explore"
MULTILINE_URL = f"{TRENDS_BASE_URL}/trends/api/widgetdata/multiline"
COMPAREDGEO_URL = f"{TRENDS_BASE_URL}/trends/api/widgetdata/comparedgeo"

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
BASE_PARAMS = {"hl": "en-US", "tz": "-480"}

# Issued when the landing page sets no consent cookie; explore degrades without it
CONSENT_COOKIES = {
    "CONSENT": "PENDING+999",
    "SOCS": "CAISNQgDEitib3FfaWRlbnRpdHlmcm9udGVuZHVpc2VydmVyXzIwMjMwODI5LjA3X3AxGgJlbiACGgYIgJnPpwY",
}

NO_DATA = "No data"
ANCHOR_NO_SIGNAL = "Anchor returned no signal in batch"


class TrendsError(Exception):
    """Raised when a trends request fails; caught per batch."""


@dataclass
class TrendDataPoint:
    date: date
    value: int


@dataclass
class TrendResult:
    keyword: str
    geo: str
    data_points: list[TrendDataPoint] = field(default_factory=list)
    error: str | None = None

    @property
    def total(self) -> int:
        return sum(p.value for p in self.data_points)

    @property
    def peak(self) -> int:
        return max((p.value for p in self.data_points), default=0)


@dataclass
class RegionalInterest:
    region_code: str
    region_name: str
    interest_value: int


@dataclass
class RegionalTrendResult:
    keyword: str
    geo: str
    timeframe: str
    regions: list[RegionalInterest] = field(default_factory=list)
    error: str | None = None


# =============================================================================
# PURE HELPERS
# =============================================================================


def clean_json(text: str) -> str:
    """Strip the anti-XSSI prefix (")]}'," etc.) before the first '{'."""
    index = text.find("{")
    return text[index:] if index >= 0 else text


def rescale_to_anchor(
    points: list[TrendDataPoint],
    reference_anchor: list[TrendDataPoint],
    batch_anchor: list[TrendDataPoint],
) -> list[TrendDataPoint]:
    """
    Put a later batch's series on the reference batch's scale.

    scale = max(reference anchor) / max(this batch's anchor), both floored at 1.
    """
    reference_max = max([p.value for p in reference_anchor] + [1])
    batch_max = max([p.value for p in batch_anchor] + [1])
    scale = reference_max / batch_max
    return [TrendDataPoint(date=p.date, value=round_half_up(p.value * scale)) for p in points]


def rescale_to_global_max(results: list[TrendResult]) -> list[TrendResult]:
    """Rescale every series so the largest value in the set maps to 100. A zero maximum leaves values as-is."""
    global_max = max((r.peak for r in results), default=0)
    if global_max <= 0:
        return results
    return [
        replace(
            r,
            data_points=[
                TrendDataPoint(date=p.date, value=round_half_up(p.value / global_max * 100))
                for p in r.data_points
            ],
        )
        for r in results
    ]


def _point_date(timestamp: Any) -> date:
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).date()


# =============================================================================
# CLIENT
# =============================================================================


class GoogleTrendsClient:
    """Unauthenticated Google Trends client with one cookie session per instance."""

    def __init__(
        self,
        session: requests.Session | None = None,
        geo: str | None = None,
        timeframe: str | None = None,
        batch_size: int | None = None,
        anchors: list[str] | None = None,
    ):
        self._session = session or requests.Session()
        self.geo = geo or getattr(settings, "TRENDS_GEO", "PH")
        self.timeframe = timeframe or getattr(settings, "TRENDS_TIMEFRAME", "today 3-m")
        self.batch_size = batch_size or getattr(settings, "TRENDS_BATCH_SIZE", 5)
        self.anchors = anchors if anchors is not None else list(getattr(settings, "TRENDS_ANCHOR_KEYWORDS", []))
        self.timeout_s = getattr(settings, "TRENDS_TIMEOUT_S", 15)
        self.retry_delay_s = getattr(settings, "TRENDS_RETRY_DELAY_S", 12)
        self.batch_delay_s = getattr(settings, "TRENDS_BATCH_DELAY_S", 8)
        self.widget_delay_s = getattr(settings, "TRENDS_WIDGET_DELAY_S", 2)
        self.session_delay_s = getattr(settings, "TRENDS_SESSION_DELAY_S", 1.5)
        self.regional_delay_s = getattr(settings, "TRENDS_REGIONAL_DELAY_S", 10)
        self._session_started = False

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def start_session(self) -> None:
        """Hit the landing page for cookies and add consent cookies if none were set."""
        try:
            self._session.get(
                f"{TRENDS_BASE_URL}/trends/",
                params={"geo": self.geo},
                headers=self._headers(),
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            logger.warning("Trends session request failed: %s", e)

        if "CONSENT" not in self._session.cookies:
            for name, value in CONSENT_COOKIES.items():
                self._session.cookies.set(name, value, domain=".google.com")

        self._session_started = True
        time.sleep(self.session_delay_s)

    def _ensure_session(self) -> None:
        if not self._session_started:
            self.start_session()

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            "Accept-Language": "en-US,en;q=0.9",
            "Referer": f"{TRENDS_BASE_URL}/trends/explore",
        }

    def _get_json(self, url: str, params: dict[str, str], label: str) -> dict[str, Any]:
        """
        GET a trends endpoint and parse its JSON body.

        Raises:
            TrendsError: On non-200 status (after one 429 retry) or bad JSON
            requests.RequestException: On transport errors
        """
        query = {**BASE_PARAMS, **params}
        response = self._session.get(url, params=query, headers=self._headers(), timeout=self.timeout_s)
        if response.status_code == 429:
            logger.warning("Trends 429 on %s, retrying once in %ss", label, self.retry_delay_s)
            time.sleep(self.retry_delay_s)
            response = self._session.get(url, params=query, headers=self._headers(), timeout=self.timeout_s)

        if response.status_code != 200:
            raise TrendsError(f"HTTP {response.status_code} on {label}")

        try:
            return json.loads(clean_json(response.text))
        except ValueError as e:
            raise TrendsError(f"Malformed JSON on {label}") from e

    def _explore_widget(self, keywords: list[str], widget_id: str) -> dict[str, Any]:
        request = {
            "comparisonItem": [
                {"keyword": keyword, "geo": self.geo, "time": self.timeframe} for keyword in keywords
            ],
            "category": 0,
            "property": "",
        }
        explore = self._get_json(EXPLORE_URL, {"req": json.dumps(request)}, "explore")
        for widget in explore.get("widgets") or []:
            if widget.get("id") == widget_id:
                return widget
        raise TrendsError(f"No {widget_id} widget")

    # -------------------------------------------------------------------------
    # Interest over time
    # -------------------------------------------------------------------------

    def fetch_batch(self, keywords: list[str]) -> dict[str, TrendResult]:
        """
        Query one batch (at most batch_size keywords) on a shared scale.

        A failed batch yields an error result for each of its keywords.
        """
        self._ensure_session()
        if not keywords:
            return {}

        try:
            widget = self._explore_widget(keywords, "TIMESERIES")
            time.sleep(self.widget_delay_s)
            data = self._get_json(
                MULTILINE_URL,
                {"req": json.dumps(widget["request"]), "token": widget["token"]},
                "multiline",
            )
            timeline = (data.get("default") or {}).get("timelineData") or []

            results = {}
            for index, keyword in enumerate(keywords):
                points = []
                for point in timeline:
                    has_data = point.get("hasData") or []
                    values = point.get("value") or []
                    value = values[index] if index < len(has_data) and has_data[index] else 0
                    points.append(TrendDataPoint(date=_point_date(point["time"]), value=int(value)))
                results[keyword] = TrendResult(
                    keyword=keyword,
                    geo=self.geo,
                    data_points=points,
                    error=None if points else NO_DATA,
                )
        except (TrendsError, requests.RequestException, KeyError, TypeError, ValueError, IndexError) as e:
            logger.warning("Trends batch [%s] failed: %s", ", ".join(keywords), e)
            return {k: TrendResult(keyword=k, geo=self.geo, error=str(e) or NO_DATA) for k in keywords}

        logger.info("Trends batch [%s]: %d data points each", ", ".join(keywords), len(timeline))
        return results

    def fetch_comparative(self, keywords: list[str]) -> list[TrendResult]:
        """
        Fetch interest over time for any number of keywords on one relative scale.

        Returns one TrendResult per distinct keyword, in input order. Keywords
        whose series could not be obtained carry an error and no points.
        """
        keywords = list(dict.fromkeys(keywords))
        if not keywords:
            return []

        self._ensure_session()

        if len(keywords) <= self.batch_size:
            batch = self.fetch_batch(keywords)
            return rescale_to_global_max([batch[k] for k in keywords])

        anchor = next((k for k in keywords if k in self.anchors), keywords[0])
        others = [k for k in keywords if k != anchor]
        per_batch = max(self.batch_size - 1, 1)

        first_batch = [anchor] + others[:per_batch]
        collected = self.fetch_batch(first_batch)

        if collected[anchor].peak == 0:
            best = max(first_batch, key=lambda k: collected[k].total)
            if collected[best].peak > 0:
                logger.info("Trends anchor %s read zero, using %s", anchor, best)
                anchor = best

        # The reference scale comes from the first batch whose anchor has signal.
        reference = collected[anchor].data_points if collected[anchor].peak > 0 else None
        if reference is None:
            logger.warning(
                "Trends anchor %s has no signal in first batch: %s",
                anchor,
                collected[anchor].error or "zero interest",
            )
        else:
            logger.info("Trends anchor: %s (total interest %d)", anchor, collected[anchor].total)

        remaining = others[per_batch:]
        for start in range(0, len(remaining), per_batch):
            time.sleep(self.batch_delay_s)
            batch = remaining[start:start + per_batch]
            data = self.fetch_batch([anchor] + batch)
            batch_anchor = data[anchor]

            if reference is None and batch_anchor.peak > 0:
                logger.info("Trends anchor %s adopted as reference from batch [%s]", anchor, ", ".join(batch))
                reference = batch_anchor.data_points
                collected[anchor] = batch_anchor

            for keyword in batch:
                result = data[keyword]
                if result.error or not result.data_points:
                    collected[keyword] = result
                elif reference is None or batch_anchor.peak == 0:
                    collected[keyword] = TrendResult(keyword=keyword, geo=self.geo, error=ANCHOR_NO_SIGNAL)
                else:
                    collected[keyword] = TrendResult(
                        keyword=keyword,
                        geo=self.geo,
                        data_points=rescale_to_anchor(result.data_points, reference, batch_anchor.data_points),
                    )

        return rescale_to_global_max([collected[k] for k in keywords])

    # -------------------------------------------------------------------------
    # Interest by region
    # -------------------------------------------------------------------------

    def fetch_regional_interest(self, keyword: str) -> RegionalTrendResult:
        """Interest by sub-region for one keyword, highest first."""
        result = RegionalTrendResult(keyword=keyword, geo=self.geo, timeframe=self.timeframe)
        try:
            self._ensure_session()
            widget = self._explore_widget([keyword], "GEO_MAP")
            time.sleep(self.widget_delay_s)
            data = self._get_json(
                COMPAREDGEO_URL,
                {"req": json.dumps(widget["request"]), "token": widget["token"]},
                "comparedgeo",
            )
        except (TrendsError, requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.warning("Regional trends failed for %s: %s", keyword, e)
            result.error = str(e)
            return result

        geo_map = (data.get("default") or {}).get("geoMapData") or []
        if not geo_map:
            result.error = "No regional data points"
            return result

        for entry in geo_map:
            value = entry.get("value")
            if isinstance(value, list):
                value = value[0] if value else 0
            result.regions.append(
                RegionalInterest(
                    region_code=entry.get("geoCode") or "",
                    region_name=entry.get("geoName") or "",
                    interest_value=int(value or 0),
                )
            )
        result.regions.sort(key=lambda r: r.interest_value, reverse=True)
        logger.info(
            "Regional trends %s: %d regions, top=%s",
            keyword,
            len(result.regions),
            result.regions[0].region_name,
        )
        return result

    def fetch_regional_interest_batch(self, keywords: list[str]) -> list[RegionalTrendResult]:
        """Sequential regional queries with TRENDS_REGIONAL_DELAY_S between keywords."""
        results = []
        for index, keyword in enumerate(keywords):
            if index > 0:
                self.wait_between_regional()
            results.append(self.fetch_regional_interest(keyword))
        return results

    def wait_between_regional(self) -> None:
        time.sleep(self.regional_delay_s)
