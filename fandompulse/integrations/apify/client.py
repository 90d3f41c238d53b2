"""
Apify API v2 client.

Primitives used by the managed-actor provider:
1. start_actor_run(actor_id, input_json) -> RunInfo
2. poll_run(run_id, timeout_s, interval_s) -> RunInfo
3. fetch_dataset_items(dataset_id, limit, offset) -> list[dict]
4. run_actor(actor_id, input_json, timeout_s) -> RunInfo (start + poll)

Endpoints per Apify API v2 docs (https://docs.apify.com/api/v2):
- POST /v2/acts/{actorId}/runs - start actor run
- GET /v2/actor-runs/{runId} - get run status
- GET /v2/datasets/{datasetId}/items - fetch dataset items

GUARDRAILS:
All API calls are guarded by require_apify_enabled() from fandompulse.core.guardrails.
If APIFY_ENABLED=false (default), any API call raises ApifyDisabledError.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.parse import quote

import requests

from fandompulse.core.guardrails import require_apify_enabled

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_S = 30

# Friendlier messages for the status codes operators actually hit
_STATUS_MESSAGES = {
    401: "Apify authentication failed (401). The token may be invalid or expired.",
    402: "Apify payment required (402). Account credits are exhausted.",
    403: "Apify access denied (403). The account cannot run this actor.",
    404: "Apify resource not found (404).",
}


class ApifyError(Exception):
    """Raised when Apify API returns an error response."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body[:500] if body else None  # Trim body for logging
        super().__init__(message)


class ApifyTimeoutError(ApifyError):
    """Raised when polling for run completion times out."""

    pass


@dataclass
class RunInfo:
    """
    Information about an Apify actor run.

    Terminal statuses per Apify API: SUCCEEDED, FAILED, TIMED-OUT, ABORTED.
    """

    run_id: str
    actor_id: str
    status: str
    dataset_id: str | None
    started_at: datetime | None
    finished_at: datetime | None
    error_message: str | None = None

    def is_terminal(self) -> bool:
        """Return True if run is in a terminal state."""
        return self.status in ("SUCCEEDED", "FAILED", "TIMED-OUT", "ABORTED")

    def is_success(self) -> bool:
        """Return True if run succeeded."""
        return self.status == "SUCCEEDED"


class ApifyClient:
    """
    HTTP client for Apify API v2.

    Authentication via Bearer token. Every request carries a timeout so a
    stalled Apify endpoint surfaces as ApifyError instead of hanging a worker.
    """

    def __init__(self, token: str, base_url: str = "https://api.apify.com"):
        if not token:
            raise ValueError("Apify token is required")
        self.token = token
        self.base_url = base_url.rstrip("/")
        self._session = requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        })

    def _request(self, method: str, url: str, label: str, **kwargs: Any) -> requests.Response:
        """Send one request with start/end logging and uniform error mapping."""
        require_apify_enabled()

        call_start_ms = time.monotonic() * 1000
        logger.info("APIFY_CALL_START %s url=%s", label, url)

        try:
            response = self._session.request(method, url, timeout=REQUEST_TIMEOUT_S, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(
                "APIFY_CALL_END %s status=TIMEOUT duration_ms=%d",
                label,
                int(time.monotonic() * 1000 - call_start_ms),
            )
            raise ApifyError("Connection to Apify API timed out") from e
        except requests.RequestException as e:
            logger.error(
                "APIFY_CALL_END %s status=ERROR duration_ms=%d error=%s",
                label,
                int(time.monotonic() * 1000 - call_start_ms),
                str(e),
            )
            raise ApifyError(f"Request failed: {e}") from e

        duration_ms = int(time.monotonic() * 1000 - call_start_ms)
        if not response.ok:
            logger.error(
                "APIFY_CALL_END %s status=HTTP_ERROR duration_ms=%d http_status=%d error=%s",
                label,
                duration_ms,
                response.status_code,
                response.text[:200],
            )
            message = _STATUS_MESSAGES.get(
                response.status_code,
                f"Apify request failed: HTTP {response.status_code}",
            )
            raise ApifyError(message, status_code=response.status_code, body=response.text)

        logger.info("APIFY_CALL_END %s status=OK duration_ms=%d", label, duration_ms)
        return response

    def start_actor_run(self, actor_id: str, input_json: dict[str, Any]) -> RunInfo:
        """
        Start an actor run.

        Raises:
            ApifyDisabledError: If APIFY_ENABLED=false
            ApifyError: If API returns an error
        """
        # Actor ids contain a slash ("owner/name"); encode it as one path segment
        encoded_actor_id = quote(actor_id, safe="")
        url = f"{self.base_url}/v2/acts/{encoded_actor_id}/runs"

        response = self._request("POST", url, f"start actor_id={actor_id}", json=input_json)
        run_info = self._parse_run_info(response.json().get("data", {}), actor_id)
        logger.info(
            "Actor run started: actor_id=%s run_id=%s status=%s",
            actor_id,
            run_info.run_id,
            run_info.status,
        )
        return run_info

    def poll_run(
        self,
        run_id: str,
        timeout_s: int = 180,
        interval_s: int = 3,
    ) -> RunInfo:
        """
        Poll run status until terminal state or timeout.

        Raises:
            ApifyTimeoutError: If polling times out
            ApifyError: If API returns an error
        """
        url = f"{self.base_url}/v2/actor-runs/{run_id}"
        start_time = time.monotonic()

        while True:
            elapsed = time.monotonic() - start_time
            if elapsed > timeout_s:
                raise ApifyTimeoutError(
                    f"Polling timed out after {timeout_s}s for run_id={run_id}"
                )

            response = self._request("GET", url, f"poll run_id={run_id}")
            data = response.json().get("data", {})
            run_info = self._parse_run_info(data, data.get("actId", ""))

            if run_info.is_terminal():
                logger.info("Run completed: run_id=%s, status=%s", run_id, run_info.status)
                return run_info

            logger.debug(
                "Run still in progress: run_id=%s, status=%s, elapsed=%.1fs",
                run_id,
                run_info.status,
                elapsed,
            )
            time.sleep(interval_s)

    def run_actor(
        self,
        actor_id: str,
        input_json: dict[str, Any],
        timeout_s: int = 300,
    ) -> RunInfo:
        """Start an actor run and block until it reaches a terminal state."""
        run_info = self.start_actor_run(actor_id, input_json)
        if run_info.is_terminal():
            return run_info
        return self.poll_run(run_info.run_id, timeout_s=timeout_s)

    def fetch_dataset_items(
        self,
        dataset_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Fetch items from a dataset.

        Raises:
            ApifyError: If API returns an error
        """
        url = f"{self.base_url}/v2/datasets/{dataset_id}/items"
        response = self._request(
            "GET",
            url,
            f"dataset dataset_id={dataset_id}",
            params={"limit": limit, "offset": offset},
        )

        # Dataset items endpoint returns array directly, not wrapped in "data"
        items = response.json()
        if isinstance(items, dict):
            items = items.get("items", [])

        logger.info("Fetched %d items from dataset %s", len(items), dataset_id)
        return items

    def _parse_run_info(self, data: dict[str, Any], actor_id: str) -> RunInfo:
        """Parse API response into RunInfo."""
        return RunInfo(
            run_id=data.get("id", ""),
            actor_id=actor_id or data.get("actId", ""),
            status=data.get("status", "UNKNOWN"),
            dataset_id=data.get("defaultDatasetId"),
            started_at=_parse_timestamp(data.get("startedAt")),
            finished_at=_parse_timestamp(data.get("finishedAt")),
            error_message=data.get("statusMessage") if data.get("status") == "FAILED" else None,
        )


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
