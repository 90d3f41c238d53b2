"""
Unit tests for Apify client.

Tests URL building, error handling, and response parsing.
Uses mocked HTTP (no network calls).

Client methods require APIFY_ENABLED=true; the enable_apify fixture
overrides the setting for these tests.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from fandompulse.core.guardrails import ApifyDisabledError
from fandompulse.integrations.apify.client import (
    REQUEST_TIMEOUT_S,
    ApifyClient,
    ApifyError,
    ApifyTimeoutError,
    RunInfo,
)


@pytest.fixture
def enable_apify(settings):
    """Enable APIFY_ENABLED for tests that need to call client methods."""
    settings.APIFY_ENABLED = True
    yield
    settings.APIFY_ENABLED = False


def ok_response(payload):
    response = MagicMock()
    response.ok = True
    response.status_code = 200
    response.json.return_value = payload
    return response


def error_response(status_code, text="error"):
    response = MagicMock()
    response.ok = False
    response.status_code = status_code
    response.text = text
    return response


class TestApifyClientInit:
    def test_init_with_token(self):
        client = ApifyClient(token="test-token")
        assert client.token == "test-token"
        assert client.base_url == "https://api.apify.com"

    def test_init_with_custom_base_url(self):
        client = ApifyClient(token="test-token", base_url="https://custom.apify.com/")
        assert client.base_url == "https://custom.apify.com"  # Trailing slash stripped

    def test_init_without_token_raises(self):
        with pytest.raises(ValueError, match="token is required"):
            ApifyClient(token="")


class TestGuardrail:
    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_disabled_client_makes_no_request(self, mock_session_class, settings):
        settings.APIFY_ENABLED = False
        client = ApifyClient(token="test-token")

        with pytest.raises(ApifyDisabledError):
            client.start_actor_run("clockworks/tiktok-scraper", {})

        mock_session_class.return_value.request.assert_not_called()


@pytest.mark.usefixtures("enable_apify")
class TestApifyClientStartActorRun:
    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_start_actor_run_success(self, mock_session_class):
        mock_session = mock_session_class.return_value
        mock_session.request.return_value = ok_response(
            {
                "data": {
                    "id": "run123",
                    "status": "RUNNING",
                    "defaultDatasetId": "dataset456",
                    "startedAt": "2026-01-15T10:00:00.000Z",
                }
            }
        )

        client = ApifyClient(token="test-token")
        run_info = client.start_actor_run("clockworks/tiktok-scraper", {"profiles": ["bini_ph"]})

        assert run_info.run_id == "run123"
        assert run_info.actor_id == "clockworks/tiktok-scraper"
        assert run_info.status == "RUNNING"
        assert run_info.dataset_id == "dataset456"
        assert run_info.started_at == datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc)

        method, url = mock_session.request.call_args.args
        assert method == "POST"
        # Slash in the actor id is encoded as one path segment
        assert url == "https://api.apify.com/v2/acts/clockworks%2Ftiktok-scraper/runs"
        assert mock_session.request.call_args.kwargs["json"] == {"profiles": ["bini_ph"]}
        assert mock_session.request.call_args.kwargs["timeout"] == REQUEST_TIMEOUT_S

    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_known_status_gets_friendly_message(self, mock_session_class):
        mock_session_class.return_value.request.return_value = error_response(402, "credits")

        client = ApifyClient(token="test-token")
        with pytest.raises(ApifyError, match="payment required") as exc_info:
            client.start_actor_run("clockworks/tiktok-scraper", {})

        assert exc_info.value.status_code == 402
        assert exc_info.value.body == "credits"

    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_other_status(self, mock_session_class):
        mock_session_class.return_value.request.return_value = error_response(500, "x" * 900)

        client = ApifyClient(token="test-token")
        with pytest.raises(ApifyError, match="HTTP 500") as exc_info:
            client.start_actor_run("clockworks/tiktok-scraper", {})

        assert len(exc_info.value.body) == 500

    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_timeout(self, mock_session_class):
        mock_session_class.return_value.request.side_effect = requests.exceptions.Timeout()

        client = ApifyClient(token="test-token")
        with pytest.raises(ApifyError, match="timed out"):
            client.start_actor_run("clockworks/tiktok-scraper", {})

    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_request_exception(self, mock_session_class):
        mock_session_class.return_value.request.side_effect = requests.exceptions.ConnectionError("refused")

        client = ApifyClient(token="test-token")
        with pytest.raises(ApifyError, match="Request failed"):
            client.start_actor_run("clockworks/tiktok-scraper", {})


@pytest.mark.usefixtures("enable_apify")
class TestApifyClientPollRun:
    @patch("fandompulse.integrations.apify.client.time.sleep")
    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_poll_until_terminal(self, mock_session_class, mock_sleep):
        mock_session_class.return_value.request.side_effect = [
            ok_response({"data": {"id": "run123", "status": "RUNNING", "actId": "act1"}}),
            ok_response(
                {
                    "data": {
                        "id": "run123",
                        "status": "FAILED",
                        "actId": "act1",
                        "statusMessage": "blocked",
                        "finishedAt": "2026-01-15T10:05:00Z",
                    }
                }
            ),
        ]

        client = ApifyClient(token="test-token")
        run_info = client.poll_run("run123", timeout_s=60, interval_s=3)

        assert run_info.status == "FAILED"
        assert run_info.error_message == "blocked"
        assert run_info.finished_at == datetime(2026, 1, 15, 10, 5, tzinfo=timezone.utc)
        mock_sleep.assert_called_once_with(3)

    @patch("fandompulse.integrations.apify.client.time.monotonic")
    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_poll_timeout(self, mock_session_class, mock_monotonic):
        mock_monotonic.side_effect = [0, 100]

        client = ApifyClient(token="test-token")
        with pytest.raises(ApifyTimeoutError, match="timed out after 10s"):
            client.poll_run("run123", timeout_s=10)

    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_run_actor_skips_poll_when_terminal(self, mock_session_class):
        mock_session = mock_session_class.return_value
        mock_session.request.return_value = ok_response(
            {"data": {"id": "run123", "status": "SUCCEEDED", "defaultDatasetId": "ds1"}}
        )

        client = ApifyClient(token="test-token")
        run_info = client.run_actor("clockworks/tiktok-scraper", {})

        assert run_info.is_success()
        assert mock_session.request.call_count == 1


@pytest.mark.usefixtures("enable_apify")
class TestApifyClientFetchDatasetItems:
    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_array_response(self, mock_session_class):
        mock_session = mock_session_class.return_value
        mock_session.request.return_value = ok_response([{"id": "v1"}, {"id": "v2"}])

        client = ApifyClient(token="test-token")
        items = client.fetch_dataset_items("ds1", limit=20)

        assert [i["id"] for i in items] == ["v1", "v2"]
        assert mock_session.request.call_args.kwargs["params"] == {"limit": 20, "offset": 0}

    @patch("fandompulse.integrations.apify.client.requests.Session")
    def test_wrapped_response(self, mock_session_class):
        mock_session_class.return_value.request.return_value = ok_response({"items": [{"id": "v1"}]})

        client = ApifyClient(token="test-token")

        assert client.fetch_dataset_items("ds1") == [{"id": "v1"}]


class TestRunInfo:
    @pytest.mark.parametrize(
        "status,terminal,success",
        [
            ("SUCCEEDED", True, True),
            ("FAILED", True, False),
            ("TIMED-OUT", True, False),
            ("ABORTED", True, False),
            ("RUNNING", False, False),
        ],
    )
    def test_status_flags(self, status, terminal, success):
        run_info = RunInfo(
            run_id="run123",
            actor_id="act1",
            status=status,
            dataset_id=None,
            started_at=None,
            finished_at=None,
        )
        assert run_info.is_terminal() is terminal
        assert run_info.is_success() is success
