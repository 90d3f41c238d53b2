"""
Management command tests.

Tests verify:
- ingest_fleet resolves slugs, honours the active-run guard and prints a summary
- collect_trends resolves slugs and surfaces failures as CommandError
- discover_fandoms prints a table or JSON
"""

import json
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from fandompulse.fandoms.enums import ScrapeRunStatus
from fandompulse.fandoms.ingestion.discovery import FandomDiscovery
from fandompulse.fandoms.ingestion.service import IngestResult
from fandompulse.fandoms.models import ScrapeRun
from fandompulse.fandoms.trends.service import CollectTrendsResult


# =============================================================================
# ingest_fleet
# =============================================================================


@pytest.mark.django_db
@patch("fandompulse.fandoms.management.commands.ingest_fleet.signal.signal")
class TestIngestFleetCommand:
    @patch("fandompulse.fandoms.management.commands.ingest_fleet.ingest_fleet")
    def test_runs_fleet_and_prints_summary(self, mock_fleet, mock_signal, fandom, other_fandom):
        mock_fleet.return_value = [
            IngestResult(success=True, fandom_id=fandom.id, platform="tiktok", items_count=7, influencer_count=2),
            IngestResult(success=False, fandom_id=other_fandom.id, platform="youtube", error="Both providers failed."),
        ]
        out = StringIO()

        call_command("ingest_fleet", stdout=out)

        kwargs = mock_fleet.call_args.kwargs
        assert [e.slug for e in kwargs["entities"]] == ["bini-blooms", "sb19-atin"]
        assert kwargs["platform"] is None
        output = out.getvalue()
        assert f"FAILED {other_fandom.id}/youtube: Both providers failed." in output
        assert "succeeded=1, failed=1, new_items=7, influencers=2" in output

    @patch("fandompulse.fandoms.management.commands.ingest_fleet.ingest_fleet", return_value=[])
    def test_fandom_and_platform_filters(self, mock_fleet, mock_signal, fandom, other_fandom):
        call_command("ingest_fleet", "--fandom=sb19-atin", "--platform=instagram", stdout=StringIO())

        kwargs = mock_fleet.call_args.kwargs
        assert [e.slug for e in kwargs["entities"]] == ["sb19-atin"]
        assert kwargs["platform"] == "instagram"

    def test_unknown_slug(self, mock_signal, fandom):
        with pytest.raises(CommandError, match="Unknown fandom slug"):
            call_command("ingest_fleet", "--fandom=nope", stdout=StringIO())

    def test_no_fandoms(self, mock_signal):
        with pytest.raises(CommandError, match="No tracked fandoms"):
            call_command("ingest_fleet", stdout=StringIO())

    @patch("fandompulse.fandoms.management.commands.ingest_fleet.ingest_fleet", return_value=[])
    def test_active_scrape_requires_force(self, mock_fleet, mock_signal, fandom):
        ScrapeRun.objects.create(actor_id="sociavault>apify", fandom=fandom, status=ScrapeRunStatus.RUNNING)

        with pytest.raises(CommandError, match="already running"):
            call_command("ingest_fleet", stdout=StringIO())
        mock_fleet.assert_not_called()

        call_command("ingest_fleet", "--force", stdout=StringIO())
        mock_fleet.assert_called_once()

    @patch("fandompulse.fandoms.management.commands.ingest_fleet.ingest_fleet", return_value=[])
    def test_signals_set_cancel_event(self, mock_fleet, mock_signal, fandom):
        call_command("ingest_fleet", stdout=StringIO())

        handler = mock_signal.call_args_list[0].args[1]
        cancel_event = mock_fleet.call_args.kwargs["cancel_event"]
        assert not cancel_event.is_set()
        handler(2, None)
        assert cancel_event.is_set()


# =============================================================================
# collect_trends
# =============================================================================


@pytest.mark.django_db
class TestCollectTrendsCommand:
    @patch("fandompulse.fandoms.management.commands.collect_trends.collect_trends")
    def test_prints_per_fandom_lines(self, mock_collect, fandom):
        mock_collect.return_value = CollectTrendsResult(
            success=True,
            total=1,
            succeeded=1,
            per_entity=[
                {
                    "fandom_id": str(fandom.id),
                    "fandom_name": "BINI Blooms",
                    "keyword": "BINI",
                    "data_points": 90,
                    "error": None,
                }
            ],
        )
        out = StringIO()

        call_command("collect_trends", "--fandom=bini-blooms", stdout=out)

        mock_collect.assert_called_once_with(fandom_ids=[fandom.id])
        assert "BINI Blooms (BINI): 90 points" in out.getvalue()
        assert "total=1, succeeded=1, failed=0" in out.getvalue()

    @patch("fandompulse.fandoms.management.commands.collect_trends.collect_regional_trends")
    def test_regional_flag(self, mock_collect, db):
        mock_collect.return_value = CollectTrendsResult(success=True)

        call_command("collect_trends", "--regional", stdout=StringIO())

        mock_collect.assert_called_once_with(fandom_ids=None)

    def test_unknown_slug(self, db):
        with pytest.raises(CommandError, match="Unknown fandom slug"):
            call_command("collect_trends", "--fandom=nope", stdout=StringIO())

    @patch("fandompulse.fandoms.management.commands.collect_trends.collect_trends")
    def test_failure_raises(self, mock_collect, db):
        mock_collect.return_value = CollectTrendsResult(success=False, error="Trends collection already running")

        with pytest.raises(CommandError, match="already running"):
            call_command("collect_trends", stdout=StringIO())


# =============================================================================
# discover_fandoms
# =============================================================================


def discovery(name="ppopcon"):
    return FandomDiscovery(
        name=name,
        source="hashtag",
        platform="tiktok",
        occurrences=10,
        sample_content=["PPOPCON day one"],
        estimated_reach=100000,
        suggested_tier="emerging",
        suggested_group="P-Pop",
        confidence=87,
    )


class TestDiscoverFandomsCommand:
    @patch("fandompulse.fandoms.management.commands.discover_fandoms.discover_fandoms")
    def test_table(self, mock_discover):
        mock_discover.return_value = [discovery()]
        out = StringIO()

        call_command("discover_fandoms", stdout=out)

        assert "ppopcon" in out.getvalue()
        assert "group=P-Pop (hashtag, tiktok)" in out.getvalue()
        assert "1 candidate(s)" in out.getvalue()

    @patch("fandompulse.fandoms.management.commands.discover_fandoms.discover_fandoms", return_value=[])
    def test_empty(self, mock_discover):
        out = StringIO()
        call_command("discover_fandoms", stdout=out)
        assert "No fandom candidates found" in out.getvalue()

    @patch("fandompulse.fandoms.management.commands.discover_fandoms.discover_fandoms")
    def test_json(self, mock_discover):
        mock_discover.return_value = [discovery()]
        out = StringIO()

        call_command("discover_fandoms", "--json", stdout=out)

        payload = json.loads(out.getvalue())
        assert payload[0]["name"] == "ppopcon"
        assert payload[0]["confidence"] == 87
