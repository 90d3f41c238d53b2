"""
Tests for the scrape-and-ingest pipeline.

Provider calls are patched at the pipeline module; concurrency tests patch
the per-unit functions so worker threads never touch the test database.
"""

import threading
from datetime import timedelta
from unittest.mock import patch
from uuid import uuid4

import pytest
from django.utils import timezone

from fandompulse.fandoms.directory import TrackedEntity, TrackedPlatform, list_tracked_entities
from fandompulse.fandoms.ingestion.pipeline import (
    has_active_scrape,
    ingest,
    ingest_all_platforms,
    ingest_fleet,
    summarize,
)
from fandompulse.fandoms.ingestion.service import IngestResult
from fandompulse.fandoms.models import ContentItem, ScrapeRun
from fandompulse.fandoms.providers import FailoverResult


# =============================================================================
# FIXTURES
# =============================================================================


def scraped(items, source="sociavault", failover=False, dataset_id=None):
    return FailoverResult(
        success=True,
        items=items,
        source=source,
        failover_triggered=failover,
        dataset_id=dataset_id,
    )


def entity(slug, platforms=("tiktok",)):
    return TrackedEntity(
        id=uuid4(),
        name=slug.upper(),
        slug=slug,
        platforms=tuple(TrackedPlatform(platform=p, handle=slug) for p in platforms),
    )


# =============================================================================
# SINGLE UNIT
# =============================================================================


@pytest.mark.django_db
class TestIngest:
    @patch("fandompulse.fandoms.ingestion.pipeline.scrape_with_failover")
    def test_success_records_run_with_answering_provider(self, mock_scrape, fandom):
        mock_scrape.return_value = scraped(
            [{"id": "v1", "text": "hello", "diggCount": 3}],
            source="apify",
            failover=True,
            dataset_id="ds9",
        )

        result = ingest(fandom.id, "tiktok")

        assert result.success
        assert result.items_count == 1
        assert result.source == "apify"
        assert result.failover_triggered

        platform, params = mock_scrape.call_args[0]
        assert platform == "tiktok"
        assert params.handle == "@bini_ph"
        assert params.keyword == "BINI Blooms"
        assert params.limit == 20

        run = ScrapeRun.objects.get(fandom=fandom)
        assert run.status == "succeeded"
        assert run.actor_id == "apify"
        assert run.apify_run_id == "ds9"
        assert run.items_count == 1
        assert run.finished_at is not None

    @patch("fandompulse.fandoms.ingestion.pipeline.scrape_with_failover")
    def test_handle_falls_back_to_fandom_name(self, mock_scrape, fandom):
        mock_scrape.return_value = scraped([{"id": "r1", "title": "thread"}])

        ingest(fandom.id, "reddit")

        _, params = mock_scrape.call_args[0]
        assert params.handle == "BINI Blooms"

    @patch("fandompulse.fandoms.ingestion.pipeline.scrape_with_failover")
    def test_scrape_failure_recorded(self, mock_scrape, fandom):
        mock_scrape.return_value = FailoverResult(
            success=False,
            source="sociavault",
            failover_triggered=True,
            error="Both providers failed. Primary (sociavault): x. Secondary (apify): y.",
        )

        result = ingest(fandom.id, "tiktok")

        assert not result.success
        assert result.error.startswith("Both providers failed")
        run = ScrapeRun.objects.get(fandom=fandom)
        assert run.status == "failed"
        assert run.error_message.startswith("Both providers failed")
        assert not ContentItem.objects.exists()

    @patch("fandompulse.fandoms.ingestion.pipeline.scrape_with_failover")
    def test_unexpected_exception_is_contained(self, mock_scrape, fandom):
        mock_scrape.side_effect = RuntimeError("boom")

        result = ingest(fandom.id, "tiktok")

        assert not result.success
        assert result.error == "boom"
        assert ScrapeRun.objects.get(fandom=fandom).status == "failed"

    def test_unknown_platform(self, fandom):
        result = ingest(fandom.id, "myspace")
        assert not result.success
        assert result.error == "Unknown platform: myspace"
        assert not ScrapeRun.objects.exists()

    def test_missing_fandom(self):
        missing = uuid4()
        result = ingest(missing, "tiktok")
        assert not result.success
        assert result.error == f"Fandom not found: {missing}"

    def test_malformed_fandom_id(self):
        result = ingest("not-a-uuid", "tiktok")
        assert not result.success
        assert result.error == "Fandom not found: not-a-uuid"
        assert not ScrapeRun.objects.exists()

    @patch("fandompulse.fandoms.ingestion.pipeline.scrape_with_failover")
    @patch("fandompulse.fandoms.ingestion.pipeline.ScrapeRun.objects.create")
    def test_run_row_failure_is_contained(self, mock_create, mock_scrape, fandom):
        mock_create.side_effect = RuntimeError("database is locked")

        result = ingest(fandom.id, "tiktok")

        assert not result.success
        assert result.fandom_id == fandom.id
        assert result.error == "Could not record scrape run: database is locked"
        mock_scrape.assert_not_called()


# =============================================================================
# CONCURRENT FAN-OUT
# =============================================================================


class TestIngestAllPlatforms:
    @patch("fandompulse.fandoms.ingestion.pipeline.ingest")
    def test_results_in_platform_order(self, mock_ingest):
        fandom_id = uuid4()
        mock_ingest.side_effect = lambda fid, platform: IngestResult(
            success=platform != "youtube",
            fandom_id=fid,
            platform=platform,
            error="down" if platform == "youtube" else None,
        )

        results = ingest_all_platforms(fandom_id, platforms=["tiktok", "youtube", "reddit"])

        assert [r.platform for r in results] == ["tiktok", "youtube", "reddit"]
        assert [r.success for r in results] == [True, False, True]

    @patch("fandompulse.fandoms.ingestion.pipeline.ingest")
    def test_raising_unit_becomes_failed_result(self, mock_ingest):
        mock_ingest.side_effect = RuntimeError("thread died")

        results = ingest_all_platforms(uuid4(), platforms=["tiktok"])

        assert len(results) == 1
        assert not results[0].success
        assert results[0].error == "thread died"

    def test_no_platforms(self):
        assert ingest_all_platforms(uuid4(), platforms=[]) == []


class TestIngestFleet:
    @patch("fandompulse.fandoms.ingestion.pipeline.ingest_all_platforms")
    def test_runs_every_entity_in_batches(self, mock_all):
        mock_all.side_effect = lambda fid, platforms: [
            IngestResult(success=True, fandom_id=fid, platform=p, items_count=2) for p in platforms
        ]
        entities = [entity("a"), entity("b", ("tiktok", "reddit")), entity("c")]

        results = ingest_fleet(batch_size=2, delay_s=0, entities=entities)

        assert [(r.fandom_id, r.platform) for r in results] == [
            (entities[0].id, "tiktok"),
            (entities[1].id, "tiktok"),
            (entities[1].id, "reddit"),
            (entities[2].id, "tiktok"),
        ]
        assert summarize(results)["items"] == 8

    @patch("fandompulse.fandoms.ingestion.pipeline.ingest_all_platforms")
    def test_cancel_stops_before_next_batch(self, mock_all):
        cancel = threading.Event()

        def run(fid, platforms):
            cancel.set()
            return [IngestResult(success=True, fandom_id=fid, platform=p) for p in platforms]

        mock_all.side_effect = run
        entities = [entity("a"), entity("b"), entity("c")]

        results = ingest_fleet(cancel_event=cancel, batch_size=1, delay_s=0, entities=entities)

        assert [r.fandom_id for r in results] == [entities[0].id]
        assert mock_all.call_count == 1

    @patch("fandompulse.fandoms.ingestion.pipeline.ingest_all_platforms")
    def test_platform_filter(self, mock_all):
        mock_all.return_value = []
        target = entity("b", ("tiktok", "reddit"))

        ingest_fleet(delay_s=0, entities=[target], platform="reddit")

        mock_all.assert_called_once_with(target.id, platforms=["reddit"])

    def test_summarize_lists_failures(self):
        fid = uuid4()
        results = [
            IngestResult(success=True, fandom_id=fid, platform="tiktok", items_count=3, influencer_count=1),
            IngestResult(success=False, fandom_id=fid, platform="reddit", error="Empty results"),
        ]
        summary = summarize(results)
        assert summary["total"] == 2
        assert summary["succeeded"] == 1
        assert summary["failed"] == 1
        assert summary["influencers"] == 1
        assert summary["failures"] == [{"fandom_id": str(fid), "platform": "reddit", "error": "Empty results"}]


# =============================================================================
# DIRECTORY AND ACTIVE-RUN GUARD
# =============================================================================


@pytest.mark.django_db
class TestDirectoryAndGuard:
    def test_list_tracked_entities(self, fandom, other_fandom):
        entities = list_tracked_entities()

        assert [e.slug for e in entities] == ["bini-blooms", "sb19-atin"]
        assert [p.platform for p in entities[1].platforms] == ["instagram", "youtube"]
        assert entities[0].platforms[0].handle == "@bini_ph"

    def test_list_tracked_entities_by_slug(self, fandom, other_fandom):
        assert [e.slug for e in list_tracked_entities(slugs=["sb19-atin"])] == ["sb19-atin"]

    def test_active_scrape_window(self, fandom):
        assert not has_active_scrape()

        run = ScrapeRun.objects.create(actor_id="sociavault>apify", fandom=fandom, status="running")
        assert has_active_scrape()
        assert has_active_scrape(fandom.id)
        assert not has_active_scrape(uuid4())

        run.started_at = timezone.now() - timedelta(hours=2)
        run.save()
        assert not has_active_scrape()
