"""
Scrape API views.

Implements:
- POST /api/scrape/batch - fleet ingest kickoff (202, runs in a background thread)
- GET /api/scrape/status - latest 50 scrape runs, optional ?fandomId=
- POST /api/scrape/trends - run trends collection and return its summary
- GET /api/scrape/trends/status - persisted trends job record, optional ?job=

No authentication; these endpoints sit behind the operator network.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any
from uuid import UUID

from django.conf import settings
from django.db import close_old_connections
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from pydantic import ValidationError

from fandompulse.fandoms.directory import TrackedEntity, list_tracked_entities
from fandompulse.fandoms.dto import (
    BatchScrapeAcceptedDTO,
    BatchScrapeRequestDTO,
    CollectTrendsResponseDTO,
    ScrapeRunDTO,
    ScrapeStatusResponseDTO,
    TrendsJobDTO,
    TrendsRequestDTO,
)
from fandompulse.fandoms.ingestion.pipeline import has_active_scrape, ingest_fleet, summarize
from fandompulse.fandoms.models import ScrapeRun
from fandompulse.fandoms.trends.service import (
    ALREADY_RUNNING,
    JOB_NAME,
    REGIONAL_JOB_NAME,
    collect_regional_trends,
    collect_trends,
    get_trends_job,
)

logger = logging.getLogger(__name__)

STATUS_RUN_LIMIT = 50


# =============================================================================
# ERROR ENVELOPE HELPER
# =============================================================================


def error_response(
    code: str,
    message: str,
    status: int = 400,
    details: dict[str, Any] | None = None,
) -> JsonResponse:
    """
    Standard error envelope:
    {"error": {"code": "...", "message": "...", "details": {...}}}
    """
    envelope: dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if details:
        envelope["error"]["details"] = details

    return JsonResponse(envelope, status=status)


def _parse_body(request: HttpRequest, dto_class):
    """Return (dto, None) or (None, error JsonResponse)."""
    try:
        body_data = json.loads(request.body) if request.body else {}
        return dto_class.model_validate(body_data), None
    except json.JSONDecodeError:
        return None, error_response(code="invalid_json", message="Request body is not valid JSON")
    except ValidationError as e:
        return None, error_response(
            code="validation_error",
            message="Request body validation failed",
            details={"error": str(e)},
        )


def _internal_error(e: Exception) -> JsonResponse:
    # Stack hidden when DEBUG off
    message = f"Internal server error: {e}" if settings.DEBUG else "Internal server error"
    return error_response(code="internal_error", message=message, status=500)


# =============================================================================
# SCRAPE ENDPOINTS
# =============================================================================


def _run_fleet(entities: list[TrackedEntity], platform: str | None) -> None:
    try:
        results = ingest_fleet(entities=entities, platform=platform)
        logger.info("Background fleet ingest summary: %s", summarize(results))
    except Exception:
        logger.exception("Background fleet ingest crashed")
    finally:
        close_old_connections()


@csrf_exempt
@require_http_methods(["POST"])
def trigger_batch(request: HttpRequest) -> JsonResponse:
    """
    POST /api/scrape/batch

    Request body (optional):
        {"fandomIds": [...], "fandomSlugs": [...], "platform": "tiktok", "force": false}

    Response (202): {"status": "accepted", "fandoms": 12, "platform": null}
    Response (409): a scrape is already running
    """
    dto, error = _parse_body(request, BatchScrapeRequestDTO)
    if error is not None:
        return error

    try:
        if not dto.force and has_active_scrape():
            return error_response(
                code="scrape_in_progress",
                message="A scrape is already running",
                status=409,
            )

        entities = list_tracked_entities(fandom_ids=dto.fandom_ids, slugs=dto.fandom_slugs)
        if not entities:
            return error_response(code="not_found", message="No matching fandoms", status=404)

        platform = dto.platform.value if dto.platform else None
        thread = threading.Thread(
            target=_run_fleet,
            args=(entities, platform),
            name="fleet-ingest",
            daemon=True,
        )
        thread.start()
    except Exception as e:
        logger.exception("Unhandled exception in trigger_batch")
        return _internal_error(e)

    logger.info("Fleet ingest accepted: %d fandoms, platform=%s", len(entities), platform)
    response = BatchScrapeAcceptedDTO(fandoms=len(entities), platform=dto.platform)
    return JsonResponse(response.model_dump(mode="json"), status=202)


@require_http_methods(["GET"])
def scrape_status(request: HttpRequest) -> JsonResponse:
    """GET /api/scrape/status?fandomId=<uuid>"""
    fandom_id = request.GET.get("fandomId")
    qs = ScrapeRun.objects.select_related("fandom").order_by("-started_at")

    if fandom_id:
        try:
            fandom_uuid = UUID(fandom_id)
        except ValueError:
            return error_response(
                code="invalid_uuid",
                message="Invalid fandomId format",
                details={"field": "fandomId", "value": fandom_id},
            )
        qs = qs.filter(fandom_id=fandom_uuid)
    else:
        fandom_uuid = None

    runs = [
        ScrapeRunDTO(
            id=run.id,
            actor_id=run.actor_id,
            fandom_id=run.fandom_id,
            fandom_name=run.fandom.name if run.fandom else None,
            platform=run.platform or None,
            status=run.status,
            started_at=run.started_at,
            finished_at=run.finished_at,
            items_count=run.items_count,
            apify_run_id=run.apify_run_id,
            error_message=run.error_message,
        )
        for run in qs[:STATUS_RUN_LIMIT]
    ]
    response = ScrapeStatusResponseDTO(active=has_active_scrape(fandom_uuid), runs=runs)
    return JsonResponse(response.model_dump(mode="json"))


# =============================================================================
# TRENDS ENDPOINTS
# =============================================================================


@csrf_exempt
@require_http_methods(["POST"])
def trigger_trends(request: HttpRequest) -> JsonResponse:
    """
    POST /api/scrape/trends

    Request body (optional): {"fandomIds": [...], "regional": false}

    Runs collection synchronously. 409 when the job is already running.
    """
    dto, error = _parse_body(request, TrendsRequestDTO)
    if error is not None:
        return error

    collect = collect_regional_trends if dto.regional else collect_trends
    result = collect(fandom_ids=dto.fandom_ids)
    if result.error == ALREADY_RUNNING:
        return error_response(code="trends_in_progress", message=ALREADY_RUNNING, status=409)

    response = CollectTrendsResponseDTO.model_validate(result.to_dict())
    return JsonResponse(response.model_dump(mode="json"), status=200 if result.success else 502)


@require_http_methods(["GET"])
def trends_status(request: HttpRequest) -> JsonResponse:
    """GET /api/scrape/trends/status?job=google_trends|regional_trends"""
    name = request.GET.get("job") or JOB_NAME
    if name not in (JOB_NAME, REGIONAL_JOB_NAME):
        return error_response(
            code="invalid_job",
            message="Unknown trends job",
            details={"job": name},
        )

    job = get_trends_job(name)
    if job is None:
        response = TrendsJobDTO(name=name, status="idle")
    else:
        response = TrendsJobDTO(
            name=job.name,
            status=job.status,
            started_at=job.started_at,
            finished_at=job.finished_at,
            summary=job.summary or {},
            error=job.error,
        )
    return JsonResponse(response.model_dump(mode="json"))
