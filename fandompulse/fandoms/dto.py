"""
Fandom Pulse operator API DTOs.

Pydantic v2 BaseModels for the /api/scrape/ request and response shapes.
Enums are the Django TextChoices from fandompulse/fandoms/enums.py so the API
and the database share one vocabulary.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from fandompulse.fandoms.enums import Platform, ScrapeRunStatus, TrendsJobStatus


# =============================================================================
# REQUESTS
# =============================================================================


class BatchScrapeRequestDTO(BaseModel):
    """POST /api/scrape/batch body. Every field is optional; empty means the whole fleet."""
    model_config = ConfigDict(populate_by_name=True)

    fandom_ids: list[UUID] | None = Field(default=None, alias="fandomIds")
    fandom_slugs: list[str] | None = Field(default=None, alias="fandomSlugs")
    platform: Platform | None = None
    force: bool = False


class TrendsRequestDTO(BaseModel):
    """POST /api/scrape/trends body."""
    model_config = ConfigDict(populate_by_name=True)

    fandom_ids: list[UUID] | None = Field(default=None, alias="fandomIds")
    regional: bool = False


# =============================================================================
# RESPONSES
# =============================================================================


class BatchScrapeAcceptedDTO(BaseModel):
    status: str = "accepted"
    fandoms: int
    platform: Platform | None = None


class ScrapeRunDTO(BaseModel):
    id: UUID
    actor_id: str
    fandom_id: UUID | None = None
    fandom_name: str | None = None
    platform: Platform | None = None
    status: ScrapeRunStatus
    started_at: datetime
    finished_at: datetime | None = None
    items_count: int = 0
    apify_run_id: str = ""
    error_message: str = ""


class ScrapeStatusResponseDTO(BaseModel):
    active: bool
    runs: list[ScrapeRunDTO] = Field(default_factory=list)


class TrendEntityDTO(BaseModel):
    fandom_id: UUID
    fandom_name: str
    keyword: str
    data_points: int = 0
    error: str | None = None


class CollectTrendsResponseDTO(BaseModel):
    success: bool
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    per_entity: list[TrendEntityDTO] = Field(default_factory=list)
    error: str | None = None


class TrendsJobDTO(BaseModel):
    name: str
    status: TrendsJobStatus
    started_at: datetime | None = None
    finished_at: datetime | None = None
    summary: dict[str, Any] = Field(default_factory=dict)
    error: str = ""
