"""
Tracked-entity directory.

Read-only view over Fandom/FandomPlatform used by the ingestion fleet and
the trends job. Ingestion never creates or renames fandoms.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable
from uuid import UUID

from fandompulse.fandoms.models import Fandom


@dataclass(frozen=True)
class TrackedPlatform:
    platform: str
    handle: str


@dataclass(frozen=True)
class TrackedEntity:
    id: UUID
    name: str
    slug: str
    platforms: tuple[TrackedPlatform, ...] = field(default_factory=tuple)


def list_tracked_entities(
    fandom_ids: Iterable[UUID] | None = None,
    slugs: Iterable[str] | None = None,
) -> list[TrackedEntity]:
    """Return tracked fandoms (optionally filtered) with their platform handles, ordered by name."""
    qs = Fandom.objects.prefetch_related("platforms").order_by("name")
    if fandom_ids is not None:
        qs = qs.filter(id__in=list(fandom_ids))
    if slugs is not None:
        qs = qs.filter(slug__in=list(slugs))

    return [
        TrackedEntity(
            id=fandom.id,
            name=fandom.name,
            slug=fandom.slug,
            platforms=tuple(
                TrackedPlatform(platform=p.platform, handle=p.handle)
                for p in sorted(fandom.platforms.all(), key=lambda p: p.platform)
            ),
        )
        for fandom in qs
    ]
