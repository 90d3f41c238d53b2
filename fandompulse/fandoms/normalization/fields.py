"""
Field lookup helpers shared by the platform normalizers.

Provider payloads name the same datum differently depending on which backend
answered and which schema version it speaks. Normalizers describe each
canonical field as an ordered tuple of dotted source paths; pick() walks them
and returns the first truthy value.

All helpers are pure and never raise on malformed input.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable

# Hashtag tokens: word characters plus any non-ASCII letter (CJK, Tagalog diacritics, emoji)
HASHTAG_PATTERN = re.compile(r"#[\w\u0080-\uffff]+")

ISO_PREFIX_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")
PREMIERED_PATTERN = re.compile(r"^Premiered\s+", re.IGNORECASE)
RELATIVE_PATTERN = re.compile(
    r"(\d+)\s+(second|minute|hour|day|week|month|year)s?\s+ago",
    re.IGNORECASE,
)

# Locale absolute formats seen in scraper output, tried in order
ABSOLUTE_DATE_FORMATS = (
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%a %b %d %H:%M:%S %z %Y",
    "%m/%d/%Y",
)

RELATIVE_UNITS = {
    "second": timedelta(seconds=1),
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}

MIN_PLAUSIBLE_YEAR = 1990


# =============================================================================
# LOOKUP
# =============================================================================


def get_path(item: Any, path: str) -> Any:
    """Resolve a dotted path ("authorMeta.fans") against nested dicts."""
    current = item
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def pick(item: Any, paths: Iterable[str], default: Any = None) -> Any:
    """Return the first truthy value found at any of the paths, in order."""
    for path in paths:
        value = get_path(item, path)
        if value:
            return value
    return default


def pick_int(item: Any, paths: Iterable[str]) -> int:
    """First parseable non-zero integer across paths, else 0."""
    for path in paths:
        value = to_int(get_path(item, path))
        if value:
            return value
    return 0


def pick_str(item: Any, paths: Iterable[str]) -> str | None:
    value = pick(item, paths)
    if value is None:
        return None
    return str(value)


# =============================================================================
# COERCION
# =============================================================================


def to_int(value: Any) -> int:
    """
    Coerce a scraped number into an int.

    Accepts ints, floats, numeric strings ("1,234", "12.0"). Anything else
    (None, "N/A", dicts, NaN) becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        try:
            return int(cleaned)
        except ValueError:
            try:
                number = float(cleaned)
            except ValueError:
                return 0
            return int(number) if math.isfinite(number) else 0
    return 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(math.floor(value + 0.5))


def average(total: int, count: int) -> int:
    if count <= 0:
        return 0
    return round_half_up(total / count)


# =============================================================================
# DATES
# =============================================================================


def parse_date(value: Any, now: datetime | None = None) -> datetime | None:
    """
    Parse a scraped date into an aware UTC datetime, or None if unparseable.

    Order:
    1. Epoch seconds (int/float/numeric string)
    2. Strict ISO 8601 ("2026-02-05", "2026-02-05T10:00:00Z")
    3. Locale absolute ("Feb 5, 2026"), after stripping a "Premiered " prefix
    4. Relative ("3 days ago", "Streamed 2 weeks ago") resolved against now

    Callers treat None as "unknown" and keep ingesting.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, (int, float)):
        return _from_epoch(value)

    if not isinstance(value, str):
        return None

    text = value.strip()
    if text.isdigit():
        return _from_epoch(int(text))

    if ISO_PREFIX_PATTERN.match(text):
        return _parse_iso(text)

    cleaned = PREMIERED_PATTERN.sub("", text).strip()
    for fmt in ABSOLUTE_DATE_FORMATS:
        try:
            parsed = datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
        if parsed.year <= MIN_PLAUSIBLE_YEAR:
            continue
        return parsed.astimezone(timezone.utc) if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    match = RELATIVE_PATTERN.search(cleaned)
    if match:
        amount = int(match.group(1))
        unit = RELATIVE_UNITS[match.group(2).lower()]
        reference = now or datetime.now(timezone.utc)
        return reference - unit * amount

    return None


def _from_epoch(seconds: float) -> datetime | None:
    if seconds <= 0:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _parse_iso(text: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.strptime(text[:10], "%Y-%m-%d")
        except ValueError:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# =============================================================================
# HASHTAGS
# =============================================================================


def extract_hashtags(text: str | None) -> list[str]:
    """Return #tokens from free text, without the leading '#', in order of appearance."""
    if not text:
        return []
    return [match[1:] for match in HASHTAG_PATTERN.findall(text)]


def native_hashtags(values: Any, keys: Iterable[str] = ("name", "title", "text", "tag")) -> list[str]:
    """
    Flatten a platform's native hashtag list.

    Entries may be plain strings or dicts ({"name": "bini"}, {"text": "bini"}).
    """
    if not isinstance(values, list):
        return []
    tags = []
    for entry in values:
        if isinstance(entry, str):
            tag = entry
        elif isinstance(entry, dict):
            tag = pick(entry, keys, "")
        else:
            continue
        tag = str(tag).lstrip("#")
        if tag:
            tags.append(tag)
    return tags
