"""Date normalization for extracted contract dates.

Dates that can be read unambiguously are rewritten as ``YYYY-MM-DD``. An
expiration stated relative to the start date ("four months after start date")
is resolved when the start date itself is resolvable. Everything else is kept
verbatim.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Optional

from app.schemas.domain import ExtractionResult

_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%B, %d %Y",
    "%b, %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%d %B, %Y",
    "%m-%d-%y",
)

_ORDINAL_RE = re.compile(r"(?<=\d)(st|nd|rd|th)\b", re.IGNORECASE)

_NUMBER_WORDS = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "eighteen": 18,
    "twenty-four": 24,
    "thirty": 30,
    "sixty": 60,
    "ninety": 90,
}

_RELATIVE_RE = re.compile(
    r"^(?P<count>\d+|[a-z-]+)\s*(?:\(\d+\)\s*)?"
    r"(?P<unit>day|week|month|year)s?\s+"
    r"(?:after|from|following)\s+(?:the\s+)?"
    r"(?:start|effective|commencement)\s+date\.?$",
    re.IGNORECASE,
)


def parse_date(text: Optional[str]) -> Optional[date]:
    """Parse an absolute date in one of the common contract formats."""
    if not text:
        return None
    cleaned = " ".join(_ORDINAL_RE.sub("", text.strip()).split())
    for fmt in _FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def resolve_relative_date(text: Optional[str], base: Optional[date]) -> Optional[date]:
    """Resolve "<N> <unit>s after start date" against ``base``."""
    if not text or base is None:
        return None
    match = _RELATIVE_RE.match(text.strip())
    if match is None:
        return None

    raw_count = match.group("count").lower()
    count = int(raw_count) if raw_count.isdigit() else _NUMBER_WORDS.get(raw_count)
    if count is None:
        return None

    unit = match.group("unit").lower()
    if unit == "day":
        return base + timedelta(days=count)
    if unit == "week":
        return base + timedelta(weeks=count)
    if unit == "month":
        return add_months(base, count)
    return add_months(base, count * 12)


def normalize_extraction_dates(extraction: ExtractionResult) -> ExtractionResult:
    """Return a copy of ``extraction`` with dates normalized where possible."""
    effective = parse_date(extraction.effective_date)
    expiration = parse_date(extraction.expiration_date) or resolve_relative_date(
        extraction.expiration_date, effective
    )

    updates = {}
    if effective is not None:
        updates["effective_date"] = effective.isoformat()
    if expiration is not None:
        updates["expiration_date"] = expiration.isoformat()
    if not updates:
        return extraction
    return extraction.model_copy(update=updates)


__all__ = [
    "add_months",
    "normalize_extraction_dates",
    "parse_date",
    "resolve_relative_date",
]
