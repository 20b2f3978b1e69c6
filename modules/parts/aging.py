"""
Aging of loose parts.

A part is "overdue" by whole calendar days (UTC midnight to midnight) since its
reference timestamp. The thresholds are deliberately asymmetric: ``>= 14`` for
gt14 but strictly ``> 30`` and ``> 90`` for the higher buckets.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional

import structlog

logger = structlog.get_logger(__name__)

BUCKET_OK = "ok"
BUCKET_GT14 = "gt14"
BUCKET_GT30 = "gt30"
BUCKET_GT90 = "gt90"

# ordinal severity, lowest first
BUCKET_ORDER = (BUCKET_OK, BUCKET_GT14, BUCKET_GT30, BUCKET_GT90)

BUCKET_LABELS = {
    BUCKET_GT14: "> 14 Days",
    BUCKET_GT30: "> 30 Days",
    BUCKET_GT90: "> 90 Days",
}

UNSET_PREFIX = "0000-00-00"

_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d")


@dataclass(frozen=True)
class Aging:
    days: Optional[int]
    bucket: str = BUCKET_OK


UNSET = Aging(days=None, bucket=BUCKET_OK)


def severity(bucket: str) -> int:
    return BUCKET_ORDER.index(bucket)


def parse_api_datetime(value) -> Optional[datetime]:
    """Parse an API timestamp into an aware UTC datetime.

    Accepts ``YYYY-MM-DD HH:MM:SS`` (the API's form), ISO ``T`` separators, a
    trailing ``Z`` and bare dates. Naive values are read as UTC. Returns None
    for null, empty, the ``0000-00-00`` sentinel and anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value).strip()
    if not text or text.startswith(UNSET_PREFIX):
        return None
    if text.endswith("Z"):
        text = text[:-1]

    parsed = None
    for fmt in _FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.warning("invalid_api_datetime", value=value)
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _utc_date(moment: datetime) -> date:
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(timezone.utc).date()


def bucket_for_days(days: int) -> str:
    if days > 90:
        return BUCKET_GT90
    if days > 30:
        return BUCKET_GT30
    if days >= 14:
        return BUCKET_GT14
    return BUCKET_OK


def classify(reference, now: Optional[datetime] = None) -> Aging:
    """Return the whole-day age of ``reference`` and its bucket.

    Unset or malformed references are never flagged: they come back as
    ``Aging(None, "ok")``. References in the future clamp to ``Aging(0, "ok")``.
    """
    ref = parse_api_datetime(reference)
    if ref is None:
        return UNSET

    today = _utc_date(now or datetime.now(timezone.utc))
    days = (today - _utc_date(ref)).days
    if days < 0:
        return Aging(days=0, bucket=BUCKET_OK)
    return Aging(days=days, bucket=bucket_for_days(days))


@dataclass(frozen=True)
class AgingSummary:
    gt14: int = 0
    gt30: int = 0
    gt90: int = 0

    @property
    def total(self) -> int:
        return self.gt14 + self.gt30 + self.gt90

    @property
    def is_critical(self) -> bool:
        return self.gt90 > 0


def summarize_aging(parts: Iterable, now: Optional[datetime] = None) -> AgingSummary:
    """Count overdue actionable parts per bucket.

    Shared by the sidebar badge and the dashboard so both agree with the
    notification list for the same instant.
    """
    counts = {BUCKET_GT14: 0, BUCKET_GT30: 0, BUCKET_GT90: 0}
    for part in parts:
        if not part.is_actionable:
            continue
        bucket = classify(part.created_on, now).bucket
        if bucket != BUCKET_OK:
            counts[bucket] += 1
    return AgingSummary(gt14=counts[BUCKET_GT14], gt30=counts[BUCKET_GT30], gt90=counts[BUCKET_GT90])


def format_display_date(value) -> str:
    """``DD/MM/YYYY`` in UTC, or ``N/A`` when unset."""
    moment = parse_api_datetime(value)
    if moment is None:
        return "N/A"
    return moment.strftime("%d/%m/%Y")
