"""
Filter pipeline for the part, notification and history tables.

Query string in, filtered rows out: every request re-runs the whole pipeline
over the view snapshot, so a changed filter is just a new query.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Callable, Iterable, List, Optional

from .aging import BUCKET_ORDER, BUCKET_OK

ALL = "All"
ALL_AGES = "all"


def _parse_day(value) -> Optional[date]:
    text = (value or "").strip()
    if not text:
        return None
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        return None


@dataclass(frozen=True)
class PartFilter:
    type_description: str = ALL
    age_bucket: str = ALL_AGES
    action_type: str = ALL
    search: str = ""
    from_date: Optional[date] = None
    to_date: Optional[date] = None

    @classmethod
    def from_args(cls, args) -> "PartFilter":
        age = (args.get("age") or ALL_AGES).strip()
        if age not in BUCKET_ORDER or age == BUCKET_OK:
            age = ALL_AGES
        return cls(
            type_description=(args.get("type") or ALL).strip() or ALL,
            age_bucket=age,
            action_type=(args.get("action") or ALL).strip() or ALL,
            search=(args.get("q") or "").strip(),
            from_date=_parse_day(args.get("from")),
            to_date=_parse_day(args.get("to")),
        )

    @property
    def is_active(self) -> bool:
        return self != PartFilter()

    def date_window(self):
        """Inclusive UTC window; a single bound selects that one day."""
        start_day = self.from_date or self.to_date
        end_day = self.to_date or self.from_date
        if start_day is None:
            return None
        if end_day < start_day:
            start_day, end_day = end_day, start_day
        start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
        end = datetime.combine(end_day, time.max, tzinfo=timezone.utc)
        return start, end

    def apply(
        self,
        rows: Iterable,
        *,
        part_number: Callable = lambda r: r.part_number,
        type_of: Callable = lambda r: r.type_description,
        bucket_of: Optional[Callable] = None,
        action_of: Optional[Callable] = None,
        moment_of: Optional[Callable] = None,
    ) -> List:
        result = list(rows)
        if self.type_description != ALL:
            wanted = self.type_description.lower()
            result = [r for r in result if (type_of(r) or "").lower() == wanted]
        if bucket_of is not None and self.age_bucket != ALL_AGES:
            result = [r for r in result if bucket_of(r) == self.age_bucket]
        if action_of is not None and self.action_type != ALL:
            result = [r for r in result if action_of(r) == self.action_type]
        if self.search:
            term = self.search.lower()
            result = [r for r in result if term in (part_number(r) or "").lower()]
        window = self.date_window() if moment_of is not None else None
        if window is not None:
            start, end = window
            result = [r for r in result if moment_of(r) is not None and start <= moment_of(r) <= end]
        return result


def distinct_options(values: Iterable[Optional[str]]) -> List[str]:
    """``All`` followed by the distinct non-empty values in first-seen order."""
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return [ALL] + seen
