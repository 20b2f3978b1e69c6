"""Records of the loose parts domain, as consumed from the OPLPS API."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .aging import BUCKET_OK, Aging, classify, format_display_date, parse_api_datetime

PENDING_STATUS_DESCRIPTION = "Pending"
OCELL_TYPE_DESCRIPTION = "Ocell"
PANEL_TYPE_DESCRIPTION = "Panel"


def to_int(value, default: int = 0) -> int:
    """Whole number from an API field that may arrive as a numeric string."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class PartRecord:
    """Represents a loose part row from ``part.php``."""

    id: str
    part_number: str
    quantity: int
    type_description: str
    status_description: str
    created_on: Optional[str]
    updated_on: Optional[str]
    created_by: str
    approved_by: Optional[str] = None
    approved_on: Optional[str] = None
    type_id: Optional[str] = None
    status_id: Optional[str] = None

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "PartRecord":
        return cls(
            id=str(row.get("part_id")),
            part_number=row.get("part_number") or "",
            quantity=to_int(row.get("quantity")),
            type_description=row.get("type_description") or "N/A",
            status_description=row.get("status_description") or "N/A",
            created_on=row.get("created_on"),
            updated_on=row.get("updated_on"),
            created_by=row.get("created_by_user") or "N/A",
            approved_by=_optional_str(row.get("approved_by_user")),
            approved_on=row.get("approved_on"),
            type_id=_optional_str(row.get("type") or row.get("type_id")),
            status_id=_optional_str(row.get("status")),
        )

    @property
    def is_actionable(self) -> bool:
        """Approved and still in stock: eligible for issue-out or damage."""
        return self.approved_by is not None and self.quantity > 0

    @property
    def is_pending(self) -> bool:
        return self.status_description == PENDING_STATUS_DESCRIPTION

    @property
    def created_at(self) -> Optional[datetime]:
        return parse_api_datetime(self.created_on)

    @property
    def created_display(self) -> str:
        return format_display_date(self.created_on)

    @property
    def updated_display(self) -> str:
        return format_display_date(self.updated_on)

    @property
    def approved_display(self) -> str:
        return format_display_date(self.approved_on)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<PartRecord {self.id}: {self.part_number} x{self.quantity}>"


@dataclass(frozen=True)
class NotificationRow:
    """An overdue actionable part together with its aging."""

    part: PartRecord
    aging: Aging

    @property
    def id(self) -> str:
        return self.part.id

    @property
    def quantity(self) -> int:
        return self.part.quantity

    @property
    def bucket(self) -> str:
        return self.aging.bucket


@dataclass(frozen=True)
class HistoryEvent:
    """One row of the append-only action log from ``history.php``."""

    id: str
    part_number: str
    type_description: str
    quantity_changed: int
    quantity_after_action: Optional[int]
    remarks: str
    performed_by: str
    action_date: Optional[str]
    action_type: str

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "HistoryEvent":
        fullname = (row.get("performed_by_fullname") or "").strip()
        after = row.get("quantity_after_action")
        return cls(
            id=str(row.get("event_id")),
            part_number=row.get("part_number") or "",
            type_description=row.get("type_description") or "N/A",
            quantity_changed=to_int(row.get("quantity_changed")),
            quantity_after_action=to_int(after) if after is not None else None,
            remarks=row.get("remark") or "No remarks",
            performed_by=fullname or str(row.get("performed_by_id") or ""),
            action_date=row.get("action_date"),
            action_type=row.get("action_type_description") or "",
        )

    @property
    def action_at(self) -> Optional[datetime]:
        return parse_api_datetime(self.action_date)

    @property
    def action_display(self) -> str:
        return format_display_date(self.action_date)


def actionable(parts: Iterable[PartRecord]) -> List[PartRecord]:
    return [p for p in parts if p.is_actionable]


def notification_rows(parts: Iterable[PartRecord], now: Optional[datetime] = None) -> List[NotificationRow]:
    """Project parts to the overdue notification list (actionable, bucket != ok)."""
    rows = []
    for part in actionable(parts):
        aging = classify(part.created_on, now)
        if aging.bucket != BUCKET_OK:
            rows.append(NotificationRow(part=part, aging=aging))
    return rows
