"""
Use cases of the parts module.

Every function takes the ``SessionUser`` explicitly; nothing here reads
Flask's request or session globals.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

from api_client import ApiError
from badge import BadgeInfo
from extensions import badge_pollers, oplps_api, snapshots

from .aging import AgingSummary, summarize_aging
from .models import (
    OCELL_TYPE_DESCRIPTION,
    PANEL_TYPE_DESCRIPTION,
    PENDING_STATUS_DESCRIPTION,
    HistoryEvent,
    PartRecord,
    actionable,
    to_int,
)
from .reconcile import (
    DAMAGE_MESSAGES,
    EDIT_MESSAGES,
    ISSUE_MESSAGES,
    PendingAction,
    ValidationError,
    clean_remark,
    parse_quantity,
    parse_stock_quantity,
    reconcile,
)

logger = structlog.get_logger(__name__)

VIEW_LIST = "list"
VIEW_NOTIFICATIONS = "notifications"
VIEWS = (VIEW_LIST, VIEW_NOTIFICATIONS)

ACTION_ISSUE = "issue"
ACTION_DAMAGE = "damage"


@dataclass
class ActionResult:
    ok: bool
    message: str
    reconciled: bool = False
    action: Optional[PendingAction] = None


# ---------- reads ----------
def fetch_parts(user) -> List[PartRecord]:
    return [PartRecord.from_api(row) for row in oplps_api.list_parts(user)]


def load_view(user, view: str, refresh: bool = False) -> List[PartRecord]:
    """Actionable rows of a view from the session snapshot, fetching when missing or on refresh.

    The notifications view stores the same actionable set; which rows are
    overdue depends on the clock and is worked out on every request.
    """
    if view not in VIEWS:
        raise ValueError(f"unknown view {view!r}")
    snap = None if refresh else snapshots.get(user.session_key, view)
    if snap is None:
        parts = fetch_parts(user)
        snap = snapshots.put(user.session_key, view, actionable(parts))
        logger.info("view_loaded", view=view, rows=len(snap.rows), user_id=user.user_id)
    return list(snap.rows)


def discard_views(user) -> None:
    snapshots.discard(user.session_key)


def fetch_history(user) -> List[HistoryEvent]:
    return [HistoryEvent.from_api(row) for row in oplps_api.list_history(user)]


def badge_info(user, now: Optional[datetime] = None) -> BadgeInfo:
    summary = summarize_aging(fetch_parts(user), now)
    return BadgeInfo(total=summary.total, is_critical=summary.is_critical)


def home_metrics(user) -> Dict[str, int]:
    parts = fetch_parts(user)
    return {
        "total_items": len(parts),
        "total_ocell": sum(1 for p in parts if p.type_description == OCELL_TYPE_DESCRIPTION),
        "total_panel": sum(1 for p in parts if p.type_description == PANEL_TYPE_DESCRIPTION),
        "total_quantity": sum(p.quantity for p in parts),
    }


@dataclass(frozen=True)
class DashboardMetrics:
    total_issued_out: int
    total_damaged: int
    aging: AgingSummary


def dashboard_metrics(user, now: Optional[datetime] = None) -> DashboardMetrics:
    totals = oplps_api.dashboard_metrics(user)
    return DashboardMetrics(
        total_issued_out=to_int(totals.get("totalIssuedOut")),
        total_damaged=to_int(totals.get("totalDamaged")),
        aging=summarize_aging(fetch_parts(user), now),
    )


# ---------- issue-out / damage (reconciled locally) ----------
def _find(rows: List[PartRecord], part_id: str) -> PartRecord:
    for row in rows:
        if row.id == part_id:
            return row
    raise ValidationError("Item not found. Refresh the list and try again.")


def submit_stock_action(user, view: str, kind: str, part_id: str, raw_quantity, raw_remark=None) -> ActionResult:
    """Validate, send the issue-out/damage request, then reconcile the view snapshot.

    Raises ``ValidationError`` before any request is made. API failures come
    back as a failed ``ActionResult`` and leave the snapshot untouched.
    """
    if not getattr(user, "user_id", None):
        raise ValidationError("User not identified.")
    if kind not in (ACTION_ISSUE, ACTION_DAMAGE):
        raise ValueError(f"unknown action {kind!r}")

    target = _find(load_view(user, view), str(part_id))
    if kind == ACTION_ISSUE:
        quantity = parse_quantity(raw_quantity, target.quantity, ISSUE_MESSAGES)
        remark = clean_remark(raw_remark, required=False)
    else:
        quantity = parse_quantity(raw_quantity, target.quantity, DAMAGE_MESSAGES)
        remark = clean_remark(raw_remark, required=True)

    token = snapshots.begin(user.session_key, view, target.id)
    if token is None:
        return ActionResult(False, f'An action for "{target.part_number}" is already in progress.')

    action = PendingAction(kind, target.id, quantity)
    action.begin()
    try:
        try:
            if kind == ACTION_ISSUE:
                oplps_api.issue_out(user, target.id, quantity, remark)
            else:
                oplps_api.mark_damaged(user, target.id, quantity, remark)
        except ApiError as exc:
            action.fail(exc.message)
            logger.error("stock_action_failed", kind=kind, part_id=target.id, error=exc.message)
            return ActionResult(False, exc.message, action=action)

        action.succeed()
        reconciled = snapshots.apply(token, lambda rows: reconcile(rows, target.id, quantity))
    finally:
        snapshots.end(token)

    badge_pollers.trigger_refresh(user.user_id)
    logger.info("stock_action_done", kind=kind, part_id=target.id, quantity=quantity, reconciled=reconciled)
    if kind == ACTION_ISSUE:
        message = f'Successfully issued out {quantity} unit(s) of "{target.part_number}".'
    else:
        message = f'Successfully marked {quantity} unit(s) of "{target.part_number}" as damaged.'
    return ActionResult(True, message, reconciled=reconciled, action=action)


# ---------- pending list (re-fetched after every change) ----------
def fetch_type_options(user) -> List[Dict[str, Any]]:
    return oplps_api.list_types(user)


def pending_status_id(user) -> str:
    for option in oplps_api.list_statuses(user):
        if (option.get("description") or "").lower() == PENDING_STATUS_DESCRIPTION.lower():
            return str(option.get("id"))
    raise ValidationError(f'Config Error: "{PENDING_STATUS_DESCRIPTION}" status not available.')


def add_part(user, part_number, type_id, raw_quantity) -> str:
    part_number = (part_number or "").strip()
    if not part_number:
        raise ValidationError("Part Number is required.")
    if not type_id:
        raise ValidationError("Please select a Part Type.")
    quantity = parse_stock_quantity(raw_quantity)
    status_id = pending_status_id(user)

    oplps_api.add_part(user, part_number, type_id, quantity, status_id)
    discard_views(user)
    logger.info("part_added", part_number=part_number, quantity=quantity, user_id=user.user_id)
    return f'Successfully added new item "{part_number}".'


def find_part(user, part_id: str) -> PartRecord:
    return _find(fetch_parts(user), str(part_id))


def update_part(user, part_id, part_number, type_description, raw_quantity) -> str:
    part = find_part(user, part_id)
    if not part.is_pending:
        raise ValidationError(f'Item "{part.part_number}" cannot be edited as it is not \'Pending\'.')
    part_number = (part_number or "").strip()
    if not part_number:
        raise ValidationError("Part Number is required.")
    known = [opt.get("description") for opt in fetch_type_options(user)]
    if type_description not in known:
        raise ValidationError(f'Selected type description "{type_description}" is not valid.')
    quantity = parse_quantity(raw_quantity, None, EDIT_MESSAGES)

    oplps_api.update_part(user, part.id, part_number, type_description, quantity)
    discard_views(user)
    logger.info("part_updated", part_id=part.id, user_id=user.user_id)
    return f'Successfully updated item "{part_number}".'


def _pending_unapproved(part: PartRecord, verb: str) -> None:
    if part.approved_by:
        raise ValidationError(f'Item "{part.part_number}" is already approved.')
    if not part.is_pending:
        raise ValidationError(f'Item "{part.part_number}" cannot be {verb} as it is not \'Pending\'.')


def approve_part(user, part_id) -> str:
    part = find_part(user, part_id)
    _pending_unapproved(part, "approved")
    oplps_api.approve_part(user, part.id)
    discard_views(user)
    logger.info("part_approved", part_id=part.id, user_id=user.user_id)
    return f'Successfully approved item "{part.part_number}".'


def delete_part(user, part_id) -> str:
    part = find_part(user, part_id)
    _pending_unapproved(part, "deleted")
    oplps_api.delete_part(user, part.id)
    discard_views(user)
    logger.info("part_deleted", part_id=part.id, user_id=user.user_id)
    return f'Successfully deleted item "{part.part_number}".'
