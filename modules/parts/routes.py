"""HTTP routes for the loose parts domain."""

from datetime import datetime, timezone

import structlog
from flask import abort, flash, make_response, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from api_client import ApiError
from models import ADMIN_ROLE_CODE, OPERATOR_ROLE_CODE, SUPERVISOR_ROLE_CODE
from permissions import role_required

from . import bp, export, services
from .aging import BUCKET_LABELS, BUCKET_ORDER, BUCKET_OK
from .filters import ALL, PartFilter, distinct_options
from .models import notification_rows
from .reconcile import ValidationError

logger = structlog.get_logger(__name__)

VIEW_ENDPOINTS = {
    services.VIEW_LIST: "parts.list_parts",
    services.VIEW_NOTIFICATIONS: "parts.notifications",
}
FILTER_ARGS = ("type", "age", "q", "from", "to", "action")


def _user():
    return current_user._get_current_object()


def _filter_args(source) -> dict:
    return {k: source.get(k) for k in FILTER_ARGS if source.get(k)}


def _flash_api_error(exc: ApiError, event: str) -> str:
    logger.error(event, error=exc.message, status=exc.status_code)
    flash(exc.message, "danger")
    return exc.message


# ---------- approved stock ----------
@bp.route("/")
@login_required
def list_parts():
    flt = PartFilter.from_args(request.args)
    rows, error = [], None
    try:
        rows = services.load_view(_user(), services.VIEW_LIST, refresh=bool(request.args.get("refresh")))
    except ApiError as exc:
        error = _flash_api_error(exc, "parts_fetch_failed")

    shown = flt.apply(rows, moment_of=lambda p: p.created_at)
    return render_template(
        "parts/list.html",
        rows=shown,
        total=len(rows),
        flt=flt,
        type_options=distinct_options(p.type_description for p in rows),
        view=services.VIEW_LIST,
        error=error,
    )


@bp.route("/notifications")
@login_required
def notifications():
    flt = PartFilter.from_args(request.args)
    now = datetime.now(timezone.utc)
    rows, error = [], None
    try:
        rows = services.load_view(_user(), services.VIEW_NOTIFICATIONS,
                                  refresh=bool(request.args.get("refresh")))
    except ApiError as exc:
        error = _flash_api_error(exc, "notifications_fetch_failed")

    # overdue membership follows the clock, not the fetch time of the snapshot
    overdue = notification_rows(rows, now)
    aged = [(row.part, row.aging) for row in overdue]
    shown = flt.apply(aged, part_number=lambda r: r[0].part_number,
                      type_of=lambda r: r[0].type_description,
                      bucket_of=lambda r: r[1].bucket)
    return render_template(
        "parts/notifications.html",
        rows=shown,
        total=len(overdue),
        flt=flt,
        type_options=distinct_options(row.part.type_description for row in overdue),
        age_options=[b for b in BUCKET_ORDER if b != BUCKET_OK],
        bucket_labels=BUCKET_LABELS,
        view=services.VIEW_NOTIFICATIONS,
        error=error,
    )


@bp.route("/<view>/<part_id>/<kind>", methods=["POST"])
@login_required
def stock_action(view, part_id, kind):
    if view not in VIEW_ENDPOINTS or kind not in (services.ACTION_ISSUE, services.ACTION_DAMAGE):
        abort(404)
    back = redirect(url_for(VIEW_ENDPOINTS[view], **_filter_args(request.form)))
    try:
        result = services.submit_stock_action(
            _user(), view, kind, part_id,
            request.form.get("quantity"), request.form.get("remarks"),
        )
    except ValidationError as exc:
        flash(str(exc), "warning")
        return back
    except ApiError as exc:
        _flash_api_error(exc, "stock_action_view_failed")
        return back

    flash(result.message, "success" if result.ok else "danger")
    return back


# ---------- pending / return list ----------
@bp.route("/pending")
@login_required
def pending():
    flt = PartFilter.from_args(request.args)
    user = _user()
    parts, types, error = [], [], None
    try:
        parts = services.fetch_parts(user)
        types = services.fetch_type_options(user)
    except ApiError as exc:
        error = _flash_api_error(exc, "pending_fetch_failed")

    shown = flt.apply(parts)
    type_descriptions = [t.get("description") for t in types if t.get("description")]
    return render_template(
        "parts/pending.html",
        rows=shown,
        total=len(parts),
        flt=flt,
        type_options=[ALL] + list(dict.fromkeys(type_descriptions)),
        types=types,
        error=error,
    )


def _pending_back():
    return redirect(url_for("parts.pending", **_filter_args(request.form)))


def _run_pending_change(change, *args, event: str):
    try:
        message = change(_user(), *args)
    except ValidationError as exc:
        flash(str(exc), "warning")
    except ApiError as exc:
        _flash_api_error(exc, event)
    else:
        flash(message, "success")
    return _pending_back()


@bp.route("/add", methods=["POST"])
@login_required
def add_part():
    return _run_pending_change(
        services.add_part,
        request.form.get("part_number"),
        request.form.get("type_id"),
        request.form.get("quantity"),
        event="part_add_failed",
    )


@bp.route("/<part_id>/edit", methods=["POST"])
@role_required([OPERATOR_ROLE_CODE, SUPERVISOR_ROLE_CODE, ADMIN_ROLE_CODE])
def edit_part(part_id):
    return _run_pending_change(
        services.update_part,
        part_id,
        request.form.get("part_number"),
        request.form.get("type_description"),
        request.form.get("quantity"),
        event="part_update_failed",
    )


@bp.route("/<part_id>/approve", methods=["POST"])
@role_required([SUPERVISOR_ROLE_CODE, ADMIN_ROLE_CODE])
def approve_part(part_id):
    return _run_pending_change(services.approve_part, part_id, event="part_approve_failed")


@bp.route("/<part_id>/delete", methods=["POST"])
@role_required([SUPERVISOR_ROLE_CODE, ADMIN_ROLE_CODE])
def delete_part(part_id):
    return _run_pending_change(services.delete_part, part_id, event="part_delete_failed")


# ---------- history ----------
@bp.route("/history")
@login_required
def history():
    flt = PartFilter.from_args(request.args)
    events, error = [], None
    try:
        events = services.fetch_history(_user())
    except ApiError as exc:
        error = _flash_api_error(exc, "history_fetch_failed")

    shown = flt.apply(events, action_of=lambda e: e.action_type, moment_of=lambda e: e.action_at)
    return render_template(
        "parts/history.html",
        rows=shown,
        total=len(events),
        flt=flt,
        type_options=distinct_options(e.type_description for e in events),
        action_options=distinct_options(e.action_type for e in events),
        error=error,
    )


EXPORT_FORMATS = {
    "csv": (export.history_csv, "text/csv; charset=utf-8"),
    "xlsx": (export.history_xlsx, "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
}


@bp.route("/history/export.<fmt>")
@login_required
def export_history(fmt):
    if fmt not in EXPORT_FORMATS:
        abort(404)
    flt = PartFilter.from_args(request.args)
    try:
        events = services.fetch_history(_user())
    except ApiError as exc:
        _flash_api_error(exc, "history_export_failed")
        return redirect(url_for("parts.history", **_filter_args(request.args)))

    shown = flt.apply(events, action_of=lambda e: e.action_type, moment_of=lambda e: e.action_at)
    render, content_type = EXPORT_FORMATS[fmt]
    resp = make_response(render(shown))
    resp.headers["Content-Type"] = content_type
    resp.headers["Content-Disposition"] = f"attachment; filename={export.export_filename(fmt)}"
    logger.info("history_exported", fmt=fmt, rows=len(shown))
    return resp
