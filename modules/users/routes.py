"""HTTP routes for user account management."""

import structlog
from flask import flash, redirect, render_template, request, session, url_for
from flask_login import current_user, login_required

from api_client import ApiError
from models import ADMIN_ROLE_CODE, SESSION_USER_KEY
from modules.parts.reconcile import ValidationError
from permissions import role_required

from . import bp, services

logger = structlog.get_logger(__name__)


def _admin():
    return current_user._get_current_object()


@bp.route("/")
@role_required([ADMIN_ROLE_CODE])
def index():
    search = (request.args.get("q") or "").strip()
    role_id = (request.args.get("role") or "").strip()
    users, roles, error = [], [], None
    try:
        users = services.list_users(_admin())
        roles = services.list_roles(_admin())
    except ApiError as exc:
        logger.error("users_fetch_failed", error=exc.message)
        flash(exc.message, "danger")
        error = exc.message
    return render_template(
        "users/list.html",
        rows=services.filter_users(users, search, role_id),
        total=len(users),
        roles=roles,
        search=search,
        role_id=role_id,
        error=error,
    )


@bp.route("/add", methods=["GET", "POST"])
@role_required([ADMIN_ROLE_CODE])
def add_user():
    roles = []
    try:
        roles = services.list_roles(_admin())
    except ApiError as exc:
        flash(exc.message, "danger")

    if request.method == "POST":
        form = request.form
        try:
            message = services.add_user(
                _admin(), form.get("user_id"), form.get("fname"), form.get("lname"),
                form.get("password") or "", form.get("confirm_password") or "", form.get("role_id"),
            )
        except ValidationError as exc:
            flash(str(exc), "warning")
        except ApiError as exc:
            logger.error("user_add_failed", error=exc.message)
            flash(exc.message, "danger")
        else:
            flash(message, "success")
            return redirect(url_for("users.add_user"))
        return render_template("users/add.html", roles=roles, form=form)

    return render_template("users/add.html", roles=roles, form={})


@bp.route("/<user_id>/edit", methods=["POST"])
@role_required([ADMIN_ROLE_CODE])
def edit_user(user_id):
    form = request.form
    try:
        message = services.update_user(
            _admin(), user_id, form.get("new_user_id") or user_id,
            form.get("fname"), form.get("lname"), form.get("role_id"),
        )
    except ValidationError as exc:
        flash(str(exc), "warning")
    except ApiError as exc:
        logger.error("user_update_failed", error=exc.message)
        flash(exc.message, "danger")
    else:
        flash(message, "success")
    return redirect(url_for("users.index"))


@bp.route("/<user_id>/delete", methods=["POST"])
@role_required([ADMIN_ROLE_CODE])
def delete_user(user_id):
    try:
        message = services.delete_user(_admin(), user_id)
    except ValidationError as exc:
        flash(str(exc), "warning")
    except ApiError as exc:
        logger.error("user_delete_failed", error=exc.message)
        flash(exc.message, "danger")
    else:
        flash(message, "success")
    return redirect(url_for("users.index"))


# ---------- own profile ----------
@bp.route("/profile")
@login_required
def profile():
    user = current_user._get_current_object()
    data, error = None, None
    try:
        data = services.get_profile(user)
    except ApiError as exc:
        logger.error("profile_fetch_failed", error=exc.message)
        flash(exc.message, "danger")
        error = exc.message
    return render_template("users/profile.html", profile=data, error=error)


@bp.route("/profile/edit", methods=["POST"])
@login_required
def edit_profile():
    user = current_user._get_current_object()
    try:
        message = services.update_profile(user, request.form.get("fname"), request.form.get("lname"))
    except ValidationError as exc:
        flash(str(exc), "warning")
    except ApiError as exc:
        logger.error("profile_update_failed", error=exc.message)
        flash(exc.message, "danger")
    else:
        # sidebar and greeting read the stored session copy
        session[SESSION_USER_KEY] = user.to_session()
        flash(message, "success")
    return redirect(url_for("users.profile"))


@bp.route("/profile/password", methods=["POST"])
@login_required
def change_password():
    form = request.form
    try:
        message = services.change_password(
            current_user._get_current_object(),
            form.get("current_password") or "",
            form.get("new_password") or "",
            form.get("confirm_password") or "",
        )
    except ValidationError as exc:
        flash(str(exc), "warning")
    except ApiError as exc:
        logger.error("password_change_failed", error=exc.message)
        flash(exc.message, "danger")
    else:
        flash(message, "success")
    return redirect(url_for("users.profile"))
