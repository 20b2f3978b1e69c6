"""Sign in / sign out against the OPLPS API."""

import structlog
from flask import current_app, flash, redirect, render_template, request, session, url_for
from flask_login import current_user, login_required, login_user, logout_user

from api_client import ApiError
from extensions import badge_pollers, login_manager, oplps_api
from models import SESSION_USER_KEY, SessionUser
from modules.parts import services as parts_services

from . import bp

logger = structlog.get_logger(__name__)


@login_manager.user_loader
def load_user(user_id: str | None) -> SessionUser | None:
    """Rebuild the ``SessionUser`` stored at login for Flask-Login."""

    if not user_id:
        return None
    data = session.get(SESSION_USER_KEY)
    user = SessionUser.from_session(data)
    if user is None or user.user_id != str(user_id):
        return None
    return user


def start_badge_poller(user: SessionUser) -> None:
    if not current_app.config.get("BADGE_POLL_ENABLED"):
        return
    app = current_app._get_current_object()

    def fetch():
        with app.app_context():
            return parts_services.badge_info(user)

    badge_pollers.start_for(user.user_id, fetch, app.config["BADGE_POLL_INTERVAL"])


@bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("ui.home"))

    if request.method == "POST":
        user_id = (request.form.get("user_id") or "").strip()
        password = request.form.get("password") or ""
        if not user_id or not password:
            flash("Please enter your ID and password.", "warning")
            return render_template("login.html", user_id=user_id)

        try:
            payload, cookies = oplps_api.login(user_id, password)
        except ApiError as exc:
            flash(exc.message, "danger")
            return render_template("login.html", user_id=user_id)

        user = SessionUser.from_login(payload, cookies)
        if not user.user_id:
            user.id = user.user_id = user_id
        session[SESSION_USER_KEY] = user.to_session()
        login_user(user)
        start_badge_poller(user)
        logger.info("user_logged_in", user_id=user.user_id, role=user.role_code)
        flash(payload.get("message") or "Login successful!", "success")
        return redirect(url_for("ui.home"))

    return render_template("login.html", user_id="")


@bp.route("/logout")
@login_required
def logout():
    user = current_user._get_current_object()
    badge_pollers.stop_for(user.user_id)
    parts_services.discard_views(user)
    session.pop(SESSION_USER_KEY, None)
    logout_user()
    logger.info("user_logged_out", user_id=user.user_id)
    return redirect(url_for("auth.login"))
