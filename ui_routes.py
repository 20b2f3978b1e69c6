# ui_routes.py: UI shell, home page and sidebar helpers
import structlog
from flask import Blueprint, current_app, flash, render_template
from flask_login import current_user, login_required

from api_client import ApiError
from badge import BadgeInfo
from extensions import badge_pollers, snapshots
from models import ADMIN_ROLE_CODE, SUPERVISOR_ROLE_CODE
from modules.parts import services as parts_services

logger = structlog.get_logger(__name__)

ui = Blueprint("ui", __name__)

# sidebar entries: (label, endpoint, roles); empty roles means everyone
NAV_ITEMS = [
    ("Home", "ui.home", ()),
    ("Dashboard", "dashboard.index", (SUPERVISOR_ROLE_CODE, ADMIN_ROLE_CODE)),
    ("List Part Item", "parts.list_parts", ()),
    ("Pending Items", "parts.pending", ()),
    ("Notification", "parts.notifications", ()),
    ("History", "parts.history", ()),
    ("Add User", "users.add_user", (ADMIN_ROLE_CODE,)),
    ("Manage User", "users.index", (ADMIN_ROLE_CODE,)),
    ("Profile", "users.profile", ()),
]


def visible_nav_items(user):
    role = getattr(user, "role_code", None)
    return [(label, endpoint) for label, endpoint, roles in NAV_ITEMS
            if not roles or role in roles]


@ui.before_app_request
def track_activity():
    """Mark the signed-in user as active and drop per-login state that went idle."""
    if not current_user.is_authenticated:
        return None
    user = current_user._get_current_object()
    snapshots.touch(user.session_key)
    if badge_pollers.get(user.user_id) is None:
        # after a restart, or once the idle poller expired
        from modules.auth.routes import start_badge_poller
        start_badge_poller(user)
    else:
        badge_pollers.touch(user.user_id)

    idle_ttl = current_app.config.get("SESSION_IDLE_TTL")
    swept = snapshots.sweep(idle_ttl)
    badge_pollers.sweep()
    if swept:
        logger.info("idle_snapshots_swept", count=len(swept))
    return None


@ui.app_context_processor
def inject_sidebar():
    if not current_user.is_authenticated:
        return dict(nav_items=[], badge=None)
    badge: BadgeInfo | None = badge_pollers.info_for(current_user.user_id)
    return dict(nav_items=visible_nav_items(current_user), badge=badge)


@ui.route("/")
@login_required
def home():
    metrics, error = None, None
    try:
        metrics = parts_services.home_metrics(current_user._get_current_object())
    except ApiError as exc:
        logger.error("home_metrics_failed", error=exc.message)
        flash(exc.message, "danger")
        error = exc.message
    return render_template("home.html", metrics=metrics, error=error)
