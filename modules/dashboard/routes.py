"""Supervisor dashboard: action totals and aging counts."""

import structlog
from flask import flash, render_template
from flask_login import current_user

from api_client import ApiError
from models import ADMIN_ROLE_CODE, SUPERVISOR_ROLE_CODE
from modules.parts import services as parts_services
from permissions import role_required

from . import bp

logger = structlog.get_logger(__name__)


@bp.route("/")
@role_required([SUPERVISOR_ROLE_CODE, ADMIN_ROLE_CODE])
def index():
    metrics, error = None, None
    try:
        metrics = parts_services.dashboard_metrics(current_user._get_current_object())
    except ApiError as exc:
        logger.error("dashboard_metrics_failed", error=exc.message)
        flash(exc.message, "danger")
        error = exc.message
    return render_template("dashboard.html", metrics=metrics, error=error)
