# permissions.py
"""
RBAC for the dashboard.
- role_required([...]) is the main route decorator (ADMIN always passes).
- require_role(*roles) is the varargs spelling of the same check.
- can_* helpers are exposed to Jinja templates and return True/False.

Roles (codes issued by the OPLPS API at login):
- OPER   operator: registers parts, edits pending entries, issues out / marks damaged
- SUPV   supervisor: everything OPER does plus approve/delete pending parts, dashboard
- ADMIN  full access, including user management
"""

from functools import wraps
from typing import Iterable, Set

from flask import abort, flash, redirect, request, url_for
from flask_login import current_user, login_required

from models import ADMIN_ROLE_CODE, OPERATOR_ROLE_CODE, SUPERVISOR_ROLE_CODE


# ----------------------------- BASE DECORATOR ----------------------------- #
def role_required(allowed_roles: Iterable[str]):
    """
    Restrict a view to the given role codes.
    Example:
        @role_required([SUPERVISOR_ROLE_CODE, ADMIN_ROLE_CODE])
        def view(): ...

    Rules:
    - Anonymous users go through Flask-Login (redirect to login).
    - ADMIN always has access.
    - Missing role gives 403 for JSON clients, otherwise flash + redirect home.
    """
    if isinstance(allowed_roles, str):
        allowed: Set[str] = {allowed_roles}
    else:
        allowed = set(allowed_roles or [])

    def decorator(view_func):
        @wraps(view_func)
        @login_required
        def wrapped(*args, **kwargs):
            role = getattr(current_user, "role_code", None)

            if role == ADMIN_ROLE_CODE or role in allowed:
                return view_func(*args, **kwargs)

            wants_json = request.accept_mimetypes.accept_json and not request.accept_mimetypes.accept_html
            if wants_json:
                abort(403)

            flash("Access Denied: you do not have permission for this page.", "warning")
            return redirect(url_for("ui.home"))

        return wrapped
    return decorator


def require_role(*roles: str):
    """Same as role_required(list(roles)).
    Example:
        @require_role("SUPV", "ADMIN")
    """
    return role_required(list(roles))


# --------------------------- HELPERS ------------------------ #
def _is(*roles: str) -> bool:
    if not current_user.is_authenticated:
        return False
    role = getattr(current_user, "role_code", None)
    return role in roles or role == ADMIN_ROLE_CODE


# ================================ UI PERMISSIONS ================================== #
def can_view_dashboard(): return _is(SUPERVISOR_ROLE_CODE)
def can_approve():        return _is(SUPERVISOR_ROLE_CODE)
def can_delete_pending(): return _is(SUPERVISOR_ROLE_CODE)
def can_edit_pending():   return _is(OPERATOR_ROLE_CODE, SUPERVISOR_ROLE_CODE)
def can_manage_users():   return _is(ADMIN_ROLE_CODE)


def ui_permissions() -> dict:
    return dict(
        can_view_dashboard=can_view_dashboard,
        can_approve=can_approve,
        can_delete_pending=can_delete_pending,
        can_edit_pending=can_edit_pending,
        can_manage_users=can_manage_users,
    )
