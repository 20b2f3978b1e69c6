"""Session principal shared by every blueprint."""

import uuid
from typing import Any, Dict, Optional

from flask_login import UserMixin

ADMIN_ROLE_CODE = "ADMIN"
SUPERVISOR_ROLE_CODE = "SUPV"
OPERATOR_ROLE_CODE = "OPER"

# Flask session key holding the serialised SessionUser
SESSION_USER_KEY = "oplps_user"
SESSION_FIELDS = ("user_id", "fname", "lname", "role_code", "api_cookies", "session_key")


class SessionUser(UserMixin):
    """The logged-in user and the remote API session that belongs to them.

    Instances are rebuilt from the signed Flask session on every request and
    handed explicitly to the service layer.
    """

    def __init__(self, user_id: str, fname: str = "", lname: str = "",
                 role_code: Optional[str] = None, api_cookies: Optional[Dict[str, str]] = None,
                 session_key: Optional[str] = None):
        self.id = str(user_id)
        self.user_id = str(user_id)
        self.fname = fname or ""
        self.lname = lname or ""
        self.role_code = role_code or None
        self.api_cookies = dict(api_cookies or {})
        # identifies this login session (snapshots, badge poller)
        self.session_key = session_key or uuid.uuid4().hex

    @property
    def full_name(self) -> str:
        return f"{self.fname} {self.lname}".strip() or self.user_id

    def has_role(self, *roles: str) -> bool:
        return self.role_code in roles

    @classmethod
    def from_login(cls, payload: Dict[str, Any], cookies: Dict[str, str]) -> "SessionUser":
        return cls(
            user_id=payload.get("user_id") or "",
            fname=payload.get("fname") or "",
            lname=payload.get("lname") or "",
            role_code=payload.get("role_code") or None,
            api_cookies=cookies,
        )

    def to_session(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "fname": self.fname,
            "lname": self.lname,
            "role_code": self.role_code,
            "api_cookies": self.api_cookies,
            "session_key": self.session_key,
        }

    @classmethod
    def from_session(cls, data: Any) -> Optional["SessionUser"]:
        """Rebuild from ``to_session`` output; None when the stored shape is unusable."""
        if not isinstance(data, dict) or not data.get("user_id") or not data.get("session_key"):
            return None
        return cls(**{k: data.get(k) for k in SESSION_FIELDS})

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<SessionUser {self.user_id} ({self.role_code})>"
