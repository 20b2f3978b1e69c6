"""User accounts kept by the OPLPS API (administrators only)."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from extensions import oplps_api
from modules.parts.aging import format_display_date
from modules.parts.reconcile import ValidationError

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class UserRecord:
    id: str
    first_name: str
    last_name: str
    role_id: Optional[str]
    role_description: str
    created_on: Optional[str]
    updated_on: Optional[str]
    created_by_name: str

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "UserRecord":
        role_id = row.get("role_id")
        return cls(
            id=str(row.get("user_id")),
            first_name=row.get("fname") or "",
            last_name=row.get("lname") or "",
            role_id=str(role_id) if role_id is not None else None,
            role_description=row.get("role_description") or "N/A",
            created_on=row.get("created_on"),
            updated_on=row.get("updated_on"),
            created_by_name=row.get("created_by_name") or "System",
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def created_display(self) -> str:
        return format_display_date(self.created_on)


def list_users(admin) -> List[UserRecord]:
    return [UserRecord.from_api(row) for row in oplps_api.list_users(admin)]


def list_roles(admin) -> List[Dict[str, Any]]:
    return oplps_api.list_roles(admin)


def filter_users(users: List[UserRecord], search: str = "", role_id: str = "") -> List[UserRecord]:
    result = users
    term = (search or "").strip().lower()
    if term:
        result = [
            u for u in result
            if term in u.first_name.lower()
            or term in u.last_name.lower()
            or term in u.role_description.lower()
            or term in u.id.lower()
        ]
    if role_id:
        result = [u for u in result if u.role_id == role_id]
    return result


def add_user(admin, user_id, fname, lname, password, confirm_password, role_id) -> str:
    user_id = (user_id or "").strip()
    fname = (fname or "").strip()
    lname = (lname or "").strip()
    if not user_id or not fname or not password or not role_id:
        raise ValidationError("User ID, First Name, Password, and Role are required.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
    if password != confirm_password:
        raise ValidationError("Passwords do not match.")

    result = oplps_api.add_user(admin, user_id, fname, lname, password, role_id)
    logger.info("user_added", user_id=user_id, by=admin.user_id)
    return result.get("message") or f'User "{user_id}" added successfully.'


def update_user(admin, original_user_id, new_user_id, fname, lname, role_id) -> str:
    new_user_id = (new_user_id or "").strip()
    fname = (fname or "").strip()
    lname = (lname or "").strip()
    if not new_user_id or not fname or not role_id:
        raise ValidationError("User ID, First Name and Role are required.")

    oplps_api.update_user(admin, original_user_id, new_user_id, fname, lname, role_id)
    logger.info("user_updated", user_id=original_user_id, new_user_id=new_user_id, by=admin.user_id)
    return f"Successfully updated {fname} {lname} (ID: {new_user_id})."


def delete_user(admin, user_id) -> str:
    if str(user_id) == str(admin.user_id):
        raise ValidationError("You cannot delete your own account.")
    oplps_api.delete_user(admin, user_id)
    logger.info("user_deleted", user_id=user_id, by=admin.user_id)
    return f"Successfully deleted user {user_id}."


# ---------- own profile (any signed-in user) ----------
@dataclass(frozen=True)
class Profile:
    user_id: str
    fname: str
    lname: str
    role_description: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Profile":
        return cls(
            user_id=str(data.get("user_id") or ""),
            fname=data.get("fname") or "",
            lname=data.get("lname") or "",
            role_description=data.get("role_description") or "N/A",
        )

    @property
    def full_name(self) -> str:
        return f"{self.fname} {self.lname}".strip()


def get_profile(user) -> Profile:
    return Profile.from_api(oplps_api.get_profile(user))


def update_profile(user, fname, lname) -> str:
    """Rename the signed-in user; the caller refreshes its session copy on success."""
    fname = (fname or "").strip()
    lname = (lname or "").strip()
    if not fname:
        raise ValidationError("First name cannot be empty.")

    result = oplps_api.update_profile(user, fname, lname)
    user.fname, user.lname = fname, lname
    logger.info("profile_updated", user_id=user.user_id)
    return result.get("message") or "Profile updated successfully!"


def change_password(user, current_password, new_password, confirm_password) -> str:
    if new_password != confirm_password:
        raise ValidationError("New passwords do not match!")
    if not current_password or not new_password:
        raise ValidationError("Please fill in all password fields.")

    result = oplps_api.change_password(user, current_password, new_password)
    logger.info("password_changed", user_id=user.user_id)
    return result.get("message") or "Password changed successfully!"
