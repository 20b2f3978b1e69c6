"""
OPLPS API client.
Every read and mutation of parts, history and users goes to the remote PHP API;
this module only speaks HTTP and unwraps the ``{"status": "success", ...}`` envelope.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import structlog
from flask import current_app

logger = structlog.get_logger(__name__)

SUCCESS = "success"
UNREACHABLE_MESSAGE = "Unable to reach the OPLPS service."
LOGIN_FAILED_MESSAGE = "Invalid ID and Password. Please try again."
LOGIN_ERROR_MESSAGE = "An error occurred during login. Please try again later."


class ApiError(Exception):
    """Transport failure or a response that is not a success envelope."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _status_success(payload: Dict[str, Any]) -> bool:
    return payload.get("status") == SUCCESS


def _flag_success(payload: Dict[str, Any]) -> bool:
    # profile endpoints answer {"success": true, "data": ..., "message": ...}
    return payload.get("success") is True


class OplpsApi:
    """Client for the OPLPS REST endpoints.

    Endpoint URLs, timeout and (in tests) the httpx transport are read from the
    current app's config on every call, so one instance serves every app.
    """

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions["oplps_api"] = self

    # ---------- transport ----------
    def _client(self, session_user=None) -> httpx.Client:
        kwargs: Dict[str, Any] = {"headers": {"Accept": "application/json"}}
        timeout = current_app.config.get("OPLPS_API_TIMEOUT")
        if timeout:
            kwargs["timeout"] = timeout
        transport = current_app.config.get("OPLPS_API_TRANSPORT")
        if transport is not None:
            kwargs["transport"] = transport
        cookies = getattr(session_user, "api_cookies", None)
        if cookies:
            kwargs["cookies"] = cookies
        return httpx.Client(**kwargs)

    def _request(self, method: str, url_key: str, session_user=None,
                 succeeded: Callable[[Dict[str, Any]], bool] = _status_success, **kwargs) -> Dict[str, Any]:
        """Perform a call and return the decoded success envelope or raise ``ApiError``."""
        url = current_app.config[url_key]
        try:
            with self._client(session_user) as client:
                response = client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("api_transport_failed", endpoint=url_key, method=method, error=str(exc))
            raise ApiError(UNREACHABLE_MESSAGE) from exc

        payload = _json_or_none(response)
        message = payload.get("message") if isinstance(payload, dict) else None
        if response.is_error:
            logger.error("api_http_error", endpoint=url_key, method=method,
                         status=response.status_code, message=message)
            raise ApiError(message or f"HTTP error! Status: {response.status_code}", response.status_code)
        if not isinstance(payload, dict):
            logger.error("api_invalid_payload", endpoint=url_key, method=method, status=response.status_code)
            raise ApiError("Invalid response: expected JSON from the OPLPS service.", response.status_code)
        if not succeeded(payload):
            logger.warning("api_request_rejected", endpoint=url_key, method=method, message=message)
            raise ApiError(message or "The OPLPS service rejected the request.", response.status_code)
        return payload

    def _items(self, url_key: str, session_user, key: str = "items", **kwargs) -> List[Dict[str, Any]]:
        payload = self._request("GET", url_key, session_user, **kwargs)
        items = payload.get(key)
        if isinstance(items, list):
            return items
        if items is None or items == {}:
            return []
        raise ApiError(payload.get("message") or f"Invalid data structure for {key}.")

    # ---------- auth ----------
    def login(self, user_id: str, password: str) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """Authenticate against the remote API; returns the profile and the API session cookies."""
        url = current_app.config["LOGIN_API_URL"]
        try:
            with self._client() as client:
                response = client.post(url, json={"user_id": user_id, "password": password})
        except httpx.HTTPError as exc:
            logger.error("login_transport_failed", error=str(exc))
            raise ApiError(LOGIN_ERROR_MESSAGE) from exc

        payload = _json_or_none(response)
        if response.is_error or not isinstance(payload, dict):
            message = payload.get("message") if isinstance(payload, dict) else None
            logger.info("login_rejected", user_id=user_id, status=response.status_code)
            raise ApiError(message or LOGIN_FAILED_MESSAGE, response.status_code)
        return payload, dict(response.cookies)

    # ---------- parts ----------
    def list_parts(self, session_user) -> List[Dict[str, Any]]:
        return self._items("PARTS_API_URL", session_user, headers={"Cache-Control": "no-cache"})

    def list_types(self, session_user) -> List[Dict[str, Any]]:
        return self._items("TYPES_API_URL", session_user)

    def list_statuses(self, session_user) -> List[Dict[str, Any]]:
        return self._items("STATUS_API_URL", session_user)

    def add_part(self, session_user, part_number: str, type_id, quantity: int, status_id) -> Dict[str, Any]:
        return self._request("POST", "PARTS_API_URL", session_user, json={
            "part_number": part_number,
            "type_id": type_id,
            "quantity": quantity,
            "status_id": status_id,
        })

    def update_part(self, session_user, part_id: str, part_number: str,
                    part_description: str, quantity: int) -> Dict[str, Any]:
        return self._request("PUT", "PARTS_API_URL", session_user, json={
            "action": "update_details",
            "part_id": part_id,
            "part_number": part_number,
            "partDescription": part_description,
            "quantity": quantity,
        })

    def approve_part(self, session_user, part_id: str) -> Dict[str, Any]:
        return self._request("PUT", "PARTS_API_URL", session_user,
                             json={"action": "approve_item", "part_id": part_id})

    def delete_part(self, session_user, part_id: str) -> Dict[str, Any]:
        return self._request("PUT", "PARTS_API_URL", session_user,
                             json={"action": "delete_item", "part_id": part_id})

    def issue_out(self, session_user, part_id: str, quantity: int, remarks: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"part_id": part_id, "quantity_issued": quantity}
        if remarks:
            body["remarks"] = remarks
        return self._request("POST", "ISSUE_API_URL", session_user, json=body)

    def mark_damaged(self, session_user, part_id: str, quantity: int, remarks: str) -> Dict[str, Any]:
        return self._request("POST", "DAMAGE_API_URL", session_user, json={
            "part_id": part_id,
            "quantity_damaged": quantity,
            "remarks": remarks,
        })

    # ---------- history & metrics ----------
    def list_history(self, session_user) -> List[Dict[str, Any]]:
        return self._items("HISTORY_API_URL", session_user, headers={"Cache-Control": "no-cache"})

    def dashboard_metrics(self, session_user) -> Dict[str, Any]:
        # the dashboard endpoint returns bare totals without the status envelope
        url = current_app.config["DASHBOARD_API_URL"]
        try:
            with self._client(session_user) as client:
                response = client.get(url, headers={"Cache-Control": "no-cache"})
        except httpx.HTTPError as exc:
            logger.error("api_transport_failed", endpoint="DASHBOARD_API_URL", error=str(exc))
            raise ApiError(UNREACHABLE_MESSAGE) from exc
        payload = _json_or_none(response)
        if response.is_error:
            message = payload.get("message") if isinstance(payload, dict) else None
            raise ApiError(message or f"HTTP Error {response.status_code}", response.status_code)
        if not isinstance(payload, dict):
            raise ApiError("Invalid response: Expected JSON but received non-JSON content.")
        return payload

    # ---------- users ----------
    def list_users(self, session_user) -> List[Dict[str, Any]]:
        return self._items("USER_MANAGEMENT_API_URL", session_user, key="users")

    def list_roles(self, session_user) -> List[Dict[str, Any]]:
        return self._items("ROLES_API_URL", session_user, key="roles")

    def add_user(self, session_user, user_id: str, fname: str, lname: str,
                 password: str, role_id: str) -> Dict[str, Any]:
        return self._request("POST", "ADD_USER_API_URL", session_user, json={
            "user_id": user_id,
            "fname": fname,
            "lname": lname,
            "password": password,
            "role_id": role_id,
        })

    def update_user(self, session_user, original_user_id: str, new_user_id: str,
                    fname: str, lname: str, role_id: str) -> Dict[str, Any]:
        return self._request("PUT", "USER_MANAGEMENT_API_URL", session_user, json={
            "action": "update_user_details",
            "original_user_id": original_user_id,
            "new_user_id": new_user_id,
            "fname": fname,
            "lname": lname,
            "role_id": role_id,
        })

    def delete_user(self, session_user, user_id: str) -> Dict[str, Any]:
        return self._request("PUT", "USER_MANAGEMENT_API_URL", session_user,
                             json={"action": "delete_user", "user_id": user_id})

    # ---------- own profile ----------
    def get_profile(self, session_user) -> Dict[str, Any]:
        payload = self._request("GET", "GET_PROFILE_API_URL", session_user, succeeded=_flag_success)
        data = payload.get("data")
        if not isinstance(data, dict):
            raise ApiError(payload.get("message") or "Failed to fetch profile data.")
        return data

    def update_profile(self, session_user, fname: str, lname: str) -> Dict[str, Any]:
        return self._request("POST", "UPDATE_PROFILE_API_URL", session_user, succeeded=_flag_success,
                             json={"fname": fname, "lname": lname})

    def change_password(self, session_user, current_password: str, new_password: str) -> Dict[str, Any]:
        return self._request("POST", "CHANGE_PASSWORD_API_URL", session_user, succeeded=_flag_success,
                             json={"currentPassword": current_password, "newPassword": new_password})
