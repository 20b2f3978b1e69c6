# tests/conftest.py
import json
import os
import sys
from datetime import datetime, timedelta, timezone

import httpx
import pytest

# so that `from app import create_app` works when pytest runs from the repo root
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app import create_app  # noqa: E402
from extensions import badge_pollers, snapshots  # noqa: E402

PASSWORD = "secret123"


def days_ago(days: int) -> str:
    """API-style timestamp ``days`` calendar days before now (UTC)."""
    moment = datetime.now(timezone.utc) - timedelta(days=days)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def make_part(part_id, part_number, quantity, *, days=1, approved=True,
              type_description="Ocell", status="Approved", type_id="1"):
    return {
        "part_id": str(part_id),
        "part_number": part_number,
        "quantity": str(quantity),
        "type": type_id,
        "type_description": type_description,
        "status": "2" if approved else "1",
        "status_description": status if approved else "Pending",
        "created_on": days_ago(days),
        "updated_on": days_ago(days),
        "created_by_user": "Olive Operator",
        "approved_by_user": "Sam Supervisor" if approved else None,
        "approved_on": days_ago(days) if approved else None,
    }


class FakeOplpsBackend:
    """In-memory stand-in for the PHP API, served through ``httpx.MockTransport``.

    Issue-out and damage calls are only recorded; the part rows stay as they
    are, like a server whose next read has not happened yet.
    """

    def __init__(self):
        self.accounts = {
            "admin": {"fname": "Ada", "lname": "Admin", "role_code": "ADMIN"},
            "supv": {"fname": "Sam", "lname": "Supervisor", "role_code": "SUPV"},
            "oper": {"fname": "Olive", "lname": "Operator", "role_code": "OPER"},
        }
        self.parts = []
        self.history = []
        self.types = [{"id": "1", "description": "Ocell"}, {"id": "2", "description": "Panel"}]
        self.statuses = [{"id": "1", "description": "Pending"}, {"id": "2", "description": "Approved"}]
        self.roles = [
            {"role_id": "1", "description": "Administrator"},
            {"role_id": "2", "description": "Supervisor"},
            {"role_id": "3", "description": "Operator"},
        ]
        self.users = [
            {"user_id": "admin", "fname": "Ada", "lname": "Admin", "role_id": "1",
             "role_description": "Administrator", "created_on": days_ago(40), "created_by_name": None},
            {"user_id": "oper", "fname": "Olive", "lname": "Operator", "role_id": "3",
             "role_description": "Operator", "created_on": days_ago(20), "created_by_name": "Ada Admin"},
        ]
        self.dashboard = {"totalIssuedOut": "7", "totalDamaged": 2}
        self.failures = {}
        self.calls = []
        self.passwords = {user_id: PASSWORD for user_id in self.accounts}
        # profile endpoints act on whoever logged in last
        self.signed_in = None

    # helpers for tests
    def add_part(self, part_id, part_number, quantity, **kwargs):
        row = make_part(part_id, part_number, quantity, **kwargs)
        self.parts.append(row)
        return row

    def fail(self, endpoint, status=500, payload=None):
        self.failures[endpoint] = (status, payload)

    def calls_to(self, endpoint, method=None):
        return [c for c in self.calls if c["endpoint"] == endpoint and (method is None or c["method"] == method)]

    def transport(self):
        return httpx.MockTransport(self.handle)

    # request handling
    def handle(self, request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content) if request.content else None
        self.calls.append({
            "endpoint": endpoint,
            "method": request.method,
            "json": body,
            "cookie": request.headers.get("cookie"),
        })

        if endpoint in self.failures:
            status, payload = self.failures[endpoint]
            if isinstance(payload, str):
                return httpx.Response(status, text=payload)
            return httpx.Response(status, json=payload or {"status": "error", "message": "Database error"})

        handler = getattr(self, "_" + endpoint.replace(".php", ""), None)
        if handler is None:
            return httpx.Response(404, json={"status": "error", "message": "Not found"})
        return handler(request.method, body)

    @staticmethod
    def _ok(**extra):
        return httpx.Response(200, json={"status": "success", **extra})

    def _login(self, method, body):
        account = self.accounts.get((body or {}).get("user_id"))
        if account is None or body.get("password") != self.passwords.get(body["user_id"]):
            return httpx.Response(401, json={"status": "error", "message": "Invalid ID and Password. Please try again."})
        self.signed_in = body["user_id"]
        return httpx.Response(
            200,
            json={"status": "success", "message": "Login successful!", "user_id": body["user_id"], **account},
            headers={"set-cookie": "PHPSESSID=fake-session; Path=/"},
        )

    def _part(self, method, body):
        if method == "GET":
            return self._ok(items=self.parts)
        return self._ok(message="ok")

    def _issue_out(self, method, body):
        return self._ok(message="Item issued out successfully.")

    def _damage(self, method, body):
        return self._ok(message="Item marked as damaged.")

    def _history(self, method, body):
        return self._ok(items=self.history)

    def _types(self, method, body):
        return self._ok(items=self.types)

    def _status(self, method, body):
        return self._ok(items=self.statuses)

    def _dashboard(self, method, body):
        return httpx.Response(200, json=self.dashboard)

    def _user_management(self, method, body):
        if method == "GET":
            return self._ok(users=self.users)
        return self._ok(message="ok")

    def _get_roles(self, method, body):
        return self._ok(roles=self.roles)

    def _add_user(self, method, body):
        return self._ok(message=f"User {body['user_id']} added successfully.")

    # profile endpoints use {"success": bool} instead of the status envelope
    def _get_profile(self, method, body):
        account = self.accounts[self.signed_in]
        role = {"ADMIN": "Administrator", "SUPV": "Supervisor", "OPER": "Operator"}[account["role_code"]]
        return httpx.Response(200, json={"success": True, "data": {
            "user_id": self.signed_in, "fname": account["fname"], "lname": account["lname"],
            "role_description": role,
        }})

    def _update_profile(self, method, body):
        self.accounts[self.signed_in].update(fname=body["fname"], lname=body["lname"])
        return httpx.Response(200, json={"success": True, "message": "Profile updated successfully!"})

    def _change_password(self, method, body):
        if body["currentPassword"] != self.passwords[self.signed_in]:
            return httpx.Response(200, json={"success": False, "message": "Incorrect current password."})
        self.passwords[self.signed_in] = body["newPassword"]
        return httpx.Response(200, json={"success": True, "message": "Password changed successfully!"})


@pytest.fixture()
def backend():
    return FakeOplpsBackend()


@pytest.fixture()
def app(backend):
    snapshots.clear()
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "BADGE_POLL_ENABLED": False,
        "OPLPS_API_TRANSPORT": backend.transport(),
        "OPLPS_API_TIMEOUT": None,
    })
    yield app
    badge_pollers.stop_all()
    snapshots.clear()


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, user_id="admin", password=PASSWORD):
    return client.post("/login", data={"user_id": user_id, "password": password}, follow_redirects=False)


@pytest.fixture()
def login_as(client):
    def _login(user_id="admin", password=PASSWORD):
        return login(client, user_id, password)
    return _login


@pytest.fixture()
def admin_client(client):
    login(client, "admin")
    return client


@pytest.fixture()
def supv_client(client):
    login(client, "supv")
    return client


@pytest.fixture()
def oper_client(client):
    login(client, "oper")
    return client
