"""Authentication module package."""

from flask import Blueprint

bp = Blueprint("auth", __name__)

from . import routes  # noqa: E402  pylint: disable=wrong-import-position

__all__ = ["bp", "routes"]
