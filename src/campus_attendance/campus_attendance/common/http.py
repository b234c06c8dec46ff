from __future__ import annotations

import logging
from functools import wraps
from typing import Any

from flask import Flask, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ConflictError, DomainError, NotFoundError, ValidationError
from .serializers import to_json

logger = logging.getLogger(__name__)

# Most specific first; DomainError is the catch-all for the hierarchy.
ERROR_STATUS = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (DomainError, 400),
)


def status_for(error: DomainError) -> int:
    for kind, status in ERROR_STATUS:
        if isinstance(error, kind):
            return status
    return 400


def api_login_required(view):
    """The session (user_id, role) is populated by the external auth layer."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session or "role" not in session:
            return jsonify({"success": False, "message": "Authentication required"}), 401
        return view(*args, **kwargs)

    return wrapper


def current_actor() -> tuple[int, Role]:
    try:
        return int(session["user_id"]), Role(session["role"])
    except (KeyError, ValueError, TypeError):
        raise AuthorizationError("Invalid session")


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def require_field(payload: dict, *names: str) -> Any:
    """First present value among ``names`` (accepts snake_case and camelCase)."""
    for name in names:
        if payload.get(name) not in (None, ""):
            return payload[name]
    raise ValidationError(f"Missing field: {names[0]}")


def ok(data: Any = None, *, message: str | None = None, status: int = 200):
    body: dict = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = to_json(data)
    return jsonify(body), status


def register_error_handlers(app: Flask) -> None:
    def handle_domain_error(e: DomainError):
        status = status_for(e)
        logger.info("%s %s -> %s %s: %s", request.method, request.path, status, type(e).__name__, e)
        return jsonify({"success": False, "error": type(e).__name__, "message": str(e)}), status

    for kind, _ in ERROR_STATUS:
        app.register_error_handler(kind, handle_domain_error)
