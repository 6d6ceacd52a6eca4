"""Uniform JSON envelope used by every endpoint."""
from __future__ import annotations

from flask import jsonify


def success(data=None, message: str | None = None, status: int = 200, **extra):
    body: dict[str, object] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def failure(message: str, status: int, error: str, errors=None):
    body: dict[str, object] = {"success": False, "error": error, "message": message}
    if errors:
        body["errors"] = errors
    return jsonify(body), status


def validation_failed(errors, status: int = 400, message: str = "Validation failed"):
    return failure(message, status, "validation_error", errors=errors)


def not_found(message: str = "Resource not found"):
    return failure(message, 404, "not_found")


def forbidden(message: str = "You do not have permission"):
    return failure(message, 403, "forbidden")


def database_error():
    return failure("A database error occurred", 500, "database_error")
