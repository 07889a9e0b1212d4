"""Typed API errors and the handlers that render them as JSON.

Each error carries a ``kind`` discriminant so callers can branch on the
category of failure instead of on the message text.
"""
from __future__ import annotations

from flask import Flask, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .extensions import db


class ApiError(Exception):
    kind = "unexpected"
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"success": False, "message": self.message}
        payload.update(self.details)
        return payload


class ValidationError(ApiError):
    kind = "validation"
    status_code = 400


class AuthError(ApiError):
    kind = "auth"
    status_code = 401


class ForbiddenError(AuthError):
    kind = "forbidden"
    status_code = 403


class NotFoundError(ApiError):
    kind = "not_found"
    status_code = 404


class ConflictError(ApiError):
    kind = "conflict"
    status_code = 400


class StorageError(ApiError):
    kind = "storage"
    status_code = 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        if exc.status_code >= 500:
            current_app.logger.error("%s error: %s", exc.kind, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return jsonify({"success": False, "message": exc.description}), exc.code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(exc: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception("Unhandled database error", exc_info=exc)
        return jsonify({"success": False, "message": "Database error"}), 500

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error", exc_info=exc)
        return jsonify({"success": False, "message": "Internal server error"}), 500
