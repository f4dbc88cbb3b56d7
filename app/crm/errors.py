"""
API error taxonomy and the JSON error handlers that render it.

Handlers and services raise these; `register_error_handlers` maps them (and werkzeug's
HTTP errors, and anything unexpected) to `{"error", "message", "details"?, "request_id"}`.
"""

from __future__ import annotations

from typing import Any

from flask import Flask, g, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    status_code = 500
    error = "internal_error"

    def __init__(self, message: str, *, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class BadRequestError(ApiError):
    status_code = 400
    error = "bad_request"


class NotFoundError(ApiError):
    status_code = 404
    error = "not_found"


def _error_response(status: int, error: str, message: str, details: list[dict[str, Any]] | None = None):
    body: dict[str, Any] = {"error": error, "message": message}
    if details:
        body["details"] = details
    body["request_id"] = getattr(g, "request_id", None)
    return jsonify(body), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):  # type: ignore[no-redef]
        if e.status_code >= 500:
            app.logger.error("API error %s (request_id=%s): %s", e.error, getattr(g, "request_id", None), e.message)
        return _error_response(e.status_code, e.error, e.message, e.details)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):  # type: ignore[no-redef]
        status = e.code or 500
        # Unparsable JSON / wrong content type are payload problems like any other.
        if status == 415:
            status = 400
        error = (e.name or "error").lower().replace(" ", "_") if status != 400 else "bad_request"
        return _error_response(status, error, e.description or e.name)

    @app.errorhandler(SQLAlchemyError)
    def _db_error(e: SQLAlchemyError):  # type: ignore[no-redef]
        app.logger.exception("Database error (request_id=%s)", getattr(g, "request_id", None))
        return _error_response(500, "persistence_error", "The customer store is unavailable.")

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        # Ensure stack trace shows in the logs.
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return _error_response(500, "internal_error", "Internal server error.")
