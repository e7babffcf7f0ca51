"""API error taxonomy and the Flask handlers that render it.

Route code raises one of the ``ApiError`` subclasses below; the handlers turn
it into the ``{error, message, details?}`` envelope. Anything else is treated
as a server error: the session is rolled back, the failure is logged and a row
is written to ``error_logs``.
"""
import logging
import traceback

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from models import db
from models.error_log import ErrorLog

log = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    status_code = 400
    error = "Invalid request data"


class UnauthorizedError(ApiError):
    status_code = 401
    error = "Authentication required"


class ForbiddenError(ApiError):
    status_code = 403
    error = "Forbidden"


class NotFoundError(ApiError):
    status_code = 404
    error = "Not found"


class ConflictError(ApiError):
    status_code = 409
    error = "Conflict"


def error_response(status: int, error: str, message: str, details=None):
    body = {"error": error, "message": message}
    if details is not None:
        body["details"] = details
    return jsonify(body), status


def record_error(error_code: str, details: str):
    """Persist a server-side failure to ``error_logs``.

    Runs after the failing transaction has been rolled back, in a fresh one.
    """
    endpoint = request.endpoint or ""
    module, _, function_name = endpoint.rpartition(".")
    row = ErrorLog(
        error_code=error_code,
        module=module or request.blueprint,
        function_name=function_name or request.method,
        details=details,
    )
    try:
        db.session.add(row)
        db.session.commit()
    except Exception:
        db.session.rollback()
        log.exception("could not write error log (original: %s)", error_code)


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def _api_error(exc: ApiError):
        db.session.rollback()
        log.warning("%s %s -> %s: %s", request.method, request.path, exc.status_code, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return error_response(exc.code or 500, exc.name, exc.description or exc.name)

    @app.errorhandler(Exception)
    def _unexpected(exc: Exception):
        db.session.rollback()
        log.exception("unhandled error on %s %s", request.method, request.path)
        record_error(
            type(exc).__name__,
            f"{exc}\n\nStack: {''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))}",
        )
        return error_response(500, "Internal server error", "An unexpected error occurred")
