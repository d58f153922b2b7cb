from flask import jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError as SchemaValidationError


class ApiError(Exception):
    """
    Base for every business error returned to the caller.
    """
    def __init__(self, message, status_code=400, errors=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or {}
        self.payload = payload or {}


class ValidationError(ApiError):
    """Malformed request: bad date range, missing primary item, bad amounts."""

    def __init__(self, message, errors=None):
        super().__init__(message, status_code=400, errors=errors, payload={"code": "VALIDATION_ERROR"})


class NotFoundError(ApiError):
    def __init__(self, message):
        super().__init__(message, status_code=404, payload={"code": "NOT_FOUND"})


class ConflictError(ApiError):
    """The requested window overlaps reservations held by other rentals."""

    def __init__(self, message, conflicting_rental_ids=None, blocked_ranges=None):
        self.conflicting_rental_ids = list(conflicting_rental_ids or [])
        self.blocked_ranges = list(blocked_ranges or [])
        super().__init__(
            message,
            status_code=409,
            payload={
                "code": "RENTAL_CONFLICT",
                "conflicting_rental_ids": self.conflicting_rental_ids,
                "blocked_ranges": self.blocked_ranges,
            },
        )


class InvalidTransitionError(ApiError):
    """A status guard was violated (rental status or deposit status)."""

    def __init__(self, current_status, requested_status, message=None):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            message or f"Cannot move from '{current_status}' to '{requested_status}'.",
            status_code=409,
            payload={
                "code": "INVALID_TRANSITION",
                "current_status": current_status,
                "requested_status": requested_status,
            },
        )


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        response = {
            "success": False,
            "message": err.message,
        }
        if err.errors:
            response["errors"] = err.errors
        if getattr(err, "payload", None):
            response["payload"] = err.payload

        return jsonify(response), err.status_code

    @app.errorhandler(SchemaValidationError)
    def handle_marshmallow_validation(err: SchemaValidationError):
        response = {
            "success": False,
            "message": "Invalid data",
            "errors": err.messages if hasattr(err, "messages") else str(err),
        }
        return jsonify(response), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        response = {
            "success": False,
            "message": err.description or "HTTP error",
        }
        return jsonify(response), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        app.logger.exception(err)

        response = {
            "success": False,
            "message": "Internal server error",
        }
        return jsonify(response), 500
