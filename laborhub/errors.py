from flask import jsonify
from sqlalchemy.exc import IntegrityError


class AppError(Exception):
    status_code = 400
    kind = "error"

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message, "kind": self.kind}


class NotFound(AppError):
    status_code = 404
    kind = "not_found"


class Unauthorized(AppError):
    """The caller is not the counterparty allowed to act on the entity."""

    status_code = 403
    kind = "unauthorized"


class InvalidStateTransition(AppError):
    status_code = 400
    kind = "invalid_state"

    def __init__(self, message, current_state=None):
        super().__init__(message)
        self.current_state = current_state

    def to_dict(self):
        payload = super().to_dict()
        payload["state"] = self.current_state
        return payload


class Conflict(AppError):
    status_code = 400
    kind = "conflict"


class ValidationError(AppError):
    status_code = 400
    kind = "validation"


def _error(message, status_code, kind):
    return jsonify({"error": message, "kind": kind}), status_code


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err):
        app.logger.info("%s: %s", type(err).__name__, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(_err):
        app.logger.warning("Database integrity error")
        return _error("Conflict. Resource already exists.", 400, Conflict.kind)

    @app.errorhandler(400)
    def bad_request(_err):
        return _error("Bad request", 400, "bad_request")

    @app.errorhandler(401)
    def unauthenticated(_err):
        return _error("Authentication required", 401, "unauthenticated")

    @app.errorhandler(403)
    def forbidden(_err):
        return _error("Forbidden", 403, Unauthorized.kind)

    @app.errorhandler(404)
    def not_found(_err):
        return _error("Not found", 404, NotFound.kind)

    @app.errorhandler(405)
    def method_not_allowed(_err):
        return _error("Method not allowed", 405, "method_not_allowed")

    @app.errorhandler(429)
    def too_many_requests(_err):
        return _error("Too many requests", 429, "rate_limited")

    @app.errorhandler(500)
    def server_error(_err):
        app.logger.exception("Internal server error")
        return _error("Internal server error", 500, "internal")
