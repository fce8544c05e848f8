# Overview: Maps domain errors and unexpected failures to JSON responses.

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from .errors import GebeyaError


def register_error_handlers(app):
    """Register application error handlers"""

    @app.errorhandler(GebeyaError)
    def domain_error(error: GebeyaError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_exception(error: HTTPException):
        return jsonify({
            "error": error.description,
            "code": error.name.upper().replace(" ", "_"),
        }), error.code

    @app.errorhandler(Exception)
    def unexpected_error(error: Exception):
        current_app.logger.exception("Unhandled error: %s", error)
        return jsonify({"error": "Internal server error", "code": "INTERNAL_ERROR"}), 500
