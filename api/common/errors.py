from flask import jsonify
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from api.common.logging_config import get_logger

logger = get_logger(__name__)

GENERIC_STORE_ERROR = "The service is temporarily unavailable. Please try again later."


class ConfigurationError(RuntimeError):
    """Raised at startup when required environment values are absent."""


class NotFound(LookupError):
    """Raised when a referenced record does not exist."""


class PermissionDenied(PermissionError):
    """Raised when a user tries to mutate a record they do not own."""


class InvalidInput(ValueError):
    """Raised when a request payload is structurally valid but unacceptable."""


class Unauthenticated(PermissionError):
    """Raised when a mutation arrives without an acting user."""


def format_validation_error(error: ValidationError):
    """
    Flatten pydantic validation errors into one readable message.

    Args:
        error (ValidationError): Error raised while parsing a payload.

    Returns:
        str: Semicolon-separated list of ``field: message`` entries.
    """
    parts = []
    for entry in error.errors():
        location = ".".join(str(item) for item in entry.get("loc", ()))
        parts.append(f"{location}: {entry.get('msg')}" if location else entry.get("msg", ""))
    return "; ".join(parts)


def register_error_handlers(app):
    """
    Translate domain exceptions into JSON error responses.

    Args:
        app (Flask): Application to register the handlers on.
    """

    @app.errorhandler(NotFound)
    def handle_not_found(error):
        return jsonify({"error": str(error) or "Not found"}), 404

    @app.errorhandler(PermissionDenied)
    def handle_permission_denied(error):
        return jsonify({"error": str(error) or "Permission denied"}), 403

    @app.errorhandler(Unauthenticated)
    def handle_unauthenticated(error):
        return jsonify({"error": str(error) or "Sign-in required"}), 401

    @app.errorhandler(InvalidInput)
    def handle_invalid_input(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return jsonify({"error": format_validation_error(error)}), 400

    @app.errorhandler(PyMongoError)
    def handle_store_error(error):
        logger.error("Document store error: %s", error)
        return jsonify({"error": GENERIC_STORE_ERROR}), 503
