"""Flask application error handlers."""

from flask import Flask, jsonify
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from partswap.exceptions import BusinessLogicException, RecordNotFoundException


def register_error_handlers(app: Flask) -> None:
    """Register Flask error handlers for common exceptions."""

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """Handle Pydantic validation errors."""
        error_details = []
        for err in error.errors():
            field = ".".join(str(x) for x in err["loc"])
            error_details.append(f"{field}: {err['msg']}")

        return jsonify({
            "error": "Validation failed",
            "details": error_details
        }), 400

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error: IntegrityError):
        """Handle database integrity constraint violations."""
        error_msg = str(error.orig) if hasattr(error, 'orig') else str(error)

        if "UNIQUE constraint failed" in error_msg or "duplicate key" in error_msg.lower():
            return jsonify({
                "error": "Resource already exists",
                "details": "A record with these values already exists"
            }), 409
        return jsonify({
            "error": "Database constraint violation",
            "details": "The operation violates a database constraint"
        }), 400

    @app.errorhandler(RecordNotFoundException)
    def handle_record_not_found(error: RecordNotFoundException):
        return jsonify({
            "error": error.message,
            "details": "The requested resource could not be found"
        }), 404

    @app.errorhandler(BusinessLogicException)
    def handle_business_logic(error: BusinessLogicException):
        return jsonify({
            "error": error.message,
            "details": error.error_code
        }), 400

    @app.errorhandler(404)
    def handle_not_found(error):
        """Handle 404 Not Found errors."""
        return jsonify({
            "error": "Resource not found",
            "details": "The requested resource could not be found"
        }), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        """Handle 405 Method Not Allowed errors."""
        return jsonify({
            "error": "Method not allowed",
            "details": "The HTTP method is not allowed for this endpoint"
        }), 405

    @app.errorhandler(500)
    def handle_internal_server_error(error):
        """Handle 500 Internal Server Error."""
        return jsonify({
            "error": "Internal server error",
            "details": "An unexpected error occurred"
        }), 500
