"""Error handling middleware with Sentry integration."""
import logging

import sentry_sdk
from flask import jsonify
from sentry_sdk.integrations.flask import FlaskIntegration

from travel_checkout.domain.exceptions import (
    AvailabilityError,
    CheckoutError,
    ExpiryError,
    PaymentSessionFailed,
    ReservationFailed,
    ReservationReleaseFailed,
    SessionClosedError,
    SessionNotFoundError,
    ValidationError,
)


logger = logging.getLogger(__name__)

# Checked in order; the first matching class decides the status code.
STATUS_CODES = (
    (SessionNotFoundError, 404),
    (SessionClosedError, 409),
    (ValidationError, 422),
    (ExpiryError, 409),
    (AvailabilityError, 409),
    (ReservationFailed, 502),
    (PaymentSessionFailed, 502),
    (ReservationReleaseFailed, 502),
)


def status_for(error: CheckoutError) -> int:
    for error_class, status in STATUS_CODES:
        if isinstance(error, error_class):
            return status
    return 400


def error_response(error: CheckoutError):
    return jsonify({"success": False, "error": error.to_dict()}), status_for(error)


def init_error_handlers(app) -> None:
    """
    Initialize error handlers for the application.

    Args:
        app: Flask application instance
    """
    dsn = app.config.get("SENTRY_DSN")
    if dsn:
        sentry_sdk.init(
            dsn=dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            send_default_pii=False,
            environment=app.config.get("ENV", "production"),
        )
        logger.info("Sentry error tracking initialized")

    @app.errorhandler(CheckoutError)
    def checkout_error(error: CheckoutError):
        status = status_for(error)
        if error.severity == "critical":
            logger.error(f"{error.code}: {error.message}")
            sentry_sdk.capture_exception(error)
        elif status >= 500:
            logger.error(f"{error.code}: {error.message}")
        else:
            logger.info(f"Rejected request ({status} {error.code}): {error.message}")
        return error_response(error)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"success": False, "error": {"code": "not_found", "message": "Resource not found"}}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            "success": False,
            "error": {"code": "method_not_allowed", "message": "Method not allowed"},
        }), 405

    @app.errorhandler(429)
    def rate_limit_error(error):
        return jsonify({
            "success": False,
            "error": {
                "code": "rate_limited",
                "message": "Rate limit exceeded. Please try again later.",
            },
        }), 429

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}", exc_info=True)
        return jsonify({
            "success": False,
            "error": {"code": "internal_error", "message": "Internal server error"},
        }), 500
