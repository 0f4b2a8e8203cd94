"""Flask application factory for the travel checkout service."""
import logging
import sys

from flask import Flask, jsonify

from travel_checkout.api import checkout_blueprint, health_blueprint
from travel_checkout.config.settings import get_config
from travel_checkout.infrastructure.service_container import ServiceContainer
from travel_checkout.middleware.error_handler import init_error_handlers
from travel_checkout.middleware.monitoring import live_sessions, register_metrics_middleware, track_expiries
from travel_checkout.middleware.rate_limiter import init_rate_limiter


def create_app(config_class=None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_class: Optional configuration class (for testing)

    Returns:
        Configured Flask application
    """
    _logger = logging.getLogger(__name__)

    app = Flask(__name__)
    config = config_class or get_config()
    app.config.from_object(config)

    _configure_logging(app.config.get("DEBUG", False))

    try:
        config.validate()
    except ValueError as e:
        _logger.warning(f"Configuration validation warning: {e}")

    app.register_blueprint(health_blueprint)
    app.register_blueprint(checkout_blueprint)

    @app.route("/", methods=["GET"])
    def root():
        return jsonify({"status": "ok", "service": "travel-checkout"}), 200

    init_error_handlers(app)
    init_rate_limiter(app)
    register_metrics_middleware(app)

    _initialize_services(app, config)

    _logger.info(f"Application ready - registered blueprints: {[bp.name for bp in app.blueprints.values()]}")
    return app


def _configure_logging(debug: bool) -> None:
    """Send application logs to stdout."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True
    )
    # urllib3 logs every retry at DEBUG; keep it quieter.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _initialize_services(app: Flask, config) -> None:
    """Build the service container and start the session ticker."""
    container = ServiceContainer(config)
    app.config["service_container"] = container

    registry = container.get_session_registry()

    def on_notices(session, notices):
        track_expiries(session, notices)
        live_sessions.set(len(registry))

    registry.on_notices = on_notices

    if not app.config.get("TESTING"):
        registry.start()
