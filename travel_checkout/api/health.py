"""Health check endpoints."""
import logging

import redis
from flask import Blueprint, current_app, jsonify

from travel_checkout.infrastructure.redis_client import RedisClientFactory


health_blueprint = Blueprint("health", __name__)
_logger = logging.getLogger(__name__)


@health_blueprint.route("/health", methods=["GET"])
def health_check():
    return jsonify({"status": "healthy", "service": "travel-checkout"}), 200


@health_blueprint.route("/health/ready", methods=["GET"])
def readiness_check():
    """
    Readiness check (checks dependencies).

    Redis is only required when it backs session snapshots.
    """
    checks = {"redis": None, "overall": False}

    if current_app.config.get("SESSION_STORAGE_TYPE") == "redis":
        try:
            redis_client = RedisClientFactory.get_client(current_app.config.get("REDIS_URL"))
            checks["redis"] = bool(redis_client and redis_client.ping())
        except redis.RedisError as e:
            _logger.error(f"Redis health check failed: {e}")
            checks["redis"] = False
        checks["overall"] = checks["redis"]
    else:
        checks["overall"] = True

    status_code = 200 if checks["overall"] else 503
    return jsonify({
        "status": "ready" if checks["overall"] else "not_ready",
        "checks": checks,
    }), status_code


@health_blueprint.route("/health/live", methods=["GET"])
def liveness_check():
    return jsonify({"status": "alive", "service": "travel-checkout"}), 200
