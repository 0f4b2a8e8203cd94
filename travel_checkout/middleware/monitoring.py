"""Monitoring and metrics middleware using Prometheus."""
import logging
import time
from functools import wraps
from typing import Callable, List

from flask import request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from travel_checkout.domain.entities.notice import CheckoutNotice


logger = logging.getLogger(__name__)

availability_checks_total = Counter(
    "checkout_availability_checks_total",
    "Availability checks by resulting state",
    ["result"]
)

commits_total = Counter(
    "checkout_commits_total",
    "Commit attempts by outcome",
    ["outcome"]
)

expiries_total = Counter(
    "checkout_expiries_total",
    "Timer expiries by notice code",
    ["timer"]
)

operation_duration = Histogram(
    "checkout_operation_duration_seconds",
    "Time spent in operations that call external systems",
    ["operation"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0]
)

api_requests_total = Counter(
    "checkout_api_requests_total",
    "Checkout API requests",
    ["method", "endpoint", "status"]
)

live_sessions = Gauge(
    "checkout_live_sessions",
    "Checkout sessions held in memory"
)


def register_metrics_middleware(app) -> None:
    """
    Expose collected metrics at /metrics.

    Args:
        app: Flask application instance
    """
    if not app.config.get("ENABLE_METRICS"):
        return

    @app.route("/metrics")
    def metrics():
        return generate_latest(), 200, {"Content-Type": CONTENT_TYPE_LATEST}

    @app.after_request
    def count_request(response):
        if request.blueprint == "checkout":
            api_requests_total.labels(
                method=request.method,
                endpoint=request.url_rule.rule if request.url_rule else "unknown",
                status=response.status_code
            ).inc()
        return response

    logger.info("Prometheus metrics enabled at /metrics")


def track_operation(operation: str) -> Callable:
    """Decorator timing a view that calls an external system."""
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def wrapper(*args, **kwargs):
            start_time = time.monotonic()
            try:
                return f(*args, **kwargs)
            finally:
                operation_duration.labels(operation=operation).observe(time.monotonic() - start_time)
        return wrapper
    return decorator


def track_availability(result: str) -> None:
    availability_checks_total.labels(result=result).inc()


def track_commit(outcome: str) -> None:
    commits_total.labels(outcome=outcome).inc()


def track_expiries(session, notices: List[CheckoutNotice]) -> None:
    for notice in notices:
        expiries_total.labels(timer=notice.code).inc()
