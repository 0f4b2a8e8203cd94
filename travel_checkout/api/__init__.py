"""HTTP API endpoints organized by concern."""

from travel_checkout.api.checkout import checkout_blueprint
from travel_checkout.api.health import health_blueprint

__all__ = [
    "checkout_blueprint",
    "health_blueprint",
]
