"""External API clients module."""
from travel_checkout.infrastructure.clients.amadeus_client import AmadeusClient
from travel_checkout.infrastructure.clients.mock_clients import MockPaymentGateway, MockReservationClient
from travel_checkout.infrastructure.clients.stripe_client import StripeCheckoutClient

__all__ = [
    "AmadeusClient",
    "MockPaymentGateway",
    "MockReservationClient",
    "StripeCheckoutClient",
]
