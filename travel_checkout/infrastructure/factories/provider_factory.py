"""Factory for creating provider instances (Factory Pattern)."""
import logging
from typing import Optional

from travel_checkout.config.settings import Config
from travel_checkout.domain.interfaces.payment_gateway import IPaymentGateway
from travel_checkout.domain.interfaces.reservation_client import IReservationClient
from travel_checkout.domain.interfaces.session_storage import ISessionStorage
from travel_checkout.infrastructure.clients.amadeus_client import AmadeusClient
from travel_checkout.infrastructure.clients.mock_clients import MockPaymentGateway, MockReservationClient
from travel_checkout.infrastructure.clients.stripe_client import StripeCheckoutClient
from travel_checkout.infrastructure.redis_client import RedisClientFactory
from travel_checkout.infrastructure.repositories.session_storage import (
    InMemorySessionStorage,
    RedisSessionStorage,
)


logger = logging.getLogger(__name__)


class ProviderFactory:
    """
    Creates provider instances from configuration.

    Centralizes provider creation so implementations can be switched
    through environment variables.
    """

    @staticmethod
    def create_reservation_client(provider_type: str = "amadeus", config=Config) -> IReservationClient:
        """
        Create a reservation system client.

        Args:
            provider_type: "amadeus" or "mock"

        Raises:
            ValueError: If provider type is not supported
        """
        provider_type = provider_type.lower()
        if provider_type == "amadeus":
            return AmadeusClient(
                base_url=config.AMADEUS_API_BASE_URL,
                client_id=config.AMADEUS_CLIENT_ID,
                client_secret=config.AMADEUS_CLIENT_SECRET,
                timeout=config.AMADEUS_TIMEOUT,
            )
        elif provider_type == "mock":
            return MockReservationClient()
        else:
            raise ValueError(f"Unsupported reservation provider type: {provider_type}")

    @staticmethod
    def create_payment_gateway(provider_type: str = "stripe", config=Config) -> IPaymentGateway:
        """
        Create a payment gateway.

        Args:
            provider_type: "stripe" or "mock"

        Raises:
            ValueError: If provider type is not supported
        """
        provider_type = provider_type.lower()
        if provider_type == "stripe":
            return StripeCheckoutClient(
                secret_key=config.STRIPE_SECRET_KEY,
                base_url=config.STRIPE_API_BASE_URL,
                success_url=config.PAYMENT_SUCCESS_URL,
                cancel_url=config.PAYMENT_CANCEL_URL,
                timeout=config.STRIPE_TIMEOUT,
            )
        elif provider_type == "mock":
            return MockPaymentGateway(f"{config.PUBLIC_BASE_URL.rstrip('/')}/mock-checkout")
        else:
            raise ValueError(f"Unsupported payment provider type: {provider_type}")

    @staticmethod
    def create_session_storage(
        storage_type: str = "redis",
        ttl: Optional[int] = None,
        config=Config
    ) -> ISessionStorage:
        """
        Create snapshot storage.

        Falls back to in-memory storage when Redis is unreachable.

        Raises:
            ValueError: If storage type is not supported
        """
        storage_type = storage_type.lower()
        if storage_type == "redis":
            redis_client = RedisClientFactory.get_client(config.REDIS_URL)
            if redis_client is None:
                logger.warning("Redis unavailable; using in-memory session storage")
                return InMemorySessionStorage(ttl=ttl)
            return RedisSessionStorage(redis_client=redis_client, ttl=ttl)
        elif storage_type == "memory":
            return InMemorySessionStorage(ttl=ttl)
        else:
            raise ValueError(f"Unsupported storage type: {storage_type}")
