"""Service container for dependency injection (IoC Container Pattern)."""
import logging
from typing import Optional

from travel_checkout.application.booking_session import BookingSession, SessionSettings
from travel_checkout.application.services.booking_commit import AgencyProfile
from travel_checkout.config.settings import Config
from travel_checkout.domain.interfaces.payment_gateway import IPaymentGateway
from travel_checkout.domain.interfaces.reservation_client import IReservationClient
from travel_checkout.domain.interfaces.session_storage import ISessionStorage
from travel_checkout.infrastructure.factories.provider_factory import ProviderFactory
from travel_checkout.infrastructure.repositories.checkout_snapshot_repository import CheckoutSnapshotRepository
from travel_checkout.infrastructure.session_registry import SessionRegistry


class ServiceContainer:
    """
    Lazily builds and caches the application's collaborators.

    One instance per process; providers are chosen from configuration
    through ProviderFactory.
    """

    _instance: Optional["ServiceContainer"] = None
    _config = Config
    _reservation_client: Optional[IReservationClient] = None
    _payment_gateway: Optional[IPaymentGateway] = None
    _session_storage: Optional[ISessionStorage] = None
    _session_registry: Optional[SessionRegistry] = None

    def __new__(cls, config=None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        if config is not None:
            cls._config = config
        return cls._instance

    def __init__(self, config=None):
        self._logger = logging.getLogger(__name__)

    @property
    def config(self):
        return self._config

    def get_reservation_client(self) -> IReservationClient:
        if self._reservation_client is None:
            provider_type = self._config.RESERVATION_PROVIDER
            ServiceContainer._reservation_client = ProviderFactory.create_reservation_client(
                provider_type, self._config
            )
            self._logger.info(f"Reservation client created: {provider_type}")
        return self._reservation_client

    def get_payment_gateway(self) -> IPaymentGateway:
        if self._payment_gateway is None:
            provider_type = self._config.PAYMENT_PROVIDER
            ServiceContainer._payment_gateway = ProviderFactory.create_payment_gateway(
                provider_type, self._config
            )
            self._logger.info(f"Payment gateway created: {provider_type}")
        return self._payment_gateway

    def get_session_storage(self) -> ISessionStorage:
        if self._session_storage is None:
            storage_type = self._config.SESSION_STORAGE_TYPE
            ServiceContainer._session_storage = ProviderFactory.create_session_storage(
                storage_type, ttl=self._config.REDIS_SESSION_TTL, config=self._config
            )
            self._logger.info(f"Session storage created with {storage_type}")
        return self._session_storage

    def create_session(self, session_id: str) -> BookingSession:
        """Build a fresh session wired to the configured providers."""
        return BookingSession(
            session_id,
            reservation_client=self.get_reservation_client(),
            payment_gateway=self.get_payment_gateway(),
            agency=AgencyProfile.from_config(self._config),
            settings=SessionSettings.from_config(self._config),
        )

    def get_session_registry(self) -> SessionRegistry:
        if self._session_registry is None:
            snapshots = CheckoutSnapshotRepository(
                self.get_session_storage(), ttl=self._config.REDIS_SESSION_TTL
            )
            ServiceContainer._session_registry = SessionRegistry(
                snapshots,
                self.create_session,
                tick_interval=self._config.SCHEDULER_TICK_SECONDS,
                idle_eviction_seconds=self._config.REDIS_SESSION_TTL,
            )
            self._logger.info("SessionRegistry created")
        return self._session_registry

    @classmethod
    def reset(cls) -> None:
        """Reset all service instances (useful for testing)."""
        if cls._session_registry is not None:
            cls._session_registry.stop()
        cls._instance = None
        cls._config = Config
        cls._reservation_client = None
        cls._payment_gateway = None
        cls._session_storage = None
        cls._session_registry = None
