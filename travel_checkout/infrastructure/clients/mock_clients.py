"""In-memory reservation and payment clients for development/testing."""
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set

from travel_checkout.domain.entities.availability import AvailabilityProbeResult
from travel_checkout.domain.entities.reservation import (
    PaymentSession,
    PaymentSessionRequest,
    ReservationResult,
)
from travel_checkout.domain.exceptions import ExternalServiceError
from travel_checkout.domain.interfaces.payment_gateway import IPaymentGateway
from travel_checkout.domain.interfaces.reservation_client import IReservationClient


logger = logging.getLogger(__name__)


class MockReservationClient(IReservationClient):
    """
    Mock implementation of the reservation system.

    Every offer is bookable unless its id is in ``unavailable_offers``.
    Failures can be injected per operation; calls are recorded.
    """

    def __init__(self):
        self.unavailable_offers: Dict[str, str] = {}
        self.fail_availability: Optional[Exception] = None
        self.fail_reservation: Optional[Exception] = None
        self.fail_cancellation: Optional[Exception] = None
        self.reservations: Dict[str, Dict[str, Any]] = {}
        self.cancelled: Set[str] = set()
        self.availability_calls: List[Dict[str, Any]] = []
        self.reservation_calls: List[Dict[str, Any]] = []
        self._logger = logging.getLogger(__name__)

    def check_availability(self, offer: Dict[str, Any], traveler: Dict[str, Any]) -> AvailabilityProbeResult:
        self.availability_calls.append({"offer": offer, "traveler": traveler})
        if self.fail_availability is not None:
            raise self.fail_availability
        offer_id = str(offer.get("id"))
        if offer_id in self.unavailable_offers:
            return AvailabilityProbeResult(available=False, detail=self.unavailable_offers[offer_id])
        price = offer.get("price") or {}
        return AvailabilityProbeResult(
            available=True,
            priced_total=Decimal(str(price.get("grandTotal") or price.get("total") or "0")),
        )

    def create_reservation(
        self,
        offer: Dict[str, Any],
        travelers: List[Dict[str, Any]],
        agency: Dict[str, Any]
    ) -> ReservationResult:
        self.reservation_calls.append({"offer": offer, "travelers": travelers, "agency": agency})
        if self.fail_reservation is not None:
            raise self.fail_reservation
        offer_id = str(offer.get("id"))
        if offer_id in self.unavailable_offers:
            raise ExternalServiceError("Flight verification failed", self.unavailable_offers[offer_id])

        reservation_id = f"MOCK-{uuid.uuid4().hex[:10].upper()}"
        self.reservations[reservation_id] = {"offer": offer, "travelers": travelers}
        price = offer.get("price") or {}
        self._logger.info(f"Mock reservation {reservation_id} created for offer {offer_id}")
        return ReservationResult(
            reservation_id=reservation_id,
            confirmed_offer=offer,
            grand_total=Decimal(str(price.get("grandTotal") or price.get("total") or "0")),
            currency=price.get("currency") or "",
        )

    def cancel_reservation(self, reservation_id: str) -> None:
        if self.fail_cancellation is not None:
            raise self.fail_cancellation
        if reservation_id not in self.reservations:
            raise ExternalServiceError("Flight order not found", f"No order {reservation_id}", 404)
        self.cancelled.add(reservation_id)
        del self.reservations[reservation_id]
        self._logger.info(f"Mock reservation {reservation_id} cancelled")


class MockPaymentGateway(IPaymentGateway):
    """Mock payment gateway returning a local redirect URL."""

    def __init__(self, base_url: str = "http://localhost:3000/mock-checkout"):
        self.base_url = base_url.rstrip("/")
        self.fail_with: Optional[Exception] = None
        self.requests: List[PaymentSessionRequest] = []
        self._logger = logging.getLogger(__name__)

    def create_checkout_session(self, request: PaymentSessionRequest) -> PaymentSession:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        session_id = f"cs_mock_{uuid.uuid4().hex[:16]}"
        self._logger.info(f"Mock checkout session {session_id} for reservation {request.reservation_id}")
        return PaymentSession(session_id=session_id, redirect_url=f"{self.base_url}/{session_id}")
