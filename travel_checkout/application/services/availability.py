"""Availability reconciliation for the held offer."""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import requests

from travel_checkout.domain.entities.availability import AvailabilityState, AvailabilityStatus
from travel_checkout.domain.entities.flight_offer import FlightOffer
from travel_checkout.domain.exceptions import (
    AvailabilityCheckFailed,
    AvailabilityExpired,
    AvailabilityNotConfirmedError,
    ExternalServiceError,
    OfferUnavailableError,
)
from travel_checkout.domain.interfaces.reservation_client import IReservationClient
from travel_checkout.utils.clock import Clock, utcnow


logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS = timedelta(minutes=10)

# Synthetic traveler sent with availability-only requests. Never billed.
DUMMY_TRAVELER: Dict[str, Any] = {
    "id": "1",
    "dateOfBirth": "1990-01-01",
    "name": {"firstName": "Test", "lastName": "User"},
    "gender": "MALE",
    "travelerType": "ADULT",
    "contact": {
        "emailAddress": "test@example.com",
        "phones": [
            {"deviceType": "MOBILE", "countryCallingCode": "34", "number": "123456789"},
        ],
    },
}


class AvailabilityReconciler:
    """
    Verifies that the held offer is still bookable before payment.

    State machine: ``idle -> checking -> available | unavailable | error``.
    An ``available`` result is trusted only inside the freshness window and
    reverts to ``idle`` on the first tick at or past the window's end.
    """

    def __init__(
        self,
        client: IReservationClient,
        freshness: timedelta = DEFAULT_FRESHNESS,
        clock: Optional[Clock] = None
    ):
        self._client = client
        self.freshness = freshness
        self._clock = clock or utcnow
        self._status = AvailabilityStatus()
        self._in_flight = False

    @property
    def status(self) -> AvailabilityStatus:
        return self._status

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def check(
        self,
        offer: FlightOffer,
        dummy_traveler: Optional[Dict[str, Any]] = None,
        is_current: Optional[Callable[[], bool]] = None
    ) -> AvailabilityStatus:
        """
        Probe the reservation system once.

        Idempotent; a call while another probe is in flight is a no-op that
        returns the current (``checking``) status.

        Args:
            offer: Offer to verify
            dummy_traveler: Synthetic traveler payload (defaults to DUMMY_TRAVELER)
            is_current: Guard evaluated when the response arrives; when it
                returns False the response is discarded

        Returns:
            The resulting status
        """
        if self._in_flight:
            logger.info("Availability check already in flight; ignoring duplicate request")
            return self._status

        self._in_flight = True
        self._status = AvailabilityStatus(state=AvailabilityState.CHECKING)
        try:
            result = self._client.check_availability(offer.raw, dummy_traveler or DUMMY_TRAVELER)
        except (requests.RequestException, ExternalServiceError, ValueError, KeyError) as e:
            if is_current is not None and not is_current():
                logger.warning(f"Discarding availability failure for a superseded session: {e}")
                return self._status
            logger.error(f"Availability check failed for offer {offer.offer_id}: {e}")
            self._status = AvailabilityStatus(
                state=AvailabilityState.ERROR,
                message="Error checking availability",
            )
            return self._status
        finally:
            self._in_flight = False

        if is_current is not None and not is_current():
            logger.warning(f"Discarding availability result for offer {offer.offer_id}: session superseded")
            return self._status

        if result.available:
            self._status = AvailabilityStatus(
                state=AvailabilityState.AVAILABLE,
                message="Available",
                checked_at=self._clock(),
                priced_total=result.priced_total,
            )
            logger.info(f"Offer {offer.offer_id} confirmed available")
        else:
            self._status = AvailabilityStatus(
                state=AvailabilityState.UNAVAILABLE,
                message=result.detail or "Flight not available",
            )
            logger.warning(f"Offer {offer.offer_id} unavailable: {self._status.message}")
        return self._status

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        """True iff an ``available`` result is younger than the freshness window."""
        if self._status.state != AvailabilityState.AVAILABLE or self._status.checked_at is None:
            return False
        now = now or self._clock()
        return now - self._status.checked_at < self.freshness

    def time_remaining(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        if self._status.state != AvailabilityState.AVAILABLE or self._status.checked_at is None:
            return None
        now = now or self._clock()
        return max(self._status.checked_at + self.freshness - now, timedelta(0))

    def clear_if_expired(self, now: Optional[datetime] = None) -> Optional[AvailabilityExpired]:
        """Revert a stale ``available`` status to ``idle``."""
        if self._status.state != AvailabilityState.AVAILABLE or self.is_fresh(now):
            return None
        logger.warning("Availability confirmation expired")
        self.reset()
        return AvailabilityExpired()

    def assert_committable(self, now: Optional[datetime] = None) -> None:
        """
        Commit precondition: a fresh ``available`` status.

        Raises:
            OfferUnavailableError: If the offer was reported unbookable
            AvailabilityCheckFailed: If the last check failed
            AvailabilityNotConfirmedError: If never checked, still checking, or stale
        """
        state = self._status.state
        if state == AvailabilityState.UNAVAILABLE:
            raise OfferUnavailableError(self._status.message)
        if state == AvailabilityState.ERROR:
            raise AvailabilityCheckFailed(self._status.message or "Error checking availability")
        if state != AvailabilityState.AVAILABLE:
            raise AvailabilityNotConfirmedError(state.value)
        if not self.is_fresh(now):
            self.reset()
            raise AvailabilityNotConfirmedError(
                "stale",
                "The availability confirmation has expired. Please check availability again.",
            )

    def reset(self) -> None:
        self._status = AvailabilityStatus()

    def restore(self, status: AvailabilityStatus) -> None:
        """Reinstate a cached status; an interrupted ``checking`` becomes ``idle``."""
        if status.state == AvailabilityState.CHECKING:
            status = AvailabilityStatus()
        self._status = status
