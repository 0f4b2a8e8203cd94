"""Holder for the single selected flight offer."""
import logging
from datetime import datetime, timedelta
from typing import Optional

from travel_checkout.domain.entities.flight_offer import FlightOffer
from travel_checkout.domain.exceptions import FlightHoldExpired
from travel_checkout.utils.clock import Clock, utcnow


logger = logging.getLogger(__name__)

DEFAULT_HOLD = timedelta(minutes=20)


class FlightSelectionHolder:
    """Holds at most one offer for a fixed hold duration."""
    
    def __init__(self, hold_duration: timedelta = DEFAULT_HOLD, clock: Optional[Clock] = None):
        self.hold_duration = hold_duration
        self._clock = clock or utcnow
        self._offer: Optional[FlightOffer] = None
        self._selected_at: Optional[datetime] = None
    
    @property
    def selected_at(self) -> Optional[datetime]:
        return self._selected_at
    
    @property
    def required_passenger_count(self) -> int:
        return self._offer.required_passenger_count if self._offer else 0
    
    def select(self, offer: FlightOffer, now: Optional[datetime] = None) -> None:
        """Replace any held offer and restart the hold timer."""
        self._offer = offer
        self._selected_at = now or self._clock()
        logger.info(
            f"Flight offer {offer.offer_id or '<unnamed>'} held for "
            f"{int(self.hold_duration.total_seconds())}s "
            f"({offer.required_passenger_count} passenger(s))"
        )
    
    def get(self) -> Optional[FlightOffer]:
        return self._offer
    
    def time_remaining(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        """Hold time left, floored at zero; None when nothing is held."""
        if self._offer is None or self._selected_at is None:
            return None
        now = now or self._clock()
        remaining = self._selected_at + self.hold_duration - now
        return max(remaining, timedelta(0))
    
    def clear_if_expired(self, now: Optional[datetime] = None) -> Optional[FlightHoldExpired]:
        """
        Drop the offer once its hold has run out.
        
        Returns:
            FlightHoldExpired signal for the caller to surface (and to
            redirect back to search), or None if nothing expired
        """
        remaining = self.time_remaining(now)
        if remaining is None or remaining > timedelta(0):
            return None
        logger.warning(f"Flight hold expired for offer {self._offer.offer_id or '<unnamed>'}")
        self.clear()
        return FlightHoldExpired()
    
    def clear(self) -> None:
        self._offer = None
        self._selected_at = None
    
    def restore(self, offer: FlightOffer, selected_at: datetime) -> None:
        """Reinstate a cached selection with its original timer start."""
        self._offer = offer
        self._selected_at = selected_at
