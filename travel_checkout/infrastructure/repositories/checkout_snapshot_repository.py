"""Persistence of checkout session snapshots."""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from travel_checkout.application.booking_session import BookingSession
from travel_checkout.domain.entities.availability import AvailabilityStatus
from travel_checkout.domain.entities.flight_offer import FlightOffer
from travel_checkout.domain.entities.passenger import Passenger
from travel_checkout.domain.entities.reservation import ReservationRecord
from travel_checkout.domain.interfaces.session_storage import ISessionStorage
from travel_checkout.utils.clock import utcnow


logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class CheckoutSnapshotRepository:
    """
    Saves and restores the advisory state of a checkout session.

    Timer start times are stored as-is, so a restored session expires at
    the same instant it would have had it never been unloaded.
    """

    def __init__(self, storage: ISessionStorage, ttl: Optional[int] = None):
        self.storage = storage
        self.ttl = ttl

    def to_snapshot(self, session: BookingSession, now: Optional[datetime] = None) -> Dict[str, Any]:
        offer = session.flight.get()
        touched_at = session.roster.touched_at
        return {
            "version": SNAPSHOT_VERSION,
            "session_id": session.session_id,
            "written_at": (now or utcnow()).isoformat(),
            "flight": {
                "offer": offer.raw,
                "selected_at": session.flight.selected_at.isoformat(),
            } if offer is not None else None,
            "passengers": [p.to_dict() for p in session.roster],
            "passengers_touched_at": touched_at.isoformat() if touched_at else None,
            "availability": session.availability.status.to_dict(),
            "reservation": session.reservation.to_dict() if session.reservation else None,
        }

    def save(self, session: BookingSession, now: Optional[datetime] = None) -> None:
        self.storage.set_session(session.session_id, self.to_snapshot(session, now), ttl=self.ttl)

    def delete(self, session_id: str) -> None:
        self.storage.delete_session(session_id)

    def exists(self, session_id: str) -> bool:
        return self.storage.get_session(session_id) is not None

    def load(
        self,
        session_id: str,
        session_factory: Callable[[str], BookingSession],
        now: Optional[datetime] = None
    ) -> Optional[BookingSession]:
        """
        Rebuild a session from its snapshot.

        The restored session is ticked once with ``now`` so that any timer
        that ran out while it was unloaded fires immediately.

        Returns:
            The restored session, or None when no usable snapshot exists
        """
        data = self.storage.get_session(session_id)
        if data is None:
            return None
        if data.get("version") != SNAPSHOT_VERSION:
            logger.warning(f"Ignoring snapshot of session {session_id} with version {data.get('version')}")
            return None

        session = session_factory(session_id)
        try:
            self._restore(session, data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Discarding unreadable snapshot of session {session_id}: {e}")
            session.teardown()
            return None

        notices = session.tick(now)
        logger.info(
            f"Session {session_id} restored from snapshot "
            f"({len(session.roster)} passenger(s), {len(notices)} expiry notice(s))"
        )
        return session

    @staticmethod
    def _restore(session: BookingSession, data: Dict[str, Any]) -> None:
        flight = data.get("flight")
        if flight:
            session.flight.restore(
                FlightOffer.from_dict(flight["offer"]),
                datetime.fromisoformat(flight["selected_at"]),
            )

        touched_at = data.get("passengers_touched_at")
        session.roster.restore(
            [Passenger.from_dict(p) for p in data.get("passengers") or []],
            datetime.fromisoformat(touched_at) if touched_at else None,
        )

        if data.get("availability"):
            session.availability.restore(AvailabilityStatus.from_dict(data["availability"]))

        if data.get("reservation"):
            session.reservation = ReservationRecord.from_dict(data["reservation"])
