"""Booking checkout session aggregate.

A session owns the selected offer, the passenger roster, the availability
status and any reservation awaiting payment. It is mutated only through the
operations below; UI observers subscribe to change notifications instead of
reading shared state.
"""
import itertools
import logging
from collections import OrderedDict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Deque, Dict, List, Optional

from travel_checkout.application.services.availability import AvailabilityReconciler
from travel_checkout.application.services.booking_commit import AgencyProfile, BookingCommitOrchestrator
from travel_checkout.application.services.expiration_scheduler import ExpirationScheduler
from travel_checkout.application.services.flight_selection import FlightSelectionHolder
from travel_checkout.application.services.passenger_roster import PassengerRoster
from travel_checkout.domain.entities.availability import AvailabilityStatus
from travel_checkout.domain.entities.flight_offer import FlightOffer, TravelerType
from travel_checkout.domain.entities.notice import CheckoutNotice
from travel_checkout.domain.entities.passenger import Passenger, PassengerData
from travel_checkout.domain.entities.reservation import CommitResult, Customer, ReservationRecord
from travel_checkout.domain.exceptions import (
    CheckoutError,
    NoFlightSelectedError,
    OrphanedInfantError,
    ReservationHeldError,
    SessionClosedError,
    ValidationError,
)
from travel_checkout.domain.interfaces.payment_gateway import IPaymentGateway
from travel_checkout.domain.interfaces.reservation_client import IReservationClient
from travel_checkout.utils.clock import Clock, format_countdown, utcnow


logger = logging.getLogger(__name__)

ChangeObserver = Callable[["BookingSession", str], None]


@dataclass
class SessionSettings:
    """Timer durations and payload defaults of a checkout session."""

    flight_hold: timedelta = timedelta(minutes=20)
    passenger_retention: timedelta = timedelta(minutes=20)
    availability_freshness: timedelta = timedelta(minutes=10)
    default_currency: str = "usd"
    country_calling_code: str = "34"

    @classmethod
    def from_config(cls, config) -> "SessionSettings":
        return cls(
            flight_hold=timedelta(seconds=config.FLIGHT_HOLD_SECONDS),
            passenger_retention=timedelta(seconds=config.PASSENGER_RETENTION_SECONDS),
            availability_freshness=timedelta(seconds=config.AVAILABILITY_FRESHNESS_SECONDS),
            default_currency=config.DEFAULT_CURRENCY,
            country_calling_code=config.DEFAULT_COUNTRY_CALLING_CODE,
        )


class BookingSession:
    """
    Single-owner checkout session.

    ``generation`` changes whenever the session's subject changes (new
    offer, hold expiry, teardown); responses that arrive for an older
    generation are discarded.
    """

    def __init__(
        self,
        session_id: str,
        reservation_client: IReservationClient,
        payment_gateway: IPaymentGateway,
        agency: AgencyProfile,
        settings: Optional[SessionSettings] = None,
        clock: Optional[Clock] = None
    ):
        self.session_id = session_id
        self.settings = settings or SessionSettings()
        self._clock = clock or utcnow
        self.created_at = self._clock()

        self.flight = FlightSelectionHolder(self.settings.flight_hold, self._clock)
        self.roster = PassengerRoster(self.settings.passenger_retention, self._clock)
        self.availability = AvailabilityReconciler(
            reservation_client, self.settings.availability_freshness, self._clock
        )
        self.orchestrator = BookingCommitOrchestrator(
            reservation_client,
            payment_gateway,
            agency,
            default_currency=self.settings.default_currency,
            country_calling_code=self.settings.country_calling_code,
            clock=self._clock,
        )
        self.scheduler = ExpirationScheduler(self._clock)

        self.generation = 0
        self.closed = False
        self.reservation: Optional[ReservationRecord] = None
        self.last_commit: Optional[CommitResult] = None

        self._notices: Deque[CheckoutNotice] = deque()
        self._observers: "OrderedDict[int, ChangeObserver]" = OrderedDict()
        self._observer_tokens = itertools.count(1)

        # Subscription order fixes the order of expiry checks within a tick.
        self.scheduler.subscribe(self._expire_flight)
        self.scheduler.subscribe(self._expire_passengers)
        self.scheduler.subscribe(self._expire_availability)

    # Flight selection

    def select_flight(self, offer: FlightOffer, now: Optional[datetime] = None) -> None:
        """Hold a new offer; availability must be checked again for it."""
        self._ensure_open()
        if self.reservation is not None:
            self._abandon_reservation("a different flight was selected")
        self.generation += 1
        self.availability.reset()
        self.flight.select(offer, now)
        self._changed("flight_selected")

    # Passengers

    def add_passenger(self, data: PassengerData, now: Optional[datetime] = None) -> Passenger:
        self._ensure_open()
        self._ensure_roster_editable()
        passenger = self.roster.add(data, self._require_offer(), now)
        self._changed("passenger_added")
        return passenger

    def update_passenger(self, passenger_id: str, data: PassengerData, now: Optional[datetime] = None) -> Passenger:
        self._ensure_open()
        self._ensure_roster_editable()
        passenger = self.roster.update(passenger_id, data, self._require_offer(), now)
        self._changed("passenger_updated")
        return passenger

    def remove_passenger(self, passenger_id: str, now: Optional[datetime] = None) -> Passenger:
        self._ensure_open()
        self._ensure_roster_editable()
        try:
            removed = self.roster.remove(passenger_id, now)
        except OrphanedInfantError as e:
            # The removal itself went through; surface the orphaned infants.
            self._push_notice(e, now)
            self._changed("passenger_removed")
            raise
        self._changed("passenger_removed")
        return removed

    def clear_passengers(self) -> None:
        self._ensure_open()
        self._ensure_roster_editable()
        self.roster.clear()
        self._changed("passengers_cleared")

    def validate_passenger(
        self,
        data: PassengerData,
        traveler_type: Optional[TravelerType] = None
    ) -> Optional[ValidationError]:
        """Advisory check for partially entered data; never mutates."""
        if traveler_type is None and data.traveler_type is None:
            offer = self.flight.get()
            traveler_type = self.roster.next_traveler_type(offer) if offer else None
        return self.roster.validate(data, traveler_type)

    # Availability and commit

    def check_availability(self, dummy_traveler: Optional[Dict[str, Any]] = None) -> AvailabilityStatus:
        """Explicit user action: probe the held offer's availability."""
        self._ensure_open()
        offer = self._require_offer()
        generation = self.generation
        status = self.availability.check(
            offer,
            dummy_traveler,
            is_current=lambda: not self.closed and self.generation == generation,
        )
        if not self.closed:
            self._changed("availability_checked")
        return status

    def commit(self, customer: Customer, now: Optional[datetime] = None) -> Optional[CommitResult]:
        self._ensure_open()
        return self.orchestrator.commit(self, customer, now)

    def release_reservation(self) -> Optional[str]:
        self._ensure_open()
        return self.orchestrator.release_reservation(self)

    def hold_reservation(self, record: ReservationRecord) -> None:
        self.reservation = record
        self._changed("reservation_held")

    def drop_reservation(self) -> None:
        self.reservation = None
        self._changed("reservation_released")

    def complete_commit(self) -> None:
        """Purge passenger data and session state after a successful commit."""
        record = self.reservation
        self.roster.clear()
        self.flight.clear()
        self.availability.reset()
        self.reservation = None
        if record is not None:
            logger.info(f"Session {self.session_id} purged after commit of reservation {record.reservation_id}")
        self.teardown()

    # Lifecycle

    def tick(self, now: Optional[datetime] = None) -> List[CheckoutNotice]:
        """Evaluate every timer against one snapshot of ``now``."""
        if self.closed:
            return []
        return self.scheduler.tick(now)

    def teardown(self) -> None:
        """Release timers and invalidate pending responses; idempotent."""
        if self.closed:
            return
        self.closed = True
        self.generation += 1
        self.scheduler.shutdown()
        logger.info(f"Checkout session {self.session_id} torn down")
        self._changed("torn_down")
        self._observers.clear()

    def subscribe_changes(self, observer: ChangeObserver) -> int:
        token = next(self._observer_tokens)
        self._observers[token] = observer
        return token

    def unsubscribe_changes(self, token: int) -> bool:
        return self._observers.pop(token, None) is not None

    def drain_notices(self) -> List[CheckoutNotice]:
        notices = list(self._notices)
        self._notices.clear()
        return notices

    @property
    def pending_notices(self) -> List[CheckoutNotice]:
        return list(self._notices)

    def describe(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """State view for the UI layer."""
        now = now or self._clock()
        offer = self.flight.get()
        availability = self.availability.status
        hold_left = self.flight.time_remaining(now)
        freshness_left = self.availability.time_remaining(now)
        return {
            "session_id": self.session_id,
            "closed": self.closed,
            "flight": offer.summary() if offer else None,
            "flight_hold": {
                "remaining_seconds": int(hold_left.total_seconds()) if hold_left is not None else None,
                "countdown": format_countdown(hold_left),
            },
            "passengers": [p.to_dict() for p in self.roster],
            "passenger_retention": {
                "remaining_seconds": (
                    int(self.roster.time_remaining(now).total_seconds())
                    if self.roster.time_remaining(now) is not None else None
                ),
            },
            "required_passengers": offer.required_passenger_count if offer else 0,
            "progress": self.roster.progress(offer),
            "next_traveler_type": (
                self.roster.next_traveler_type(offer).value
                if offer and self.roster.next_traveler_type(offer) else None
            ),
            "availability": {
                **availability.to_dict(),
                "fresh": self.availability.is_fresh(now),
                "countdown": format_countdown(freshness_left),
            },
            "reservation": self.reservation.to_dict() if self.reservation else None,
            "commit_in_flight": self.orchestrator.in_flight,
        }

    # Timer callbacks

    def _expire_flight(self, now: datetime) -> Optional[CheckoutNotice]:
        expired = self.flight.clear_if_expired(now)
        if expired is None:
            return None
        self.generation += 1
        self.availability.reset()
        return self._push_notice(expired, now)

    def _expire_passengers(self, now: datetime) -> Optional[CheckoutNotice]:
        expired = self.roster.clear_if_expired(now)
        if expired is None:
            return None
        return self._push_notice(expired, now)

    def _expire_availability(self, now: datetime) -> Optional[CheckoutNotice]:
        expired = self.availability.clear_if_expired(now)
        if expired is None:
            return None
        return self._push_notice(expired, now)

    # Internals

    def _abandon_reservation(self, reason: str) -> None:
        record = self.reservation
        logger.error(
            f"Reservation {record.reservation_id} of session {self.session_id} is unpaid and "
            f"no longer attached: {reason}"
        )
        self._notices.append(CheckoutNotice(
            code="reservation_abandoned",
            message=(
                f"Your earlier booking {record.reservation_id} was not paid and has been set aside. "
                "Contact support if you need it cancelled."
            ),
            severity="critical",
            next_step="none",
            created_at=self._clock(),
            details=record.to_dict(),
        ))
        self.reservation = None

    def _push_notice(self, error: CheckoutError, now: Optional[datetime] = None) -> CheckoutNotice:
        notice = error.to_notice(now or self._clock())
        self._notices.append(notice)
        self._changed(error.code)
        return notice

    def _require_offer(self) -> FlightOffer:
        offer = self.flight.get()
        if offer is None:
            raise NoFlightSelectedError()
        return offer

    def _ensure_open(self) -> None:
        if self.closed:
            raise SessionClosedError(self.session_id)

    def _ensure_roster_editable(self) -> None:
        if self.reservation is not None:
            raise ReservationHeldError(self.reservation.reservation_id)

    def _changed(self, event: str) -> None:
        for observer in list(self._observers.values()):
            try:
                observer(self, event)
            except Exception as e:
                logger.error(f"Session observer failed on '{event}': {e}", exc_info=True)
