"""Two-phase commit: reserve with the airline system, then open a payment session.

The two remote systems share no transaction. A failure in phase 1 leaves
nothing behind; a failure in phase 2 leaves a live, unpaid reservation that
stays attached to the session and is reused by the next attempt.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import requests

from travel_checkout.domain.entities.flight_offer import TravelerType
from travel_checkout.domain.entities.passenger import Passenger
from travel_checkout.domain.entities.reservation import (
    CommitResult,
    Customer,
    PaymentSessionRequest,
    ReservationRecord,
)
from travel_checkout.domain.exceptions import (
    AssociatedAdultError,
    ExternalServiceError,
    MissingFieldsError,
    NoFlightSelectedError,
    PaymentSessionFailed,
    ReservationFailed,
    ReservationReleaseFailed,
    SessionClosedError,
)
from travel_checkout.domain.interfaces.payment_gateway import IPaymentGateway
from travel_checkout.domain.interfaces.reservation_client import IReservationClient
from travel_checkout.utils.clock import Clock, utcnow
from travel_checkout.utils.validators import PhoneNumberValidator, is_valid_email

if TYPE_CHECKING:
    from travel_checkout.application.booking_session import BookingSession


logger = logging.getLogger(__name__)

REMOTE_ERRORS = (requests.RequestException, ExternalServiceError, ValueError, KeyError)


@dataclass
class AgencyProfile:
    """Fixed agency metadata attached to every reservation."""

    name: str
    contact_first_name: str
    contact_last_name: str
    email: str
    phone: str
    phone_country_code: str
    address_line: str
    postal_code: str
    city: str
    country_code: str
    ticketing_delay: str = "6D"

    @classmethod
    def from_config(cls, config) -> "AgencyProfile":
        return cls(
            name=config.AGENCY_NAME,
            contact_first_name=config.AGENCY_CONTACT_FIRST_NAME,
            contact_last_name=config.AGENCY_CONTACT_LAST_NAME,
            email=config.AGENCY_EMAIL,
            phone=config.AGENCY_PHONE,
            phone_country_code=config.AGENCY_PHONE_COUNTRY_CODE,
            address_line=config.AGENCY_ADDRESS_LINE,
            postal_code=config.AGENCY_POSTAL_CODE,
            city=config.AGENCY_CITY,
            country_code=config.AGENCY_COUNTRY_CODE,
            ticketing_delay=config.TICKETING_DELAY,
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "remarks": {
                "general": [
                    {
                        "subType": "GENERAL_MISCELLANEOUS",
                        "text": f"ONLINE BOOKING FROM {self.name}",
                    }
                ]
            },
            "ticketingAgreement": {
                "option": "DELAY_TO_CANCEL",
                "delay": self.ticketing_delay,
            },
            "contacts": [
                {
                    "addresseeName": {
                        "firstName": self.contact_first_name,
                        "lastName": self.contact_last_name,
                    },
                    "companyName": self.name,
                    "purpose": "STANDARD",
                    "phones": [
                        {
                            "deviceType": "LANDLINE",
                            "countryCallingCode": self.phone_country_code,
                            "number": self.phone,
                        }
                    ],
                    "emailAddress": self.email,
                    "address": {
                        "lines": [self.address_line],
                        "postalCode": self.postal_code,
                        "cityName": self.city,
                        "countryCode": self.country_code,
                    },
                }
            ],
        }


def build_travelers(passengers: List[Passenger], country_calling_code: str = "34") -> List[Dict[str, Any]]:
    """
    Convert the roster into the reservation system's traveler records.

    Travelers get 1-based sequential ids in roster order; an infant's
    ``associatedAdultId`` is the adult's sequential id, never the roster id.

    Raises:
        AssociatedAdultError: If an infant's adult is not in the list
    """
    positions = {p.passenger_id: str(index) for index, p in enumerate(passengers, start=1)}
    travelers = []
    for index, passenger in enumerate(passengers, start=1):
        digits, _ = PhoneNumberValidator.normalize(passenger.phone_number)
        traveler: Dict[str, Any] = {
            "id": str(index),
            "dateOfBirth": passenger.date_of_birth,
            "name": {
                "firstName": passenger.first_name,
                "lastName": passenger.last_name,
            },
            "gender": passenger.gender,
            "travelerType": passenger.traveler_type.value,
            "contact": {
                "emailAddress": passenger.email,
                "phones": [
                    {
                        "deviceType": "MOBILE",
                        "countryCallingCode": country_calling_code,
                        "number": digits,
                    }
                ],
            },
            "documents": [
                {
                    "documentType": "PASSPORT",
                    "number": passenger.passport_number,
                    "holder": True,
                }
            ],
        }
        if passenger.traveler_type == TravelerType.HELD_INFANT:
            adult_position = positions.get(passenger.associated_adult_id)
            if adult_position is None:
                raise AssociatedAdultError(
                    f"Infant {passenger.full_name} must be assigned to an adult",
                    {"passenger_id": passenger.passenger_id},
                )
            traveler["associatedAdultId"] = adult_position
        travelers.append(traveler)
    return travelers


class BookingCommitOrchestrator:
    """
    Drives reserve-then-pay for one checkout session.

    Re-invoking ``commit`` after a payment failure skips phase 1 and
    retries phase 2 with the reservation already held by the session.
    """

    def __init__(
        self,
        reservation_client: IReservationClient,
        payment_gateway: IPaymentGateway,
        agency: AgencyProfile,
        default_currency: str = "usd",
        country_calling_code: str = "34",
        clock: Optional[Clock] = None
    ):
        self._reservations = reservation_client
        self._payments = payment_gateway
        self._agency = agency
        self._default_currency = default_currency
        self._country_calling_code = country_calling_code
        self._clock = clock or utcnow
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def commit(
        self,
        session: "BookingSession",
        customer: Customer,
        now: Optional[datetime] = None
    ) -> Optional[CommitResult]:
        """
        Execute the two-phase commit.

        Args:
            session: Session providing offer, roster, availability and any held reservation
            customer: Paying customer's identity
            now: Time used for the freshness precondition

        Returns:
            CommitResult with the payment redirect URL; None when the call
            was a no-op (commit already in flight) or the session was torn
            down while a response was pending

        Raises:
            SessionClosedError: If the session has been torn down
            NoFlightSelectedError: If no offer is held
            RosterIncompleteError, AssociatedAdultError: If the roster is not exactly full
            AvailabilityError: If availability is not ``available`` and fresh
            MissingFieldsError: If the customer has no valid email
            ReservationFailed: If phase 1 fails (roster preserved)
            PaymentSessionFailed: If phase 2 fails (roster and reservation preserved)
        """
        if self._in_flight:
            logger.warning(f"Commit already in flight for session {session.session_id}; ignoring")
            return None
        if session.closed:
            raise SessionClosedError(session.session_id)

        now = now or self._clock()
        offer = session.flight.get()
        if offer is None:
            raise NoFlightSelectedError()
        session.roster.assert_complete(offer)
        session.availability.assert_committable(now)
        if not is_valid_email(customer.email):
            raise MissingFieldsError(["customer_email"], "A valid customer email is required to start the payment")

        generation = session.generation
        self._in_flight = True
        try:
            record = session.reservation
            if record is None:
                record = self._reserve(session, offer, generation)
                if record is None:
                    return None
            else:
                logger.info(
                    f"Reusing reservation {record.reservation_id} for session "
                    f"{session.session_id}; skipping reservation phase"
                )
            return self._pay(session, record, customer, generation)
        finally:
            self._in_flight = False

    def release_reservation(self, session: "BookingSession") -> Optional[str]:
        """
        Cancel the reservation held by the session, at the user's request.

        Returns:
            The cancelled reservation id, or None if none was held

        Raises:
            ReservationReleaseFailed: If the reservation system refuses or fails
        """
        record = session.reservation
        if record is None:
            return None
        if self._in_flight:
            logger.warning(f"Commit in flight for session {session.session_id}; not releasing reservation")
            return None
        self._in_flight = True
        try:
            self._reservations.cancel_reservation(record.reservation_id)
        except REMOTE_ERRORS as e:
            detail = getattr(e, "detail", None) or str(e)
            logger.error(f"Failed to cancel reservation {record.reservation_id}: {detail}")
            raise ReservationReleaseFailed(record.reservation_id, detail) from e
        finally:
            self._in_flight = False
        session.drop_reservation()
        logger.info(f"Reservation {record.reservation_id} cancelled at user request")
        return record.reservation_id

    def _reserve(self, session: "BookingSession", offer, generation: int) -> Optional[ReservationRecord]:
        travelers = build_travelers(session.roster.passengers, self._country_calling_code)
        logger.info(
            f"Creating reservation for session {session.session_id} "
            f"({len(travelers)} traveler(s), offer {offer.offer_id})"
        )
        try:
            result = self._reservations.create_reservation(offer.raw, travelers, self._agency.to_payload())
        except REMOTE_ERRORS as e:
            detail = getattr(e, "detail", None) or str(e)
            if session.generation != generation:
                logger.warning(f"Reservation failure for torn-down session {session.session_id}: {detail}")
                return None
            logger.error(f"Reservation failed for session {session.session_id}: {detail}")
            raise ReservationFailed(detail) from e

        if session.generation != generation:
            # Nothing owns this reservation any more; log it so it can be found.
            logger.error(
                f"Reservation {result.reservation_id} created for torn-down session "
                f"{session.session_id}; it is unpaid and must be released manually"
            )
            return None

        record = ReservationRecord(
            reservation_id=result.reservation_id,
            offer_id=offer.offer_id,
            grand_total=result.grand_total,
            currency=(result.currency or offer.price.currency or self._default_currency).lower(),
            created_at=self._clock(),
        )
        if record.grand_total != offer.price.grand_total:
            logger.info(
                f"Confirmed total {record.grand_total} differs from displayed "
                f"{offer.price.grand_total} for reservation {record.reservation_id}"
            )
        session.hold_reservation(record)
        logger.info(f"Reservation {record.reservation_id} created for session {session.session_id}")
        return record

    def _pay(
        self,
        session: "BookingSession",
        record: ReservationRecord,
        customer: Customer,
        generation: int
    ) -> Optional[CommitResult]:
        request = PaymentSessionRequest(
            reservation_id=record.reservation_id,
            amount=record.grand_total,
            currency=record.currency,
            customer=customer,
            metadata={
                "reservationId": record.reservation_id,
                "userId": customer.user_id,
                "customerEmail": customer.email,
                "customerName": customer.name,
                "bookingDate": self._clock().strftime("%Y-%m-%d %H:%M"),
            },
        )
        record.payment_attempts += 1
        try:
            payment = self._payments.create_checkout_session(request)
        except REMOTE_ERRORS as e:
            detail = getattr(e, "detail", None) or str(e)
            if session.generation != generation:
                logger.warning(
                    f"Payment failure for torn-down session {session.session_id} "
                    f"(reservation {record.reservation_id}): {detail}"
                )
                return None
            record.last_error = detail
            session.hold_reservation(record)
            logger.error(
                f"Payment session failed for reservation {record.reservation_id} "
                f"(attempt {record.payment_attempts}): {detail}"
            )
            raise PaymentSessionFailed(record.reservation_id, detail) from e

        if session.generation != generation:
            logger.warning(
                f"Payment session {payment.session_id} created for torn-down session "
                f"{session.session_id}; not applying"
            )
            return None

        result = CommitResult(
            reservation_id=record.reservation_id,
            amount=record.grand_total,
            currency=record.currency,
            redirect_url=payment.redirect_url,
            payment_session_id=payment.session_id,
        )
        session.complete_commit()
        logger.info(
            f"Checkout committed for session {session.session_id}: reservation "
            f"{record.reservation_id}, payment session {payment.session_id}"
        )
        return result
