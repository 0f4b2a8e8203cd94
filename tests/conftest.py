"""Shared fixtures: fake clock, in-memory providers and data builders."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable

import pytest

from travel_checkout.application.booking_session import BookingSession, SessionSettings
from travel_checkout.application.services.booking_commit import AgencyProfile
from travel_checkout.config.settings import TestingConfig
from travel_checkout.domain.entities.flight_offer import FlightOffer
from travel_checkout.domain.entities.passenger import PassengerData
from travel_checkout.infrastructure.clients.mock_clients import MockPaymentGateway, MockReservationClient


START = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

ADULT_DOB = "1994-01-15"
CHILD_DOB = "2015-03-10"
INFANT_DOB = "2023-09-01"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def offer_payload(
    traveler_types: Iterable[str] = ("ADULT",),
    offer_id: str = "1",
    grand_total: str = "250.00",
    currency: str = "EUR"
) -> Dict[str, Any]:
    return {
        "type": "flight-offer",
        "id": offer_id,
        "source": "GDS",
        "itineraries": [
            {
                "duration": "PT2H30M",
                "segments": [
                    {
                        "departure": {"iataCode": "MAD", "at": "2024-07-10T08:00:00"},
                        "arrival": {"iataCode": "CDG", "at": "2024-07-10T10:30:00"},
                        "carrierCode": "IB",
                        "number": "3436",
                    }
                ],
            }
        ],
        "price": {"currency": currency, "total": grand_total, "grandTotal": grand_total},
        "travelerPricings": [
            {"travelerId": str(index), "fareOption": "STANDARD", "travelerType": traveler_type}
            for index, traveler_type in enumerate(traveler_types, start=1)
        ],
    }


def make_offer(*traveler_types: str, **kwargs) -> FlightOffer:
    return FlightOffer.from_dict(offer_payload(traveler_types or ("ADULT",), **kwargs))


def passenger_data(traveler_type=None, date_of_birth: str = ADULT_DOB, **overrides) -> PassengerData:
    values = {
        "first_name": "Lucia",
        "last_name": "Garcia",
        "email": "lucia@example.com",
        "phone_number": "+34 612 345 678",
        "date_of_birth": date_of_birth,
        "gender": "FEMALE",
        "passport_number": "XDA123456",
        "traveler_type": traveler_type,
    }
    values.update(overrides)
    return PassengerData(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def reservation_client():
    return MockReservationClient()


@pytest.fixture
def payment_gateway():
    return MockPaymentGateway()


@pytest.fixture
def agency():
    return AgencyProfile.from_config(TestingConfig)


@pytest.fixture
def session(reservation_client, payment_gateway, agency, clock):
    return BookingSession(
        "test-session",
        reservation_client=reservation_client,
        payment_gateway=payment_gateway,
        agency=agency,
        settings=SessionSettings(),
        clock=clock,
    )
