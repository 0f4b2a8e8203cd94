"""Application services module.

Core checkout components, provider-agnostic and driven by the session.
"""
from travel_checkout.application.services.expiration_scheduler import ExpirationScheduler
from travel_checkout.application.services.flight_selection import FlightSelectionHolder
from travel_checkout.application.services.passenger_roster import PassengerRoster, validate_age
from travel_checkout.application.services.availability import AvailabilityReconciler, DUMMY_TRAVELER
from travel_checkout.application.services.booking_commit import (
    AgencyProfile,
    BookingCommitOrchestrator,
    build_travelers,
)

__all__ = [
    "ExpirationScheduler",
    "FlightSelectionHolder",
    "PassengerRoster",
    "validate_age",
    "AvailabilityReconciler",
    "DUMMY_TRAVELER",
    "AgencyProfile",
    "BookingCommitOrchestrator",
    "build_travelers",
]
