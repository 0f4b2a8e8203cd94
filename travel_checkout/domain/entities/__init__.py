"""Domain entities - core business objects."""
from travel_checkout.domain.entities.flight_offer import (
    FlightOffer,
    Itinerary,
    OfferPrice,
    Segment,
    TravelerPricing,
    TravelerType,
)
from travel_checkout.domain.entities.passenger import Passenger, PassengerData
from travel_checkout.domain.entities.availability import (
    AvailabilityProbeResult,
    AvailabilityState,
    AvailabilityStatus,
)
from travel_checkout.domain.entities.reservation import (
    CommitResult,
    Customer,
    PaymentSession,
    PaymentSessionRequest,
    ReservationRecord,
    ReservationResult,
)
from travel_checkout.domain.entities.notice import CheckoutNotice

__all__ = [
    "FlightOffer",
    "Itinerary",
    "OfferPrice",
    "Segment",
    "TravelerPricing",
    "TravelerType",
    "Passenger",
    "PassengerData",
    "AvailabilityProbeResult",
    "AvailabilityState",
    "AvailabilityStatus",
    "CommitResult",
    "Customer",
    "PaymentSession",
    "PaymentSessionRequest",
    "ReservationRecord",
    "ReservationResult",
    "CheckoutNotice",
]
