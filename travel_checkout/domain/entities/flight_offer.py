"""Flight offer domain entities.

The offer is supplied by the reservation system's search step. The checkout
core only reads the fields modelled here; the untouched payload is kept in
``raw`` because the reservation system expects the offer back verbatim.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional


class TravelerType(str, Enum):
    """Traveler categories priced by the reservation system."""
    
    ADULT = "ADULT"
    CHILD = "CHILD"
    HELD_INFANT = "HELD_INFANT"
    
    @classmethod
    def parse(cls, value: Any) -> "TravelerType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(f"Unsupported traveler type: {value}") from None


@dataclass
class Segment:
    """One flown segment of an itinerary."""
    
    departure_airport: str
    arrival_airport: str
    departure_at: datetime
    arrival_at: datetime
    carrier_code: str
    number: str = ""
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Segment":
        departure = data.get("departure", {})
        arrival = data.get("arrival", {})
        return cls(
            departure_airport=departure.get("iataCode", ""),
            arrival_airport=arrival.get("iataCode", ""),
            departure_at=datetime.fromisoformat(departure["at"]),
            arrival_at=datetime.fromisoformat(arrival["at"]),
            carrier_code=data.get("carrierCode", ""),
            number=str(data.get("number", "")),
        )


@dataclass
class Itinerary:
    """One leg (outbound, return, ...) made of ordered segments."""
    
    segments: List[Segment]
    duration: Optional[str] = None


@dataclass
class OfferPrice:
    """Offer price; ``grand_total`` is the amount to charge."""
    
    total: Decimal
    grand_total: Decimal
    currency: str
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OfferPrice":
        total = _to_decimal(data.get("total"), "price.total")
        grand_total = _to_decimal(data.get("grandTotal", data.get("total")), "price.grandTotal")
        return cls(total=total, grand_total=grand_total, currency=data.get("currency", ""))


@dataclass
class TravelerPricing:
    """Per-traveler pricing entry; one per required passenger."""
    
    traveler_id: str
    traveler_type: TravelerType
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TravelerPricing":
        return cls(
            traveler_id=str(data.get("travelerId", "")),
            traveler_type=TravelerType.parse(data.get("travelerType")),
        )


@dataclass
class FlightOffer:
    """Domain entity representing a priced, bookable flight offer."""
    
    offer_id: str
    itineraries: List[Itinerary]
    price: OfferPrice
    traveler_pricings: List[TravelerPricing]
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)
    
    def __post_init__(self):
        """Validate flight offer entity."""
        if not self.traveler_pricings:
            raise ValueError("travelerPricings must contain at least one entry")
        if self.price.grand_total < 0:
            raise ValueError("price must be non-negative")
    
    @property
    def required_passenger_count(self) -> int:
        return len(self.traveler_pricings)
    
    @property
    def required_traveler_types(self) -> List[TravelerType]:
        """Traveler types in pricing order."""
        return [pricing.traveler_type for pricing in self.traveler_pricings]
    
    @property
    def carrier_codes(self) -> List[str]:
        codes: List[str] = []
        for itinerary in self.itineraries:
            for segment in itinerary.segments:
                if segment.carrier_code and segment.carrier_code not in codes:
                    codes.append(segment.carrier_code)
        return codes
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlightOffer":
        """
        Build an offer from a reservation-system flight-offer payload.
        
        Args:
            data: Flight offer as returned by the search or pricing API
            
        Returns:
            FlightOffer instance keeping ``data`` as its raw payload
            
        Raises:
            ValueError: If required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise ValueError("flight offer must be an object")
        try:
            itineraries = [
                Itinerary(
                    segments=[Segment.from_dict(s) for s in itinerary.get("segments", [])],
                    duration=itinerary.get("duration"),
                )
                for itinerary in data.get("itineraries", [])
            ]
            price = OfferPrice.from_dict(data.get("price") or {})
            pricings = [TravelerPricing.from_dict(p) for p in data.get("travelerPricings", [])]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed flight offer: {e}") from e
        
        return cls(
            offer_id=str(data.get("id", "")),
            itineraries=itineraries,
            price=price,
            traveler_pricings=pricings,
            raw=data,
        )
    
    def summary(self) -> Dict[str, Any]:
        """Compact view of the offer for API responses."""
        first = self.itineraries[0].segments[0] if self.itineraries and self.itineraries[0].segments else None
        last = self.itineraries[0].segments[-1] if self.itineraries and self.itineraries[0].segments else None
        return {
            "offer_id": self.offer_id,
            "origin": first.departure_airport if first else None,
            "destination": last.arrival_airport if last else None,
            "departure_at": first.departure_at.isoformat() if first else None,
            "carriers": self.carrier_codes,
            "legs": len(self.itineraries),
            "grand_total": str(self.price.grand_total),
            "currency": self.price.currency,
            "required_passengers": self.required_passenger_count,
            "traveler_types": [t.value for t in self.required_traveler_types],
        }


def _to_decimal(value: Any, field_name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"{field_name} is not a valid amount: {value!r}") from None
