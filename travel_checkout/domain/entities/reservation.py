"""Reservation and payment handoff entities."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional


@dataclass
class Customer:
    """Identity of the paying customer, supplied by the authenticated caller."""
    
    user_id: str = ""
    email: str = ""
    name: str = ""
    
    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Customer":
        data = data or {}
        return cls(
            user_id=str(data.get("user_id") or data.get("userId") or ""),
            email=str(data.get("email") or "").strip(),
            name=str(data.get("name") or ""),
        )


@dataclass
class ReservationResult:
    """Successful response of the reservation endpoint."""
    
    reservation_id: str
    confirmed_offer: Dict[str, Any]
    grand_total: Decimal
    currency: str


@dataclass
class ReservationRecord:
    """Reservation held by a session between phase 1 and a successful phase 2."""
    
    reservation_id: str
    offer_id: str
    grand_total: Decimal
    currency: str
    created_at: datetime
    payment_attempts: int = 0
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "offer_id": self.offer_id,
            "grand_total": str(self.grand_total),
            "currency": self.currency,
            "created_at": self.created_at.isoformat(),
            "payment_attempts": self.payment_attempts,
            "last_error": self.last_error,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReservationRecord":
        return cls(
            reservation_id=data["reservation_id"],
            offer_id=data.get("offer_id", ""),
            grand_total=Decimal(data["grand_total"]),
            currency=data["currency"],
            created_at=datetime.fromisoformat(data["created_at"]),
            payment_attempts=int(data.get("payment_attempts", 0)),
            last_error=data.get("last_error"),
        )


@dataclass
class PaymentSessionRequest:
    """Request sent to the payment gateway."""
    
    reservation_id: str
    amount: Decimal
    currency: str
    customer: Customer
    item_title: str = "Flight Booking"
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class PaymentSession:
    """Payment gateway session the user is redirected to."""
    
    session_id: str
    redirect_url: str


@dataclass
class CommitResult:
    """Outcome of a fully successful two-phase commit."""
    
    reservation_id: str
    amount: Decimal
    currency: str
    redirect_url: str
    payment_session_id: str
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "amount": str(self.amount),
            "currency": self.currency,
            "redirect_url": self.redirect_url,
            "payment_session_id": self.payment_session_id,
        }
