"""Checkout error taxonomy.

Every error carries a stable ``code``, a ``severity`` and the ``next_step``
the user should take. None of them leave the session in a corrupted state.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from travel_checkout.domain.entities.notice import CheckoutNotice


class CheckoutError(Exception):
    """Base class for all checkout errors."""
    
    code = "checkout_error"
    severity = "error"
    next_step = "none"
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "next_step": self.next_step,
            "details": self.details,
        }
    
    def to_notice(self, created_at: Optional[datetime] = None) -> CheckoutNotice:
        return CheckoutNotice(
            code=self.code,
            message=self.message,
            severity=self.severity,
            next_step=self.next_step,
            redirect_to_search=getattr(self, "redirect_to_search", False),
            created_at=created_at,
            details=dict(self.details),
        )


# Validation errors: local, recoverable, the user corrects input.

class ValidationError(CheckoutError):
    code = "validation_error"
    severity = "warning"
    next_step = "correct_input"


class MissingFieldsError(ValidationError):
    code = "missing_fields"
    
    def __init__(self, fields: Iterable[str], message: Optional[str] = None):
        self.fields: List[str] = list(fields)
        super().__init__(
            message or f"Missing or invalid fields: {', '.join(self.fields)}",
            {"fields": self.fields},
        )


class AgeMismatchError(ValidationError):
    """Date of birth is inconsistent with the traveler type."""
    
    code = "age_mismatch"
    
    def __init__(self, traveler_type: str, age: int, reason: str):
        self.traveler_type = traveler_type
        self.age = age
        self.reason = reason
        super().__init__(reason, {"traveler_type": traveler_type, "age": age})


class RosterFullError(ValidationError):
    code = "roster_full"
    
    def __init__(self, required: int, traveler_type: Optional[str] = None):
        if traveler_type:
            message = f"All {traveler_type} seats of this offer already have a passenger"
        else:
            message = f"This offer allows {required} passenger(s) and all have been added"
        super().__init__(message, {"required": required, "traveler_type": traveler_type})


class RosterIncompleteError(ValidationError):
    code = "roster_incomplete"
    
    def __init__(self, current: int, required: int, message: Optional[str] = None):
        super().__init__(
            message or f"Please add all {required} passenger(s) before proceeding ({current} added)",
            {"current": current, "required": required},
        )


class PassengerNotFoundError(ValidationError):
    code = "passenger_not_found"
    
    def __init__(self, passenger_id: str):
        super().__init__(f"Passenger {passenger_id} not found", {"passenger_id": passenger_id})


class AssociatedAdultError(ValidationError):
    """Infant-adult association is missing, dangling or invalid."""
    
    code = "associated_adult_invalid"


class OrphanedInfantError(AssociatedAdultError):
    """Raised after removing an adult that one or more infants referenced."""
    
    code = "associated_adult_removed"
    
    def __init__(self, adult_id: str, infant_ids: Iterable[str]):
        self.adult_id = adult_id
        self.infant_ids = list(infant_ids)
        super().__init__(
            "The removed adult was travelling with an infant; "
            "assign another adult to the infant before proceeding",
            {"adult_id": adult_id, "infant_ids": self.infant_ids},
        )


class ReservationHeldError(ValidationError):
    """Passenger edits are locked while an unpaid reservation is attached."""

    code = "reservation_held"

    def __init__(self, reservation_id: str):
        super().__init__(
            f"Booking {reservation_id} was reserved with the current passengers. "
            "Complete the payment or release the booking before changing passengers.",
            {"reservation_id": reservation_id},
        )


class NoFlightSelectedError(ValidationError):
    code = "no_flight_selected"
    next_step = "re_search"
    
    def __init__(self, message: str = "No flight is selected"):
        super().__init__(message)


# Expiry errors: session-level, reset the affected sub-state.

class ExpiryError(CheckoutError):
    code = "expired"
    severity = "warning"
    next_step = "retry"
    redirect_to_search = False


class FlightHoldExpired(ExpiryError):
    code = "flight_hold_expired"
    next_step = "re_search"
    redirect_to_search = True
    
    def __init__(self, message: str = "Your flight selection has expired after 20 minutes. Please search for flights again."):
        super().__init__(message)


class PassengerRetentionExpired(ExpiryError):
    code = "passenger_data_expired"
    next_step = "correct_input"
    
    def __init__(self, message: str = "Your passenger details have expired after 20 minutes and have been cleared."):
        super().__init__(message)


class AvailabilityExpired(ExpiryError):
    code = "availability_expired"
    
    def __init__(self, message: str = "The availability confirmation has expired. Please check availability again."):
        super().__init__(message)


# Availability errors: block commit.

class AvailabilityError(CheckoutError):
    code = "availability_error"
    severity = "error"
    next_step = "retry"


class AvailabilityNotConfirmedError(AvailabilityError):
    """Commit attempted on a never-checked, checking, or stale status."""
    
    code = "availability_not_confirmed"
    severity = "warning"
    
    def __init__(self, state: str, message: Optional[str] = None):
        super().__init__(
            message or "Flight availability must be confirmed before payment",
            {"state": state},
        )


class OfferUnavailableError(AvailabilityError):
    code = "offer_unavailable"
    next_step = "re_search"
    
    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or "This flight is no longer available", {"detail": detail})


class AvailabilityCheckFailed(AvailabilityError):
    code = "availability_check_failed"
    
    def __init__(self, message: str = "Error checking availability"):
        super().__init__(message)


# Commit errors.

class ReservationFailed(CheckoutError):
    """Phase 1 failed: nothing has been reserved."""
    
    code = "reservation_failed"
    severity = "error"
    next_step = "retry"
    
    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            f"Failed to create booking: {detail}" if detail else "Failed to create booking",
            {"detail": detail},
        )


class PaymentSessionFailed(CheckoutError):
    """Phase 2 failed: a live, unpaid reservation exists remotely."""
    
    code = "payment_session_failed"
    severity = "critical"
    next_step = "retry"
    
    def __init__(self, reservation_id: str, detail: Optional[str] = None):
        self.reservation_id = reservation_id
        super().__init__(
            f"Your booking {reservation_id} is reserved but payment could not be started. "
            "Retrying will reuse the same reservation.",
            {"reservation_id": reservation_id, "detail": detail},
        )


class ReservationReleaseFailed(CheckoutError):
    code = "reservation_release_failed"
    severity = "critical"
    next_step = "retry"
    
    def __init__(self, reservation_id: str, detail: Optional[str] = None):
        super().__init__(
            f"Reservation {reservation_id} could not be cancelled",
            {"reservation_id": reservation_id, "detail": detail},
        )


class SessionNotFoundError(CheckoutError):
    code = "session_not_found"
    severity = "warning"
    next_step = "re_search"
    
    def __init__(self, session_id: str):
        super().__init__(f"Checkout session {session_id} not found", {"session_id": session_id})


class SessionClosedError(CheckoutError):
    code = "session_closed"
    severity = "warning"
    next_step = "re_search"
    
    def __init__(self, session_id: str):
        super().__init__(f"Checkout session {session_id} has been closed", {"session_id": session_id})


# Raised by remote clients when a provider answers with a structured error
# or an unparseable body.

class ExternalServiceError(Exception):
    def __init__(self, message: str, detail: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.detail = detail or message
        self.status_code = status_code
