"""Availability status of the held offer."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class AvailabilityState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass(frozen=True)
class AvailabilityStatus:
    """Snapshot of the reconciler's state machine."""
    
    state: AvailabilityState = AvailabilityState.IDLE
    message: Optional[str] = None
    checked_at: Optional[datetime] = None
    priced_total: Optional[Decimal] = None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "message": self.message,
            "checked_at": self.checked_at.isoformat() if self.checked_at else None,
            "priced_total": str(self.priced_total) if self.priced_total is not None else None,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AvailabilityStatus":
        checked_at = data.get("checked_at")
        priced_total = data.get("priced_total")
        return cls(
            state=AvailabilityState(data.get("state", AvailabilityState.IDLE.value)),
            message=data.get("message"),
            checked_at=datetime.fromisoformat(checked_at) if checked_at else None,
            priced_total=Decimal(priced_total) if priced_total is not None else None,
        )


@dataclass(frozen=True)
class AvailabilityProbeResult:
    """Answer of the reservation system to an availability-only request."""
    
    available: bool
    detail: Optional[str] = None
    priced_total: Optional[Decimal] = None
