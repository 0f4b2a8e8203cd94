"""User-visible notices raised by session events."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CheckoutNotice:
    """A message the UI must show; never dropped silently."""
    
    code: str
    message: str
    severity: str = "warning"
    next_step: str = "none"
    redirect_to_search: bool = False
    created_at: Optional[datetime] = None
    details: Dict[str, Any] = field(default_factory=dict)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "next_step": self.next_step,
            "redirect_to_search": self.redirect_to_search,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "details": self.details,
        }
