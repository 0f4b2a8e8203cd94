"""Interface for the airline reservation system (Adapter Pattern).

This allows switching between the real reservation API and an
in-memory implementation for development and testing.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from travel_checkout.domain.entities.availability import AvailabilityProbeResult
from travel_checkout.domain.entities.reservation import ReservationResult


class IReservationClient(ABC):
    """
    Interface for reservation system clients following Adapter Pattern.
    
    Implementations can be swapped without changing checkout logic.
    """
    
    @abstractmethod
    def check_availability(
        self,
        offer: Dict[str, Any],
        traveler: Dict[str, Any]
    ) -> AvailabilityProbeResult:
        """
        Probe whether an offer is still bookable.
        
        Idempotent and safe to repeat; never creates a booking.
        
        Args:
            offer: Raw flight offer payload
            traveler: Synthetic, non-billable traveler payload
            
        Returns:
            Probe result; ``available`` is False when the reservation
            system reports the offer as unbookable
            
        Raises:
            requests.RequestException: If the call fails in transport
            ExternalServiceError: If the response cannot be interpreted
        """
        pass
    
    @abstractmethod
    def create_reservation(
        self,
        offer: Dict[str, Any],
        travelers: List[Dict[str, Any]],
        agency: Dict[str, Any]
    ) -> ReservationResult:
        """
        Create a reservation (flight order).
        
        Args:
            offer: Raw flight offer payload
            travelers: Ordered traveler records with sequential ids
            agency: Fixed agency metadata (remarks, ticketing agreement, contacts)
            
        Returns:
            Reservation identifier and the confirmed priced offer
            
        Raises:
            requests.RequestException: If the call fails in transport
            ExternalServiceError: If the reservation system rejects the order
        """
        pass
    
    @abstractmethod
    def cancel_reservation(self, reservation_id: str) -> None:
        """
        Cancel a previously created reservation.
        
        Args:
            reservation_id: Reservation identifier returned by create_reservation
            
        Raises:
            requests.RequestException: If the call fails in transport
            ExternalServiceError: If the reservation system rejects the cancellation
        """
        pass
