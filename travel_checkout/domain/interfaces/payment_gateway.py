"""Interface for payment gateways (Adapter Pattern)."""
from abc import ABC, abstractmethod

from travel_checkout.domain.entities.reservation import PaymentSession, PaymentSessionRequest


class IPaymentGateway(ABC):
    """Interface for creating hosted payment sessions."""
    
    @abstractmethod
    def create_checkout_session(self, request: PaymentSessionRequest) -> PaymentSession:
        """
        Create a hosted payment session for a reservation.
        
        Args:
            request: Amount, currency, customer and reservation identifier
            
        Returns:
            Payment session with the redirect URL
            
        Raises:
            requests.RequestException: If the call fails in transport
            ExternalServiceError: If the gateway rejects the request
        """
        pass
