"""Domain interfaces following Dependency Inversion Principle."""

from travel_checkout.domain.interfaces.reservation_client import IReservationClient
from travel_checkout.domain.interfaces.payment_gateway import IPaymentGateway
from travel_checkout.domain.interfaces.session_storage import ISessionStorage

__all__ = [
    "IReservationClient",
    "IPaymentGateway",
    "ISessionStorage",
]
