"""Repository implementations."""
from travel_checkout.infrastructure.repositories.checkout_snapshot_repository import CheckoutSnapshotRepository
from travel_checkout.infrastructure.repositories.session_storage import InMemorySessionStorage, RedisSessionStorage

__all__ = [
    "CheckoutSnapshotRepository",
    "InMemorySessionStorage",
    "RedisSessionStorage",
]
