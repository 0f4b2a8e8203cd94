"""Factories for infrastructure components."""
from travel_checkout.infrastructure.factories.provider_factory import ProviderFactory

__all__ = ["ProviderFactory"]
