"""Domain layer - core business objects and interfaces.

This layer contains:
- Domain entities (offer, passenger, availability, reservation)
- The checkout error taxonomy
- Interfaces for the reservation system, payment gateway and session cache
"""
