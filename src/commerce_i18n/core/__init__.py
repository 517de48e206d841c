"""
Core domain models, mathematical primitives, and catalog contracts.

This module contains the foundational building blocks that are independent
of external systems (rate providers, geolocation, storage).
"""
