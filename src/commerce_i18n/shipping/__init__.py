"""
Shipping — разрешение зоны доставки и расчёт стоимости.
"""

from .calculator import ShippingQuote, ShippingRateCalculator
from .zones import ShippingZoneResolver

__all__ = [
    "ShippingQuote",
    "ShippingRateCalculator",
    "ShippingZoneResolver",
]
