"""
Domain models and value objects.

Contains catalog entities (Currency, Country, ShippingZone, ShippingRate, TaxRate),
ExchangeRate records and user Preference models.
"""

from commerce_i18n.core.domain.country import Continent, Country
from commerce_i18n.core.domain.currency import Currency, SymbolPosition
from commerce_i18n.core.domain.exchange_rate import ExchangeRate
from commerce_i18n.core.domain.preference import (
    Preference,
    PreferenceSource,
    RequestContext,
    ResolvedPreferences,
)
from commerce_i18n.core.domain.shipping import (
    DeliveryEstimate,
    ServiceLevel,
    ShippingRate,
    ShippingZone,
    WeightBreakpoint,
)
from commerce_i18n.core.domain.tax import TaxRate, TaxType
from commerce_i18n.core.domain.timezones import is_valid_timezone
from commerce_i18n.core.domain.units import (
    AMOUNT_MAX_MINOR,
    major_to_minor,
    major_to_minor_exact,
    minor_to_major,
    validate_amount_minor,
)

__all__ = [
    # Currency / Country
    "Currency",
    "SymbolPosition",
    "Country",
    "Continent",
    # Rates
    "ExchangeRate",
    # Shipping
    "ServiceLevel",
    "ShippingZone",
    "ShippingRate",
    "WeightBreakpoint",
    "DeliveryEstimate",
    # Tax
    "TaxRate",
    "TaxType",
    # Preferences
    "Preference",
    "PreferenceSource",
    "RequestContext",
    "ResolvedPreferences",
    # Timezones
    "is_valid_timezone",
    # Units module
    "AMOUNT_MAX_MINOR",
    "minor_to_major",
    "major_to_minor",
    "major_to_minor_exact",
    "validate_amount_minor",
]
