"""
Core math модули

Денежная арифметика с гарантией детерминированности.
"""

from commerce_i18n.core.math.numerical_safeguards import (
    EPS_RATE,
    EXTENDED_PRECISION,
    ceil_div,
    extended_precision,
    relative_deviation,
    round_decimal_places,
    round_half_up,
    signed_change,
    validate_non_negative_int,
)

__all__ = [
    # Precision
    "EXTENDED_PRECISION",
    "EPS_RATE",
    "extended_precision",
    # Rounding
    "round_half_up",
    "round_decimal_places",
    "ceil_div",
    # Deviations
    "relative_deviation",
    "signed_change",
    # Validation
    "validate_non_negative_int",
]
