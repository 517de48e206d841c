"""
MoneyUnits — централизованный модуль конверсии денежных единиц

Единственный допустимый способ преобразований между:
- amount_minor (int, minor units валюты: центы, пенсы, иены)
- amount_major (Decimal, major units: доллары, фунты)

ЗАПРЕЩЕНО смешивать единицы без явного конвертера из этого модуля.
Конверсия minor → major точна (деление на 10^n в Decimal); major → minor
округляет ровно один раз (ROUND_HALF_UP).
"""

from decimal import Decimal
from typing import Final

from commerce_i18n.core.math.numerical_safeguards import (
    extended_precision,
    round_half_up,
    validate_non_negative_int,
)

from .currency import Currency


# Верхняя граница суммы (minor units), защита от переполнения внешних систем
AMOUNT_MAX_MINOR: Final[int] = 10**18


# =============================================================================
# БАЗОВЫЕ КОНВЕРТЕРЫ
# =============================================================================


def minor_to_major(amount_minor: int, currency: Currency) -> Decimal:
    """
    Конверсия: minor units → major units (точная).

    Examples:
        12345 USD (2) → Decimal("123.45")
        500 JPY (0) → Decimal("500")
    """
    return Decimal(amount_minor).scaleb(-currency.minor_units)


def major_to_minor_exact(amount_major: Decimal, currency: Currency) -> Decimal:
    """
    Конверсия: major units → minor units БЕЗ округления.

    Используется внутри цепочек вычислений, где округление выполняется
    только на последнем шаге.
    """
    with extended_precision():
        return amount_major * currency.scale


def major_to_minor(amount_major: Decimal, currency: Currency) -> int:
    """
    Конверсия: major units → minor units с финальным округлением ROUND_HALF_UP.

    Examples:
        Decimal("90.005") USD → 9001
    """
    return round_half_up(major_to_minor_exact(amount_major, currency))


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_amount_minor(amount_minor: int, name: str = "amount_minor") -> None:
    """
    Проверка суммы в minor units.

    Raises:
        TypeError: Если сумма не int
        ValueError: Если сумма отрицательная или превышает AMOUNT_MAX_MINOR
    """
    validate_non_negative_int(amount_minor, name)
    if amount_minor > AMOUNT_MAX_MINOR:
        raise ValueError(f"{name} {amount_minor} exceeds maximum {AMOUNT_MAX_MINOR}")
