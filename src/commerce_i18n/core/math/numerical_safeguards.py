"""
Numerical Safeguards — денежная арифметика на Decimal

Модуль обеспечивает детерминированность всех денежных вычислений:
- Расширенная точность промежуточных результатов (без округления)
- Единственное округление на последнем шаге: ROUND_HALF_UP до целого minor unit
- Относительное отклонение курсов с защитой от деления на ноль
- Валидация аргументов

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. float никогда не участвует в денежных вычислениях
2. Промежуточные значения не округляются
3. Округление: только ROUND_HALF_UP, только один раз на результат
4. Все операции детерминированы и воспроизводимы
"""

from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Context, Decimal, localcontext
from typing import Final, Iterator, Union

# =============================================================================
# ПАРАМЕТРЫ ТОЧНОСТИ
# =============================================================================

# Точность промежуточных вычислений (значащих цифр)
# Достаточна для сумм до 10^18 minor units с курсами до 12 знаков
EXTENDED_PRECISION: Final[int] = 50

# Порог "нулевого" знаменателя для относительных отклонений
EPS_RATE: Final[Decimal] = Decimal("1e-18")

_ONE: Final[Decimal] = Decimal(1)

Number = Union[int, Decimal]


# =============================================================================
# КОНТЕКСТ ВЫЧИСЛЕНИЙ
# =============================================================================


@contextmanager
def extended_precision() -> Iterator[Context]:
    """
    Контекст с расширенной точностью для цепочки денежных вычислений.

    Usage:
        with extended_precision():
            base = amount / rate_a
            result = base * rate_b
    """
    with localcontext() as ctx:
        ctx.prec = EXTENDED_PRECISION
        yield ctx


# =============================================================================
# ОКРУГЛЕНИЕ
# =============================================================================


def round_half_up(value: Number) -> int:
    """
    Округление до целого (minor unit) по правилу ROUND_HALF_UP.

    Половина округляется от нуля: 0.5 → 1, 2.5 → 3, -2.5 → -3.

    Args:
        value: Значение в minor units (Decimal с любой дробной частью или int)

    Returns:
        Целое число minor units

    Examples:
        >>> round_half_up(Decimal("2.5"))
        3
        >>> round_half_up(Decimal("2.4999"))
        2
        >>> round_half_up(Decimal("-2.5"))
        -3
    """
    if isinstance(value, int):
        return value
    if not value.is_finite():
        raise ValueError(f"Cannot round non-finite value: {value}")
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


def round_decimal_places(value: Decimal, places: int) -> Decimal:
    """
    Округление Decimal до заданного числа знаков (ROUND_HALF_UP).

    Используется только для отображения (например, курс с 4 знаками).
    """
    if places < 0:
        raise ValueError(f"places must be non-negative, got {places}")
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def ceil_div(numerator: int, denominator: int) -> int:
    """
    Целочисленное деление с округлением вверх (для положительного denominator).

    Examples:
        >>> ceil_div(500, 1000)
        1
        >>> ceil_div(2000, 1000)
        2
        >>> ceil_div(0, 1000)
        0
    """
    if denominator <= 0:
        raise ValueError(f"denominator must be positive, got {denominator}")
    return -(-numerator // denominator)


# =============================================================================
# ОТКЛОНЕНИЯ
# =============================================================================


def relative_deviation(new: Decimal, old: Decimal) -> Decimal:
    """
    Относительное отклонение |new - old| / old.

    Args:
        new: Новое значение
        old: Предыдущее значение (ожидается положительным)

    Returns:
        Отклонение как доля (0.05 = 5%). Для old ≈ 0 знаменатель ограничен EPS_RATE.
    """
    with extended_precision():
        denom = max(abs(old), EPS_RATE)
        return abs(new - old) / denom


def signed_change(new: Decimal, old: Decimal) -> Decimal:
    """Знаковое относительное изменение (new - old) / old."""
    with extended_precision():
        denom = max(abs(old), EPS_RATE)
        return (new - old) / denom


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_non_negative_int(value: int, name: str) -> None:
    """
    Валидация неотрицательного целого (minor units, граммы).

    Raises:
        TypeError: Если value не int (bool отклоняется)
        ValueError: Если value < 0
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
