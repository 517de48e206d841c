"""
Money Formatting — отображение сумм и курсов

format_amount: знак, разделитель разрядов (каждые 3 цифры), десятичный
разделитель с ровно minor_units знаками, символ префиксом или суффиксом
(суффикс отделяется пробелом).

Examples:
    12345 USD → "$123.45"
    123456 EUR → "1.234,56 €"
    500 JPY → "¥500"
    -250 USD → "-$2.50"
"""

from decimal import Decimal

from commerce_i18n.core.domain import Currency, SymbolPosition
from commerce_i18n.core.math import round_decimal_places

EXCHANGE_RATE_PLACES = 4


def _group_digits(digits: str, separator: str) -> str:
    if not separator or len(digits) <= 3:
        return digits
    head = len(digits) % 3 or 3
    groups = [digits[:head]] + [digits[i:i + 3] for i in range(head, len(digits), 3)]
    return separator.join(groups)


def format_number(amount_minor: int, currency: Currency) -> str:
    """Число без символа валюты, с разделителями валюты."""
    sign = "-" if amount_minor < 0 else ""
    digits = str(abs(amount_minor)).rjust(currency.minor_units + 1, "0")

    if currency.minor_units:
        major, minor = digits[:-currency.minor_units], digits[-currency.minor_units:]
        body = f"{_group_digits(major, currency.grouping_separator)}{currency.decimal_separator}{minor}"
    else:
        body = _group_digits(digits, currency.grouping_separator)
    return f"{sign}{body}"


def format_amount(amount_minor: int, currency: Currency) -> str:
    """Сумма в minor units с символом валюты."""
    number = format_number(abs(amount_minor), currency)
    sign = "-" if amount_minor < 0 else ""
    if currency.symbol_position == SymbolPosition.SUFFIX:
        return f"{sign}{number} {currency.symbol}"
    return f"{sign}{currency.symbol}{number}"


def format_exchange_rate(source: Currency, target: Currency, rate: Decimal) -> str:
    """
    Курс для отображения: "<символ source>1 = <символ target><курс, 4 знака>".

    Example:
        USD→EUR 0.9 → "$1 = €0.9000"
    """
    shown = round_decimal_places(rate, EXCHANGE_RATE_PLACES)
    return f"{source.symbol}1 = {target.symbol}{shown}"
