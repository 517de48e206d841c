"""
TaxEngine — расчёт налога по стране, категории и сумме

Эффективная ставка: переопределение категории, иначе базовая ставка
(ставка субрегиона, если задана, иначе ставка страны; страна без ставки: 0).

- inclusive (сумма уже содержит налог):
      tax = amount - round(amount / (1 + rate)),  total = amount
- exclusive:
      tax = round(amount * rate),  total = amount + tax

Округление ROUND_HALF_UP выполняется ровно один раз (для tax);
total получается сложением и отдельно не округляется.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from commerce_i18n.catalog import Catalog
from commerce_i18n.core.domain import TaxType, validate_amount_minor
from commerce_i18n.core.math import extended_precision, round_half_up
from commerce_i18n.errors import RequestValidationError


@dataclass(frozen=True)
class TaxCalculation:
    """Результат расчёта налога (суммы в minor units валюты страны)."""

    tax_amount: int
    total_amount: int
    rate: Decimal
    tax_type: Optional[TaxType]
    inclusive: bool
    currency: str
    country_code: str
    region_code: Optional[str] = None


def compute_tax(amount_minor: int, rate: Decimal, inclusive: bool) -> tuple[int, int]:
    """
    Налог и итог для суммы в minor units.

    Returns:
        (tax_amount, total_amount)
    """
    if inclusive:
        with extended_precision():
            net_exact = Decimal(amount_minor) / (1 + rate)
        tax = amount_minor - round_half_up(net_exact)
        return tax, amount_minor

    with extended_precision():
        tax_exact = Decimal(amount_minor) * rate
    tax = round_half_up(tax_exact)
    return tax, amount_minor + tax


class TaxEngine:
    """Stateless расчёт налога поверх каталога."""

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def calculate(
        self,
        country_code: str,
        category: Optional[str],
        amount_minor: int,
        inclusive: Optional[bool] = None,
        region_code: Optional[str] = None,
    ) -> TaxCalculation:
        """
        Расчёт налога.

        Args:
            country_code: Страна
            category: Категория товара (None: базовая ставка)
            amount_minor: Сумма в minor units валюты страны
            inclusive: Сумма уже содержит налог. None: по флагу ставки страны
            region_code: Субрегион (штат, провинция)

        Raises:
            RequestValidationError: Неизвестная страна или некорректная сумма
        """
        try:
            validate_amount_minor(amount_minor)
        except (TypeError, ValueError) as e:
            raise RequestValidationError("amount_minor", str(e))

        country = self.catalog.country(country_code)
        if country is None:
            raise RequestValidationError("country_code", f"unknown country {country_code!r}")

        tax_rate = self.catalog.tax_rate(country.code, region_code)
        if tax_rate is None:
            rate = Decimal(0)
            tax_type = None
            is_inclusive = bool(inclusive)
        else:
            rate = tax_rate.rate_for(category)
            tax_type = tax_rate.tax_type
            is_inclusive = tax_rate.prices_include_tax if inclusive is None else inclusive

        tax, total = compute_tax(amount_minor, rate, is_inclusive)
        return TaxCalculation(
            tax_amount=tax,
            total_amount=total,
            rate=rate,
            tax_type=tax_type,
            inclusive=is_inclusive,
            currency=country.default_currency,
            country_code=country.code,
            region_code=tax_rate.region_code if tax_rate is not None else None,
        )
