"""
Catalog — immutable снапшот справочных таблиц

Каталог загружается на старте и может быть перезагружен (reload), но никогда
не изменяется на месте: reload создаёт новый Catalog и атомарно подменяет ссылку.
Индексы строятся один раз при создании.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from commerce_i18n.core.domain import (
    Country,
    Currency,
    ShippingRate,
    ShippingZone,
    TaxRate,
)
from commerce_i18n.errors import CatalogError


@dataclass(frozen=True)
class Catalog:
    """Снапшот каталога: валюты, страны, зоны, тарифы доставки, налоговые ставки."""

    currencies: Tuple[Currency, ...]
    countries: Tuple[Country, ...]
    shipping_zones: Tuple[ShippingZone, ...]
    shipping_rates: Tuple[ShippingRate, ...]
    tax_rates: Tuple[TaxRate, ...]

    _currency_index: Mapping[str, Currency] = field(init=False, repr=False, compare=False)
    _country_index: Mapping[str, Country] = field(init=False, repr=False, compare=False)
    _zone_index: Mapping[str, ShippingZone] = field(init=False, repr=False, compare=False)
    _tax_index: Mapping[Tuple[str, Optional[str]], TaxRate] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # Дубликаты ключей отлавливаются в invariants; здесь последний побеждает
        object.__setattr__(
            self, "_currency_index", MappingProxyType({c.code: c for c in self.currencies})
        )
        object.__setattr__(
            self, "_country_index", MappingProxyType({c.code: c for c in self.countries})
        )
        object.__setattr__(
            self, "_zone_index", MappingProxyType({z.name: z for z in self.shipping_zones})
        )
        object.__setattr__(
            self, "_tax_index", MappingProxyType({t.key: t for t in self.tax_rates})
        )

    # -------------------------------------------------------------------------
    # Currencies
    # -------------------------------------------------------------------------

    @property
    def base_currency(self) -> Currency:
        """
        Базовая валюта каталога.

        Raises:
            CatalogError: Если базовых валют не ровно одна
        """
        bases = [c for c in self.currencies if c.is_base]
        if len(bases) != 1:
            raise CatalogError(
                f"expected exactly one base currency, found {len(bases)}", table="currencies"
            )
        return bases[0]

    def currency(self, code: str) -> Optional[Currency]:
        return self._currency_index.get(code)

    def has_currency(self, code: str) -> bool:
        return code in self._currency_index

    def non_base_currency_codes(self) -> Tuple[str, ...]:
        """Коды валют, для которых провайдер обязан вернуть курс."""
        return tuple(sorted(c.code for c in self.currencies if not c.is_base))

    # -------------------------------------------------------------------------
    # Countries
    # -------------------------------------------------------------------------

    def country(self, code: str) -> Optional[Country]:
        return self._country_index.get(code)

    def has_country(self, code: str) -> bool:
        return code in self._country_index

    def supported_locales(self) -> frozenset:
        return frozenset(c.locale for c in self.countries)

    # -------------------------------------------------------------------------
    # Shipping
    # -------------------------------------------------------------------------

    def zone(self, name: str) -> Optional[ShippingZone]:
        return self._zone_index.get(name)

    # -------------------------------------------------------------------------
    # Tax
    # -------------------------------------------------------------------------

    def tax_rate(self, country_code: str, region_code: Optional[str] = None) -> Optional[TaxRate]:
        """
        Ставка субрегиона, если задана, иначе ставка страны.

        Returns:
            TaxRate или None (страна без налога)
        """
        if region_code is not None:
            regional = self._tax_index.get((country_code, region_code))
            if regional is not None:
                return regional
        return self._tax_index.get((country_code, None))
