"""
ShippingRateCalculator — стоимость доставки по зоне, уровню сервиса и весу

Алгоритм calculate(zone, level, weight):
1. Нет тарифа (zone, level) → UnsupportedServiceLevel
2. Наименьший брейкпоинт с max_weight_grams >= weight → его цена
3. weight > последнего брейкпоинта:
       cost = price(last) + ceil((weight - weight(last)) / overage_unit_grams) * overage_rate

Цены тарифов выражены в minor units базовой валюты каталога.
Монотонность по весу гарантируется валидацией тарифов (веса возрастают,
цены не убывают, overage_rate >= 0).
"""

from bisect import bisect_left
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple, Union

from commerce_i18n.catalog import Catalog
from commerce_i18n.core.domain import DeliveryEstimate, ServiceLevel, ShippingRate, ShippingZone
from commerce_i18n.core.math import ceil_div, validate_non_negative_int
from commerce_i18n.errors import UnsupportedServiceLevel

from .zones import ShippingZoneResolver


@dataclass(frozen=True)
class ShippingQuote:
    """Стоимость доставки для одного уровня сервиса."""

    zone: str
    service_level: ServiceLevel
    weight_grams: int
    cost_minor: int
    delivery_estimate: DeliveryEstimate
    overage_units: int = 0


class ShippingRateCalculator:
    """Расчёт стоимости доставки по таблице тарифов."""

    def __init__(self, resolver: ShippingZoneResolver, rates: Iterable[ShippingRate]):
        self.resolver = resolver
        self._rates: Dict[Tuple[str, ServiceLevel], ShippingRate] = {}
        self._weights: Dict[Tuple[str, ServiceLevel], List[int]] = {}
        for rate in rates:
            key = (rate.zone, rate.service_level)
            self._rates[key] = rate
            self._weights[key] = [bp.max_weight_grams for bp in rate.breakpoints]

    @classmethod
    def from_catalog(cls, catalog: Catalog) -> "ShippingRateCalculator":
        return cls(ShippingZoneResolver.from_catalog(catalog), catalog.shipping_rates)

    def calculate(
        self,
        zone: Union[ShippingZone, str],
        service_level: Union[ServiceLevel, str],
        weight_grams: int,
    ) -> ShippingQuote:
        """
        Стоимость доставки.

        Args:
            zone: Зона или её имя
            service_level: Уровень сервиса
            weight_grams: Вес посылки (г, >= 0)

        Raises:
            UnsupportedServiceLevel: Зона не поддерживает уровень сервиса
            ValueError / TypeError: Некорректный вес или уровень сервиса
        """
        validate_non_negative_int(weight_grams, "weight_grams")
        zone_name = zone.name if isinstance(zone, ShippingZone) else zone
        level = ServiceLevel(service_level)

        key = (zone_name, level)
        rate = self._rates.get(key)
        if rate is None:
            raise UnsupportedServiceLevel(zone_name, level.value)

        index = bisect_left(self._weights[key], weight_grams)
        if index < len(rate.breakpoints):
            return ShippingQuote(
                zone=zone_name,
                service_level=level,
                weight_grams=weight_grams,
                cost_minor=rate.breakpoints[index].price_minor,
                delivery_estimate=rate.delivery_estimate,
            )

        last = rate.last_breakpoint
        units = ceil_div(weight_grams - last.max_weight_grams, rate.overage_unit_grams)
        return ShippingQuote(
            zone=zone_name,
            service_level=level,
            weight_grams=weight_grams,
            cost_minor=last.price_minor + units * rate.overage_rate_minor,
            delivery_estimate=rate.delivery_estimate,
            overage_units=units,
        )

    def supported_levels(self, zone: Union[ShippingZone, str]) -> Tuple[ServiceLevel, ...]:
        zone_name = zone.name if isinstance(zone, ShippingZone) else zone
        levels = [level for (name, level) in self._rates if name == zone_name]
        return tuple(sorted(levels, key=lambda level: level.rank))

    def options(self, country_code: str, weight_grams: int) -> List[ShippingQuote]:
        """
        Все доступные уровни сервиса для страны, от economy к overnight.

        Уровни без тарифа в зоне не включаются.
        """
        validate_non_negative_int(weight_grams, "weight_grams")
        zone = self.resolver.resolve(country_code)
        return [self.calculate(zone, level, weight_grams) for level in self.supported_levels(zone)]
