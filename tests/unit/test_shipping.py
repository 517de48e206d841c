"""Тесты доставки: разрешение зоны и стоимость.

Coverage:
- Зона с наименьшим priority побеждает, catch-all ловит остальных
- Брейкпоинты и сверхвес (ceil по единицам overage)
- Монотонность стоимости по весу для всех тарифов каталога
- UnsupportedServiceLevel
"""

import pytest

from commerce_i18n.catalog import load_default_catalog
from commerce_i18n.core.domain import ServiceLevel, ShippingZone
from commerce_i18n.errors import CatalogError, UnsupportedServiceLevel
from commerce_i18n.shipping import ShippingRateCalculator, ShippingZoneResolver


@pytest.fixture(scope="module")
def catalog():
    return load_default_catalog()


@pytest.fixture(scope="module")
def calculator(catalog):
    return ShippingRateCalculator.from_catalog(catalog)


class TestZoneResolver:
    @pytest.mark.parametrize(
        "country,zone",
        [("US", "domestic"), ("CA", "north_america"), ("DE", "europe"), ("JP", "asia_pacific"), ("BR", "rest_of_world")],
    )
    def test_resolve(self, catalog, country, zone):
        assert ShippingZoneResolver.from_catalog(catalog).resolve(country).name == zone

    def test_unknown_country_goes_to_catch_all(self, catalog):
        assert ShippingZoneResolver.from_catalog(catalog).resolve("ZZ").catch_all

    def test_order_independent_of_input(self):
        zones = [
            ShippingZone(name="rest", priority=100, catch_all=True),
            ShippingZone(name="wide", priority=50, countries=frozenset({"US", "CA"})),
            ShippingZone(name="narrow", priority=5, countries=frozenset({"US"})),
        ]
        assert ShippingZoneResolver(zones).resolve("US").name == "narrow"
        assert ShippingZoneResolver(list(reversed(zones))).resolve("US").name == "narrow"

    def test_invalid_zone_set_rejected(self):
        with pytest.raises(CatalogError):
            ShippingZoneResolver([ShippingZone(name="us", priority=1, countries=frozenset({"US"}))])


class TestCalculate:
    @pytest.mark.parametrize(
        "weight,cost",
        [(0, 500), (500, 500), (501, 1200), (2000, 1200), (2500, 1500), (3000, 1500), (3001, 1800)],
    )
    def test_domestic_standard(self, calculator, weight, cost):
        assert calculator.calculate("domestic", ServiceLevel.STANDARD, weight).cost_minor == cost

    def test_overage_units(self, calculator):
        quote = calculator.calculate("domestic", "standard", 4200)
        assert quote.overage_units == 3
        assert quote.cost_minor == 1200 + 3 * 300
        assert quote.delivery_estimate.min_days == 3

    def test_accepts_zone_object(self, catalog, calculator):
        zone = catalog.zone("europe")
        assert calculator.calculate(zone, "economy", 250).cost_minor == 999

    def test_cost_monotonic_in_weight(self, catalog, calculator):
        for rate in catalog.shipping_rates:
            costs = [
                calculator.calculate(rate.zone, rate.service_level, w).cost_minor
                for w in range(0, 6001, 50)
            ]
            assert costs == sorted(costs), f"{rate.zone}/{rate.service_level.value}"

    def test_unsupported_service_level(self, calculator):
        with pytest.raises(UnsupportedServiceLevel) as exc_info:
            calculator.calculate("rest_of_world", ServiceLevel.OVERNIGHT, 100)
        assert exc_info.value.zone == "rest_of_world"
        assert exc_info.value.service_level == "overnight"

    def test_negative_weight(self, calculator):
        with pytest.raises(ValueError):
            calculator.calculate("domestic", "standard", -1)

    def test_unknown_level_name(self, calculator):
        with pytest.raises(ValueError):
            calculator.calculate("domestic", "teleport", 100)


class TestOptions:
    def test_ordered_from_economy(self, calculator):
        levels = [q.service_level for q in calculator.options("US", 1000)]
        assert levels == [ServiceLevel.ECONOMY, ServiceLevel.STANDARD, ServiceLevel.EXPRESS, ServiceLevel.OVERNIGHT]

    def test_only_supported_levels(self, calculator):
        quotes = calculator.options("BR", 1000)
        assert [q.service_level for q in quotes] == [ServiceLevel.STANDARD, ServiceLevel.EXPRESS]
        assert all(q.zone == "rest_of_world" for q in quotes)
