"""Тесты загрузки каталога и инвариантов.

Coverage:
- Встроенный каталог загружается и индексируется
- Fatal нарушения: базовая валюта, catch-all зона, пересечение зон,
  немонотонные тарифы, висячие ссылки, неизвестный timezone страны
- Ошибки файла (нет файла, битый JSON)
"""

import copy
import json

import pytest

from commerce_i18n.catalog import (
    DEFAULT_CATALOG_PATH,
    build_catalog,
    load_catalog,
    load_default_catalog,
    read_catalog_document,
    validate_zones,
)
from commerce_i18n.core.domain import ShippingZone, TaxType, is_valid_timezone
from commerce_i18n.errors import CatalogError


@pytest.fixture
def document():
    return read_catalog_document(DEFAULT_CATALOG_PATH)


def _zone(name, priority, countries=(), catch_all=False):
    return ShippingZone(name=name, priority=priority, countries=frozenset(countries), catch_all=catch_all)


class TestDefaultCatalog:
    """Встроенный каталог."""

    def test_loads(self):
        catalog = load_default_catalog()
        assert catalog.base_currency.code == "USD"
        assert catalog.currency("JPY").minor_units == 0
        assert catalog.currency("KWD").minor_units == 3

    def test_lookups(self):
        catalog = load_default_catalog()
        assert catalog.country("DE").default_currency == "EUR"
        assert catalog.country("XX") is None
        assert "USD" not in catalog.non_base_currency_codes()
        assert list(catalog.non_base_currency_codes()) == sorted(catalog.non_base_currency_codes())
        assert "de-DE" in catalog.supported_locales()

    def test_regional_tax_lookup(self):
        catalog = load_default_catalog()
        assert catalog.tax_rate("US", "CA").region_code == "CA"
        # Неизвестный регион → ставка страны
        assert catalog.tax_rate("US", "TX").region_code is None
        assert catalog.tax_rate("GB").tax_type == TaxType.VAT
        assert catalog.tax_rate("BR") is None

    def test_load_from_path_and_mapping(self, document):
        assert load_catalog(DEFAULT_CATALOG_PATH).base_currency.code == "USD"
        assert load_catalog(document).base_currency.code == "USD"


class TestCurrencyInvariants:
    def test_no_base_currency(self, document):
        document["currencies"][0]["is_base"] = False
        with pytest.raises(CatalogError, match="exactly one base currency"):
            build_catalog(document)

    def test_two_base_currencies(self, document):
        document["currencies"][1]["is_base"] = True
        with pytest.raises(CatalogError, match="exactly one base currency"):
            build_catalog(document)

    def test_duplicate_currency(self, document):
        document["currencies"].append(copy.deepcopy(document["currencies"][1]))
        with pytest.raises(CatalogError, match="duplicate currency"):
            build_catalog(document)

    def test_country_references_unknown_currency(self, document):
        document["countries"][0]["default_currency"] = "XYZ"
        with pytest.raises(CatalogError, match="unknown currency XYZ"):
            build_catalog(document)

    def test_separators_must_differ(self, document):
        document["currencies"][1]["decimal_separator"] = document["currencies"][1]["grouping_separator"]
        with pytest.raises(CatalogError) as exc_info:
            build_catalog(document)
        assert exc_info.value.table == "currencies"


class TestCountryInvariants:
    def test_unknown_timezone(self, document):
        for country in document["countries"]:
            if country["code"] == "GB":
                country["timezone"] = "Mars/Olympus_Mons"
        with pytest.raises(CatalogError, match="unknown timezone") as exc_info:
            load_catalog(document)
        assert exc_info.value.table == "countries"

    def test_timezones_of_default_catalog_are_known(self):
        catalog = load_default_catalog()
        assert all(is_valid_timezone(c.timezone) for c in catalog.countries)

    def test_duplicate_country(self, document):
        document["countries"].append(copy.deepcopy(document["countries"][0]))
        with pytest.raises(CatalogError, match="duplicate country"):
            build_catalog(document)


class TestZoneInvariants:
    def test_missing_catch_all(self, document):
        document["shipping_zones"] = [z for z in document["shipping_zones"] if not z.get("catch_all")]
        document["shipping_rates"] = [r for r in document["shipping_rates"] if r["zone"] != "rest_of_world"]
        with pytest.raises(CatalogError, match="no catch-all"):
            build_catalog(document)

    def test_two_catch_alls(self):
        zones = [_zone("a", 100, catch_all=True), _zone("b", 200, catch_all=True)]
        with pytest.raises(CatalogError, match="multiple catch-all"):
            validate_zones(zones)

    def test_catch_all_must_be_last(self):
        zones = [_zone("eu", 100, ["DE"]), _zone("rest", 50, catch_all=True)]
        with pytest.raises(CatalogError, match="highest priority number"):
            validate_zones(zones)

    def test_overlap_at_equal_priority(self):
        zones = [
            _zone("eu", 30, ["DE", "FR"]),
            _zone("dach", 30, ["DE", "AT"]),
            _zone("rest", 100, catch_all=True),
        ]
        with pytest.raises(CatalogError, match="overlap"):
            validate_zones(zones)

    def test_overlap_at_different_priority_allowed(self):
        zones = [
            _zone("eu", 30, ["DE", "FR"]),
            _zone("dach", 20, ["DE", "AT"]),
            _zone("rest", 100, catch_all=True),
        ]
        assert validate_zones(zones).name == "rest"

    def test_duplicate_zone_names(self):
        zones = [_zone("eu", 30, ["DE"]), _zone("eu", 40, ["FR"]), _zone("rest", 100, catch_all=True)]
        with pytest.raises(CatalogError, match="duplicate zone names"):
            validate_zones(zones)

    def test_zone_with_unknown_country(self, document):
        document["shipping_zones"][0]["countries"].append("ZZ")
        with pytest.raises(CatalogError, match="unknown countries"):
            build_catalog(document)

    def test_catch_all_listing_countries_rejected(self, document):
        document["shipping_zones"][-1]["countries"] = ["US"]
        with pytest.raises(CatalogError, match="must not list countries"):
            build_catalog(document)


class TestRateInvariants:
    def test_non_monotonic_prices(self, document):
        document["shipping_rates"][1]["breakpoints"][1]["price_minor"] = 100
        with pytest.raises(CatalogError, match="non-decreasing"):
            build_catalog(document)

    def test_non_ascending_weights(self, document):
        document["shipping_rates"][1]["breakpoints"][1]["max_weight_grams"] = 400
        with pytest.raises(CatalogError, match="strictly ascending"):
            build_catalog(document)

    def test_rate_for_unknown_zone(self, document):
        document["shipping_rates"][0]["zone"] = "moon"
        with pytest.raises(CatalogError, match="unknown zone 'moon'"):
            build_catalog(document)

    def test_duplicate_zone_level(self, document):
        document["shipping_rates"].append(copy.deepcopy(document["shipping_rates"][0]))
        with pytest.raises(CatalogError, match="duplicate \\(zone, service_level\\)"):
            build_catalog(document)

    def test_duplicate_tax_rows(self, document):
        document["tax_rates"].append(copy.deepcopy(document["tax_rates"][0]))
        with pytest.raises(CatalogError, match="duplicate \\(country, region\\)"):
            build_catalog(document)

    def test_tax_for_unknown_country(self, document):
        document["tax_rates"][0]["country_code"] = "ZZ"
        with pytest.raises(CatalogError, match="unknown country ZZ"):
            build_catalog(document)


class TestCatalogFiles:
    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError, match="not found"):
            load_catalog(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CatalogError, match="not valid JSON"):
            load_catalog(path)

    def test_schema_violation_is_catalog_error(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"schema_version": "1"}), encoding="utf-8")
        with pytest.raises(CatalogError, match="schema validation failed"):
            load_catalog(path)
