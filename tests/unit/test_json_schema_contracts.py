"""
Tests for JSON Schema Catalog Contracts

Комплексное тестирование JSON Schema валидаторов:
- Валидность самих схем
- Валидация встроенного каталога
- Детекция нарушений required полей, типов и constraints
- Сбор ошибок с указанием таблицы и записи
"""

import copy
from decimal import Decimal

import pytest
from jsonschema import ValidationError

from commerce_i18n.catalog import DEFAULT_CATALOG_PATH, read_catalog_document
from commerce_i18n.core.contracts import (
    TABLE_VALIDATORS,
    CatalogDocumentValidator,
    CurrencyValidator,
    SchemaLoader,
    ShippingRateValidator,
    ShippingZoneValidator,
    TaxRateValidator,
    collect_catalog_errors,
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def document():
    """Встроенный каталог (дробные числа как Decimal)."""
    return read_catalog_document(DEFAULT_CATALOG_PATH)


@pytest.fixture
def valid_rate():
    return {
        "zone": "domestic",
        "service_level": "standard",
        "breakpoints": [
            {"max_weight_grams": 500, "price_minor": 500},
            {"max_weight_grams": 2000, "price_minor": 1200},
        ],
        "delivery_estimate": {"min_days": 3, "max_days": 5},
        "overage_rate_minor": 300,
        "overage_unit_grams": 1000,
    }


# =============================================================================
# SCHEMA LOADING
# =============================================================================


class TestSchemaLoader:
    @pytest.mark.parametrize(
        "name", ["catalog", "currency", "country", "shipping_zone", "shipping_rate", "tax_rate"]
    )
    def test_schemas_are_valid(self, name):
        schema = SchemaLoader().load_schema(name)
        assert schema["$schema"].endswith("2020-12/schema")

    def test_schema_cached(self):
        loader = SchemaLoader()
        assert loader.load_schema("currency") is loader.load_schema("currency")

    def test_missing_schema(self):
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("no_such_table")

    def test_every_table_has_validator(self, document):
        tables = set(document) - {"schema_version"}
        assert tables == set(TABLE_VALIDATORS)


# =============================================================================
# DOCUMENT
# =============================================================================


class TestCatalogDocument:
    def test_default_catalog_is_valid(self, document):
        assert collect_catalog_errors(document) == []
        CatalogDocumentValidator().validate(document)

    def test_rates_parsed_as_decimal(self, document):
        gb = next(t for t in document["tax_rates"] if t["country_code"] == "GB")
        assert isinstance(gb["base_rate"], Decimal)

    def test_missing_table(self, document):
        del document["shipping_zones"]
        assert not CatalogDocumentValidator().is_valid(document)

    def test_unknown_top_level_key(self, document):
        document["warehouses"] = []
        errors = collect_catalog_errors(document)
        assert errors and "warehouses" in errors[0]

    def test_wrong_schema_version(self, document):
        document["schema_version"] = "2"
        with pytest.raises(ValidationError):
            CatalogDocumentValidator().validate(document)
        assert any("schema_version" in e for e in collect_catalog_errors(document))

    def test_record_errors_are_located(self, document):
        broken = copy.deepcopy(document)
        broken["currencies"][1]["minor_units"] = 7
        broken["countries"][0]["continent"] = "XX"
        errors = collect_catalog_errors(broken)
        assert any(e.startswith("currencies[1].minor_units") for e in errors)
        assert any(e.startswith("countries[0].continent") for e in errors)


# =============================================================================
# RECORDS
# =============================================================================


class TestCurrencyContract:
    def test_valid(self):
        assert CurrencyValidator().is_valid({"code": "EUR", "symbol": "€", "minor_units": 2})

    @pytest.mark.parametrize("code", ["eur", "EURO", "E1R", ""])
    def test_bad_code(self, code):
        assert not CurrencyValidator().is_valid({"code": code, "symbol": "€", "minor_units": 2})

    def test_missing_symbol(self):
        assert not CurrencyValidator().is_valid({"code": "EUR", "minor_units": 2})

    def test_bad_symbol_position(self):
        record = {"code": "EUR", "symbol": "€", "minor_units": 2, "symbol_position": "middle"}
        assert not CurrencyValidator().is_valid(record)


class TestShippingContracts:
    def test_valid_rate(self, valid_rate):
        ShippingRateValidator().validate(valid_rate)

    def test_unknown_service_level(self, valid_rate):
        valid_rate["service_level"] = "teleport"
        assert not ShippingRateValidator().is_valid(valid_rate)

    def test_zero_weight_breakpoint(self, valid_rate):
        valid_rate["breakpoints"][0]["max_weight_grams"] = 0
        assert not ShippingRateValidator().is_valid(valid_rate)

    def test_empty_breakpoints(self, valid_rate):
        valid_rate["breakpoints"] = []
        assert not ShippingRateValidator().is_valid(valid_rate)

    def test_zone_duplicate_countries(self):
        zone = {"name": "europe", "priority": 30, "countries": ["DE", "DE"]}
        assert not ShippingZoneValidator().is_valid(zone)

    def test_catch_all_zone(self):
        assert ShippingZoneValidator().is_valid({"name": "rest", "priority": 100, "catch_all": True})


class TestTaxContract:
    def test_numeric_and_string_rates(self):
        validator = TaxRateValidator()
        assert validator.is_valid({"country_code": "GB", "tax_type": "VAT", "base_rate": Decimal("0.20")})
        assert validator.is_valid({"country_code": "GB", "tax_type": "VAT", "base_rate": "0.20"})

    def test_rate_above_one(self):
        assert not TaxRateValidator().is_valid({"country_code": "GB", "tax_type": "VAT", "base_rate": 1.5})

    def test_bad_category_rate(self):
        record = {
            "country_code": "DE",
            "tax_type": "VAT",
            "base_rate": "0.19",
            "category_rates": {"books": "seven"},
        }
        assert not TaxRateValidator().is_valid(record)

    def test_unknown_tax_type(self):
        assert not TaxRateValidator().is_valid({"country_code": "US", "tax_type": "excise", "base_rate": 0})
