"""Тесты TaxEngine."""

from decimal import Decimal

import pytest

from commerce_i18n.catalog import load_default_catalog
from commerce_i18n.core.domain import TaxType
from commerce_i18n.errors import RequestValidationError
from commerce_i18n.tax import TaxEngine, compute_tax


@pytest.fixture(scope="module")
def engine():
    return TaxEngine(load_default_catalog())


class TestComputeTax:
    def test_inclusive(self):
        assert compute_tax(12000, Decimal("0.20"), inclusive=True) == (2000, 12000)

    def test_exclusive(self):
        assert compute_tax(10000, Decimal("0.20"), inclusive=False) == (2000, 12000)

    def test_inclusive_rounds_net(self):
        # 100 / 1.19 = 84.03 → net 84
        assert compute_tax(100, Decimal("0.19"), inclusive=True) == (16, 100)

    def test_exclusive_half_up(self):
        # 99 * 0.0725 = 7.1775
        assert compute_tax(99, Decimal("0.0725"), inclusive=False) == (7, 106)
        # 50 * 0.05 = 2.5
        assert compute_tax(50, Decimal("0.05"), inclusive=False) == (3, 53)

    def test_zero_rate(self):
        assert compute_tax(12345, Decimal(0), inclusive=True) == (0, 12345)


class TestTaxEngine:
    def test_vat_inclusive_by_default(self, engine):
        result = engine.calculate("GB", None, 12000)
        assert (result.tax_amount, result.total_amount) == (2000, 12000)
        assert result.inclusive
        assert result.tax_type == TaxType.VAT
        assert result.currency == "GBP"

    def test_explicit_exclusive(self, engine):
        result = engine.calculate("GB", None, 10000, inclusive=False)
        assert (result.tax_amount, result.total_amount) == (2000, 12000)

    def test_category_override(self, engine):
        assert engine.calculate("GB", "books", 12000).tax_amount == 0
        result = engine.calculate("DE", "food", 10700)
        assert result.rate == Decimal("0.07")
        assert result.tax_amount == 700

    def test_unknown_category_uses_base_rate(self, engine):
        assert engine.calculate("DE", "garden", 11900).tax_amount == 1900

    def test_region_rate(self, engine):
        result = engine.calculate("US", None, 10000, region_code="CA")
        assert result.region_code == "CA"
        assert (result.tax_amount, result.total_amount) == (725, 10725)
        assert not result.inclusive

    def test_region_without_row_falls_back_to_country(self, engine):
        result = engine.calculate("US", None, 10000, region_code="TX")
        assert result.tax_amount == 0
        assert result.region_code is None

    def test_regional_category_override(self, engine):
        assert engine.calculate("US", "food", 10000, region_code="NY").tax_amount == 0
        assert engine.calculate("US", "toys", 10000, region_code="NY").tax_amount == 400

    def test_untaxed_country(self, engine):
        result = engine.calculate("BR", "books", 10000)
        assert result.rate == Decimal(0)
        assert result.tax_type is None
        assert (result.tax_amount, result.total_amount) == (0, 10000)
        assert result.currency == "BRL"

    def test_zero_minor_unit_currency(self, engine):
        result = engine.calculate("JP", None, 1100)
        assert result.currency == "JPY"
        assert result.tax_amount == 100

    def test_unknown_country(self, engine):
        with pytest.raises(RequestValidationError) as exc_info:
            engine.calculate("ZZ", None, 100)
        assert exc_info.value.field == "country_code"

    @pytest.mark.parametrize("amount", [-1, 10.5])
    def test_bad_amount(self, engine, amount):
        with pytest.raises(RequestValidationError):
            engine.calculate("GB", None, amount)
