"""
Sanity-тест для модуля MoneyUnits

Проверяет:
1. Корректность конверсий minor ↔ major для валют с 0/2/3 знаками
2. Единственное округление при major → minor
3. Валидацию сумм
"""

from decimal import Decimal

import pytest

from commerce_i18n.core.domain import Currency
from commerce_i18n.core.domain.units import (
    AMOUNT_MAX_MINOR,
    major_to_minor,
    major_to_minor_exact,
    minor_to_major,
    validate_amount_minor,
)


@pytest.fixture
def usd():
    return Currency(code="USD", symbol="$", minor_units=2, is_base=True)


@pytest.fixture
def jpy():
    return Currency(code="JPY", symbol="¥", minor_units=0)


@pytest.fixture
def kwd():
    return Currency(code="KWD", symbol="KD", minor_units=3)


class TestMinorToMajor:
    def test_two_places(self, usd) -> None:
        assert minor_to_major(12345, usd) == Decimal("123.45")

    def test_zero_places(self, jpy) -> None:
        assert minor_to_major(500, jpy) == Decimal("500")

    def test_three_places(self, kwd) -> None:
        assert minor_to_major(1005, kwd) == Decimal("1.005")

    def test_exact_for_large_amounts(self, usd) -> None:
        assert minor_to_major(AMOUNT_MAX_MINOR, usd) == Decimal(AMOUNT_MAX_MINOR) / 100


class TestMajorToMinor:
    def test_exact_is_not_rounded(self, usd) -> None:
        assert major_to_minor_exact(Decimal("90.005"), usd) == Decimal("9000.5")

    def test_rounded_half_up(self, usd) -> None:
        assert major_to_minor(Decimal("90.005"), usd) == 9001
        assert major_to_minor(Decimal("90.004"), usd) == 9000

    def test_round_trip(self, usd, jpy, kwd) -> None:
        """minor → major → minor обратимо"""
        for currency, amount in ((usd, 12345), (jpy, 999), (kwd, 1005)):
            assert major_to_minor(minor_to_major(amount, currency), currency) == amount


class TestValidation:
    def test_zero_and_positive_accepted(self) -> None:
        validate_amount_minor(0)
        validate_amount_minor(AMOUNT_MAX_MINOR)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            validate_amount_minor(-1)

    def test_above_max_rejected(self) -> None:
        with pytest.raises(ValueError, match="exceeds maximum"):
            validate_amount_minor(AMOUNT_MAX_MINOR + 1)

    def test_non_int_rejected(self) -> None:
        with pytest.raises(TypeError):
            validate_amount_minor(Decimal("10"))
        with pytest.raises(TypeError):
            validate_amount_minor(10.0)
