"""
Shipping — модели зон доставки и тарифов

Immutable Pydantic модели (таблицы shipping_zones, shipping_rates).

Инварианты:
- Ровно одна catch-all зона; её priority строго больше priority остальных зон
- Зоны с одинаковым priority не пересекаются по странам
- Брейкпоинты тарифа строго возрастают по весу, цены не убывают
  (стоимость монотонна по весу)

Все цены: minor units базовой валюты каталога.
"""

import re
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from .country import COUNTRY_CODE_PATTERN


_COUNTRY_CODE_RE = re.compile(COUNTRY_CODE_PATTERN)


# =============================================================================
# ENUMS
# =============================================================================


class ServiceLevel(str, Enum):
    """Уровень сервиса доставки (порядок: от медленного к быстрому)."""

    ECONOMY = "economy"
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"

    @property
    def rank(self) -> int:
        return _SERVICE_LEVEL_ORDER.index(self)


_SERVICE_LEVEL_ORDER = (
    ServiceLevel.ECONOMY,
    ServiceLevel.STANDARD,
    ServiceLevel.EXPRESS,
    ServiceLevel.OVERNIGHT,
)


# =============================================================================
# ZONES
# =============================================================================


class ShippingZone(BaseModel):
    """
    Зона доставки.

    priority: меньшее значение проверяется раньше.
    catch_all: зона совпадает с любой страной (список стран не задаётся).
    """

    name: str = Field(..., min_length=1, description="Уникальное имя зоны")
    priority: int = Field(..., ge=0, description="Приоритет (меньше = раньше)")
    countries: FrozenSet[str] = Field(default_factory=frozenset, description="Коды стран зоны")
    catch_all: bool = Field(default=False, description="Совпадает с любой страной")

    model_config = {"frozen": True}

    @field_validator("countries")
    @classmethod
    def validate_country_codes(cls, v: FrozenSet[str]) -> FrozenSet[str]:
        bad = sorted(code for code in v if not _COUNTRY_CODE_RE.match(code))
        if bad:
            raise ValueError(f"invalid country codes: {bad}")
        return v

    @model_validator(mode="after")
    def validate_catch_all(self) -> "ShippingZone":
        """Catch-all зона не перечисляет страны; обычная зона перечисляет."""
        if self.catch_all and self.countries:
            raise ValueError(f"catch-all zone '{self.name}' must not list countries")
        if not self.catch_all and not self.countries:
            raise ValueError(f"zone '{self.name}' must list at least one country")
        return self

    def matches(self, country_code: str) -> bool:
        return self.catch_all or country_code in self.countries


# =============================================================================
# RATES
# =============================================================================


class WeightBreakpoint(BaseModel):
    """Брейкпоинт: посылки до max_weight_grams включительно стоят price_minor."""

    max_weight_grams: int = Field(..., gt=0, description="Верхняя граница веса (г)")
    price_minor: int = Field(..., ge=0, description="Цена (minor units)")

    model_config = {"frozen": True}


class DeliveryEstimate(BaseModel):
    """Диапазон сроков доставки (рабочие дни)."""

    min_days: int = Field(..., ge=0)
    max_days: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_range(self) -> "DeliveryEstimate":
        if self.max_days < self.min_days:
            raise ValueError("max_days must be >= min_days")
        return self


class ShippingRate(BaseModel):
    """
    Тариф зоны для уровня сервиса.

    Сверх последнего брейкпоинта:
        cost = price(last) + ceil((weight - weight(last)) / overage_unit_grams) * overage_rate_minor
    """

    zone: str = Field(..., min_length=1, description="Имя зоны")
    service_level: ServiceLevel = Field(..., description="Уровень сервиса")
    breakpoints: Tuple[WeightBreakpoint, ...] = Field(..., min_length=1, description="Брейкпоинты")
    delivery_estimate: DeliveryEstimate = Field(..., description="Срок доставки")
    overage_rate_minor: int = Field(..., ge=0, description="Цена за единицу сверхвеса")
    overage_unit_grams: int = Field(default=1000, gt=0, description="Единица сверхвеса (г)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_monotonic(self) -> "ShippingRate":
        """Веса строго возрастают, цены не убывают."""
        previous: Optional[WeightBreakpoint] = None
        for bp in self.breakpoints:
            if previous is not None:
                if bp.max_weight_grams <= previous.max_weight_grams:
                    raise ValueError(
                        f"breakpoint weights must be strictly ascending "
                        f"({previous.max_weight_grams}g then {bp.max_weight_grams}g)"
                    )
                if bp.price_minor < previous.price_minor:
                    raise ValueError(
                        f"breakpoint prices must be non-decreasing "
                        f"({previous.price_minor} then {bp.price_minor})"
                    )
            previous = bp
        return self

    @property
    def last_breakpoint(self) -> WeightBreakpoint:
        return self.breakpoints[-1]
