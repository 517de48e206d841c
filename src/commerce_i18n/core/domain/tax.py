"""
TaxRate — налоговая ставка страны / субрегиона

Immutable Pydantic модель (таблица tax_rates).

Эффективная ставка = category_rates[category], если задана, иначе base_rate.
Ставки: доли (0.20 = 20%), Decimal.
"""

from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .country import COUNTRY_CODE_PATTERN


class TaxType(str, Enum):
    """Тип налога."""

    VAT = "VAT"
    GST = "GST"
    SALES = "sales"
    CONSUMPTION = "consumption"


class TaxRate(BaseModel):
    """Налоговая ставка страны (region_code=None) или субрегиона."""

    country_code: str = Field(..., pattern=COUNTRY_CODE_PATTERN, description="Страна")
    region_code: Optional[str] = Field(
        default=None, pattern=r"^[A-Z0-9]{1,3}$", description="Субрегион (штат, провинция)"
    )
    tax_type: TaxType = Field(..., description="Тип налога")
    base_rate: Decimal = Field(..., ge=0, le=1, description="Базовая ставка (доля)")
    prices_include_tax: bool = Field(
        default=False, description="Цены в регионе публикуются с налогом"
    )
    category_rates: Dict[str, Decimal] = Field(
        default_factory=dict, description="Переопределения ставки по категориям"
    )

    model_config = {"frozen": True}

    @field_validator("category_rates")
    @classmethod
    def validate_category_rates(cls, v: Dict[str, Decimal]) -> Dict[str, Decimal]:
        for category, rate in v.items():
            if not category:
                raise ValueError("category name must not be empty")
            if rate < 0 or rate > 1:
                raise ValueError(f"category rate for '{category}' must be within [0, 1], got {rate}")
        return v

    @property
    def key(self) -> tuple[str, Optional[str]]:
        return (self.country_code, self.region_code)

    def rate_for(self, category: Optional[str]) -> Decimal:
        """Эффективная ставка для категории."""
        if category is not None and category in self.category_rates:
            return self.category_rates[category]
        return self.base_rate
