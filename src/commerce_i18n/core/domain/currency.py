"""
Currency — модель валюты каталога

Immutable Pydantic модель. Соответствует таблице currencies каталога
(core/contracts/schema/currency.json).

Инвариант каталога: ровно одна валюта с is_base = True.
"""

from enum import Enum
from typing import Final

from pydantic import BaseModel, Field, field_validator


# Максимальное число знаков minor unit (KWD/BHD/OMR = 3, с запасом)
MAX_MINOR_UNITS: Final[int] = 4

CURRENCY_CODE_PATTERN: Final[str] = r"^[A-Z]{3}$"


class SymbolPosition(str, Enum):
    """Положение символа валюты относительно суммы."""

    PREFIX = "prefix"
    SUFFIX = "suffix"


class Currency(BaseModel):
    """
    Валюта каталога.

    minor_units: количество десятичных знаков (USD=2, JPY=0, KWD=3).
    Все суммы движка выражены в minor units этой валюты.
    """

    code: str = Field(..., pattern=CURRENCY_CODE_PATTERN, description="ISO 4217 код")
    name: str = Field(default="", description="Отображаемое имя")
    symbol: str = Field(..., min_length=1, description="Символ валюты")
    symbol_position: SymbolPosition = Field(
        default=SymbolPosition.PREFIX, description="Положение символа"
    )
    minor_units: int = Field(
        ..., ge=0, le=MAX_MINOR_UNITS, description="Количество десятичных знаков"
    )
    grouping_separator: str = Field(default=",", max_length=1, description="Разделитель разрядов")
    decimal_separator: str = Field(default=".", min_length=1, max_length=1, description="Десятичный разделитель")
    is_base: bool = Field(default=False, description="Базовая валюта курсов")

    model_config = {"frozen": True}

    @field_validator("decimal_separator")
    @classmethod
    def validate_decimal_separator(cls, v: str, info) -> str:
        """Десятичный разделитель не должен совпадать с разделителем разрядов."""
        if "grouping_separator" in info.data and v == info.data["grouping_separator"]:
            raise ValueError("decimal_separator must differ from grouping_separator")
        return v

    @property
    def scale(self) -> int:
        """Количество minor units в одной major unit (10^minor_units)."""
        return 10 ** self.minor_units
