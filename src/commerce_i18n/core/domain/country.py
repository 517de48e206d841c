"""
Country — модель страны каталога

Immutable Pydantic модель (таблица countries).
Связи: default_currency → Currency.code (проверяется при загрузке каталога).
"""

from enum import Enum
from typing import Final

from pydantic import BaseModel, Field

from .currency import CURRENCY_CODE_PATTERN


COUNTRY_CODE_PATTERN: Final[str] = r"^[A-Z]{2}$"

# BCP 47 в упрощённой форме: язык[-РЕГИОН]
LOCALE_PATTERN: Final[str] = r"^[a-z]{2,3}(-[A-Z]{2})?$"


class Continent(str, Enum):
    """Континент (для группировки в отчётах и зонах)."""

    AFRICA = "AF"
    ANTARCTICA = "AN"
    ASIA = "AS"
    EUROPE = "EU"
    NORTH_AMERICA = "NA"
    OCEANIA = "OC"
    SOUTH_AMERICA = "SA"


class Country(BaseModel):
    """Страна каталога."""

    code: str = Field(..., pattern=COUNTRY_CODE_PATTERN, description="ISO 3166-1 alpha-2")
    name: str = Field(default="", description="Отображаемое имя")
    default_currency: str = Field(..., pattern=CURRENCY_CODE_PATTERN, description="Валюта по умолчанию")
    locale: str = Field(..., pattern=LOCALE_PATTERN, description="Locale tag (например, de-DE)")
    timezone: str = Field(..., min_length=1, description="IANA timezone")
    phone_code: str = Field(default="", pattern=r"^(\+[0-9]{1,4})?$", description="Телефонный код")
    continent: Continent = Field(..., description="Континент")
    shipping_eligible: bool = Field(default=True, description="Доставка в страну разрешена")

    model_config = {"frozen": True}

    @property
    def language(self) -> str:
        """Язык из locale tag (de-DE → de)."""
        return self.locale.split("-", 1)[0]
