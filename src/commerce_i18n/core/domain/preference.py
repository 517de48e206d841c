"""
Preference — предпочтения пользователя и контекст запроса

Preference хранится как есть: значения полей НЕ валидируются при чтении,
поскольку сохранённая запись может быть устаревшей или повреждённой.
Валидность каждого поля проверяет PreferenceResolver независимо.
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field


class PreferenceSource(str, Enum):
    """Шаг цепочки, давший значение поля."""

    SAVED = "saved"
    GEOLOCATION = "geolocation"
    REQUEST = "request"
    DEFAULT = "default"


class Preference(BaseModel):
    """Сохранённые предпочтения principal (None: поле не задано)."""

    currency: Optional[str] = None
    locale: Optional[str] = None
    timezone: Optional[str] = None

    model_config = {"frozen": True}


class RequestContext(BaseModel):
    """
    Контекст входящего запроса.

    - ip_address: для geolocation
    - accept_language: заголовок Accept-Language
    - declared_currency / declared_timezone: значения, объявленные клиентом
      (например, заголовки X-Currency / X-Timezone)
    """

    ip_address: Optional[str] = None
    accept_language: Optional[str] = None
    declared_currency: Optional[str] = None
    declared_timezone: Optional[str] = None

    model_config = {"frozen": True}


class ResolvedPreferences(BaseModel):
    """Итог разрешения: значение и источник для каждого поля."""

    currency: str = Field(..., description="Валюта отображения")
    locale: str = Field(..., description="Locale tag")
    timezone: str = Field(..., description="IANA timezone")

    currency_source: PreferenceSource
    locale_source: PreferenceSource
    timezone_source: PreferenceSource

    model_config = {"frozen": True}

    @property
    def sources(self) -> Tuple[PreferenceSource, PreferenceSource, PreferenceSource]:
        return (self.currency_source, self.locale_source, self.timezone_source)
