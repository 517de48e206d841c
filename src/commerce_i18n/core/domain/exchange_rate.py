"""
ExchangeRate — запись курса валютной пары

Immutable Pydantic модель. Создаётся только циклом refresh оркестратора.
История append-only; "latest": запись с максимальным fetched_at для пары.

Семантика: rate(source→target) это сколько единиц target за 1 единицу source
(в major units). В движке source всегда базовая валюта.
"""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from .currency import CURRENCY_CODE_PATTERN


class ExchangeRate(BaseModel):
    """Курс source→target на момент fetched_at."""

    source: str = Field(..., pattern=CURRENCY_CODE_PATTERN, description="Исходная (базовая) валюта")
    target: str = Field(..., pattern=CURRENCY_CODE_PATTERN, description="Целевая валюта")
    rate: Decimal = Field(..., gt=0, description="Единиц target за 1 source")
    fetched_at: datetime = Field(..., description="Момент получения (UTC, aware)")
    provider_id: str = Field(..., min_length=1, description="Идентификатор провайдера")
    significant_change: bool = Field(
        default=False, description="Отклонение от предыдущего курса выше порога"
    )

    model_config = {"frozen": True}

    @field_validator("fetched_at")
    @classmethod
    def validate_fetched_at(cls, v: datetime) -> datetime:
        """Naive datetime трактуется как UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def pair(self) -> tuple[str, str]:
        return (self.source, self.target)

    def age_seconds(self, now: datetime) -> float:
        """Возраст курса в секундах относительно now."""
        return (now - self.fetched_at).total_seconds()
