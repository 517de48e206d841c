"""
RateStore — хранилище курсов с copy-on-write снапшотами

Модель конкурентности:
- Единственный писатель (оркестратор): publish() под writer lock
- Много читателей: snapshot() без блокировок, читается одна ссылка
  на immutable RateSnapshot; подмена ссылки атомарна
- Снапшот публикуется целиком (вся карта пар) или не публикуется вовсе;
  чтение "старого" и "нового" курса в одной конверсии невозможно

История курсов append-only; latest: запись с максимальным fetched_at на пару.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from commerce_i18n.core.domain import ExchangeRate
from commerce_i18n.core.math import signed_change
from commerce_i18n.utils.logging_config import setup_logger

logger = setup_logger(__name__)


# Порог "нейтрального" тренда: |change| <= 0.1%
TREND_NEUTRAL_BAND = Decimal("0.001")

# Окно сравнения тренда по умолчанию
TREND_WINDOW = timedelta(hours=24)


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"
    NEW = "new"


@dataclass(frozen=True)
class RateTrend:
    """Тренд курса относительно записи не моложе окна сравнения."""

    target: str
    direction: TrendDirection
    change_pct: Optional[Decimal]  # в процентах, None для NEW
    current_rate: Decimal
    reference_rate: Optional[Decimal]


@dataclass(frozen=True)
class RateSnapshot:
    """
    Immutable снапшот курсов base→X.

    rates: target → последняя ExchangeRate для пары (base, target)
    version: монотонный номер публикации (0: пустой/seed снапшот)
    """

    base_currency: str
    rates: Mapping[str, ExchangeRate] = field(default_factory=lambda: MappingProxyType({}))
    published_at: Optional[datetime] = None
    version: int = 0

    def get(self, target: str) -> Optional[ExchangeRate]:
        return self.rates.get(target)

    def rate(self, target: str) -> Optional[Decimal]:
        entry = self.rates.get(target)
        return entry.rate if entry is not None else None

    def staleness_seconds(self, now: datetime) -> Optional[float]:
        """Возраст самого старого курса в снапшоте (None: снапшот пуст)."""
        if not self.rates:
            return None
        oldest = min(r.fetched_at for r in self.rates.values())
        return (now - oldest).total_seconds()

    def __len__(self) -> int:
        return len(self.rates)


class RateStore:
    """
    Хранилище курсов: текущий снапшот + append-only история.

    Все курсы выражены относительно одной базовой валюты.
    """

    def __init__(self, base_currency: str, seed: Iterable[ExchangeRate] = ()):
        """
        Args:
            base_currency: Код базовой валюты
            seed: Начальный снапшот (например, последний известный набор курсов)
        """
        self._base_currency = base_currency
        self._write_lock = threading.Lock()
        self._history: Dict[Tuple[str, str], List[ExchangeRate]] = {}
        self._snapshot = RateSnapshot(base_currency=base_currency)

        seed = list(seed)
        if seed:
            self.publish(seed)

    @property
    def base_currency(self) -> str:
        return self._base_currency

    # -------------------------------------------------------------------------
    # READ
    # -------------------------------------------------------------------------

    def snapshot(self) -> RateSnapshot:
        """Текущий immutable снапшот (без блокировок)."""
        return self._snapshot

    def history(self, target: str) -> Tuple[ExchangeRate, ...]:
        """История курсов base→target в порядке fetched_at."""
        with self._write_lock:
            return tuple(self._history.get((self._base_currency, target), ()))

    def latest(self, target: str) -> Optional[ExchangeRate]:
        return self._snapshot.get(target)

    def trend(self, target: str, now: datetime, window: timedelta = TREND_WINDOW) -> Optional[RateTrend]:
        """
        Тренд курса base→target.

        Сравнивает последний курс с последней записью, полученной не позже now - window.
        |change| <= 0.1% → FLAT, нет опорной записи → NEW.

        Returns:
            RateTrend или None, если курса нет вовсе
        """
        current = self.latest(target)
        if current is None:
            return None

        cutoff = now - window
        reference = None
        for entry in reversed(self.history(target)):
            if entry.fetched_at <= cutoff:
                reference = entry
                break

        if reference is None:
            return RateTrend(
                target=target,
                direction=TrendDirection.NEW,
                change_pct=None,
                current_rate=current.rate,
                reference_rate=None,
            )

        change = signed_change(current.rate, reference.rate)
        if change > TREND_NEUTRAL_BAND:
            direction = TrendDirection.UP
        elif change < -TREND_NEUTRAL_BAND:
            direction = TrendDirection.DOWN
        else:
            direction = TrendDirection.FLAT

        return RateTrend(
            target=target,
            direction=direction,
            change_pct=change * 100,
            current_rate=current.rate,
            reference_rate=reference.rate,
        )

    # -------------------------------------------------------------------------
    # WRITE (single writer)
    # -------------------------------------------------------------------------

    def publish(self, rates: Iterable[ExchangeRate]) -> RateSnapshot:
        """
        Атомарная публикация нового набора курсов.

        Новый снапшот = предыдущий снапшот + переданные курсы (пары, не вошедшие
        в набор, сохраняют предыдущее значение). Ссылка подменяется одним присваиванием.

        Args:
            rates: Курсы base→X

        Returns:
            Опубликованный снапшот

        Raises:
            ValueError: Курс не относительно базовой валюты или дубликат пары в наборе
        """
        rates = list(rates)
        seen = set()
        for entry in rates:
            if entry.source != self._base_currency:
                raise ValueError(
                    f"rate {entry.source}->{entry.target} is not relative to base {self._base_currency}"
                )
            if entry.target in seen:
                raise ValueError(f"duplicate rate for pair {entry.source}->{entry.target}")
            seen.add(entry.target)

        with self._write_lock:
            current = self._snapshot
            merged: Dict[str, ExchangeRate] = dict(current.rates)
            for entry in rates:
                previous = merged.get(entry.target)
                # latest = max fetched_at; более старая запись уходит только в историю
                if previous is None or entry.fetched_at >= previous.fetched_at:
                    merged[entry.target] = entry
                self._append_history(entry)

            published_at = max((r.fetched_at for r in rates), default=current.published_at)
            new_snapshot = RateSnapshot(
                base_currency=self._base_currency,
                rates=MappingProxyType(merged),
                published_at=published_at,
                version=current.version + 1,
            )
            self._snapshot = new_snapshot

        logger.debug(f"Published rate snapshot v{new_snapshot.version} ({len(rates)} rates)")
        return new_snapshot

    def _append_history(self, entry: ExchangeRate) -> None:
        bucket = self._history.setdefault(entry.pair, [])
        bucket.append(entry)
        if len(bucket) > 1 and bucket[-2].fetched_at > entry.fetched_at:
            bucket.sort(key=lambda r: r.fetched_at)
