"""
ConversionEngine — конверсия сумм между валютами

Модель курсов: rate(base→X) = единиц X (major) за 1 единицу base (major).

Алгоритм convert(x, A, B):
1. A == B → x без обращения к курсам
2. amount_base = amount_A / rate(base→A)   (пропускается, если A: base)
3. amount_B = amount_base * rate(base→B)   (пропускается, если B: base)
4. Пересчёт minor units по minor_units обеих валют

Все промежуточные значения: Decimal с расширенной точностью; округление
ROUND_HALF_UP выполняется один раз, на итоговой сумме в minor units.

Политика staleness: курс плеча старше staleness_threshold_sec (или
отсутствующий) → ConversionUnavailable. В пределах порога используется
последний известный курс (fail-open до порога, fail-closed после).

Все плечи одной конверсии читаются из одного immutable снапшота RateStore.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from commerce_i18n.catalog import Catalog
from commerce_i18n.config import ConversionConfig
from commerce_i18n.core.domain import Currency, major_to_minor, minor_to_major, validate_amount_minor
from commerce_i18n.core.math import extended_precision
from commerce_i18n.errors import ConversionUnavailable, RequestValidationError
from commerce_i18n.rates import RateSnapshot, RateStore
from commerce_i18n.rates.orchestrator import utc_now


@dataclass(frozen=True)
class ConversionQuote:
    """Результат конверсии с диагностикой."""

    amount_minor: int
    source: str
    target: str
    converted_minor: int
    effective_rate: Decimal  # target major за 1 source major, без округления
    snapshot_version: int
    oldest_rate_at: Optional[datetime]


class ConversionEngine:
    """
    Stateless конверсия поверх снапшотов RateStore.

    Потокобезопасен: не хранит изменяемого состояния, каждая конверсия
    работает с одним снапшотом.
    """

    def __init__(
        self,
        catalog: Catalog,
        rate_store: RateStore,
        config: Optional[ConversionConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if rate_store.base_currency != catalog.base_currency.code:
            raise ValueError(
                f"rate store base {rate_store.base_currency} differs from catalog base "
                f"{catalog.base_currency.code}"
            )
        self.catalog = catalog
        self.rate_store = rate_store
        self.config = config or ConversionConfig()
        self.clock = clock or utc_now
        self.base_code = catalog.base_currency.code

    # -------------------------------------------------------------------------
    # PUBLIC API
    # -------------------------------------------------------------------------

    def convert(self, amount_minor: int, source: str, target: str) -> int:
        """
        Конверсия суммы source → target (minor units).

        Raises:
            RequestValidationError: Некорректная сумма или неизвестная валюта
            ConversionUnavailable: Нет свежего курса для одного из плеч
        """
        return self.quote(amount_minor, source, target).converted_minor

    def quote(self, amount_minor: int, source: str, target: str) -> ConversionQuote:
        """convert() с эффективным курсом и версией снапшота."""
        self._validate_amount(amount_minor)
        src = self._currency(source, "source")
        dst = self._currency(target, "target")

        snapshot = self.rate_store.snapshot()

        if src.code == dst.code:
            return ConversionQuote(
                amount_minor=amount_minor,
                source=src.code,
                target=dst.code,
                converted_minor=amount_minor,
                effective_rate=Decimal(1),
                snapshot_version=snapshot.version,
                oldest_rate_at=None,
            )

        now = self.clock()
        rate_src = self._leg_rate(snapshot, src.code, src.code, dst.code, now)
        rate_dst = self._leg_rate(snapshot, dst.code, src.code, dst.code, now)

        with extended_precision():
            # minor → major(A) → major(base) → major(B); minor(B) округляется один раз ниже
            amount_major = minor_to_major(amount_minor, src)
            base_major = amount_major / rate_src
            target_major = base_major * rate_dst
            effective = rate_dst / rate_src

        leg_times = []
        for code in (src.code, dst.code):
            entry = snapshot.get(code) if code != self.base_code else None
            if entry is not None:
                leg_times.append(entry.fetched_at)

        return ConversionQuote(
            amount_minor=amount_minor,
            source=src.code,
            target=dst.code,
            converted_minor=major_to_minor(target_major, dst),
            effective_rate=effective,
            snapshot_version=snapshot.version,
            oldest_rate_at=min(leg_times) if leg_times else None,
        )

    def convert_to_base(self, amount_minor: int, source: str) -> int:
        return self.convert(amount_minor, source, self.base_code)

    def rate_between(self, source: str, target: str) -> Decimal:
        """
        Эффективный курс source→target (единиц target за 1 source, major units).

        Raises:
            RequestValidationError, ConversionUnavailable
        """
        src = self._currency(source, "source")
        dst = self._currency(target, "target")
        if src.code == dst.code:
            return Decimal(1)

        snapshot = self.rate_store.snapshot()
        now = self.clock()
        rate_src = self._leg_rate(snapshot, src.code, src.code, dst.code, now)
        rate_dst = self._leg_rate(snapshot, dst.code, src.code, dst.code, now)
        with extended_precision():
            return rate_dst / rate_src

    def is_available(self, source: str, target: str) -> bool:
        try:
            self.rate_between(source, target)
        except ConversionUnavailable:
            return False
        return True

    # -------------------------------------------------------------------------
    # INTERNALS
    # -------------------------------------------------------------------------

    def _leg_rate(
        self, snapshot: RateSnapshot, code: str, source: str, target: str, now: datetime
    ) -> Decimal:
        """Курс base→code из снапшота с проверкой staleness (для base: 1)."""
        if code == self.base_code:
            return Decimal(1)

        entry = snapshot.get(code)
        if entry is None:
            raise ConversionUnavailable(source, target, f"no rate for {self.base_code}->{code}")

        age = entry.age_seconds(now)
        if age > self.config.staleness_threshold_sec:
            raise ConversionUnavailable(
                source,
                target,
                f"rate {self.base_code}->{code} is {age:.0f}s old "
                f"(threshold {self.config.staleness_threshold_sec:.0f}s)",
            )
        return entry.rate

    def _currency(self, code: str, field: str) -> Currency:
        currency = self.catalog.currency(code) if isinstance(code, str) else None
        if currency is None:
            raise RequestValidationError(field, f"unknown currency {code!r}")
        return currency

    @staticmethod
    def _validate_amount(amount_minor: int) -> None:
        try:
            validate_amount_minor(amount_minor)
        except (TypeError, ValueError) as e:
            raise RequestValidationError("amount_minor", str(e))
