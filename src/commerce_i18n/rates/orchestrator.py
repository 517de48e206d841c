"""
RateProviderOrchestrator — цикл обновления курсов

Алгоритм refresh(base):
1. Mutual exclusion: одновременно выполняется не более одного цикла
   (повторный вызов получает ALREADY_RUNNING, а не ждёт)
2. Провайдеры перебираются в порядке приоритета; провайдер с OPEN breaker
   пропускается без вызова
3. Каждый вызов ограничен provider_timeout_sec, весь цикл ограничен cycle_timeout_sec;
   timeout засчитывается breaker как failure
4. Первый провайдер, вернувший ПОЛНУЮ карту курсов, побеждает; остальные
   в этом цикле не вызываются
5. Для каждого курса base→X считается отклонение от предыдущего значения;
   |new-old|/old > threshold → significant_change (только наблюдаемость)
6. Новый снапшот публикуется в RateStore атомарно. Если все провайдеры
   упали, цикл отменён или превысил таймаут: RateStore не изменяется

Ошибки провайдеров не пропагируют: результат цикла: RefreshResult.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from commerce_i18n.config import CircuitBreakerConfig, ConversionConfig, RefreshConfig
from commerce_i18n.core.domain import ExchangeRate
from commerce_i18n.core.math import relative_deviation
from commerce_i18n.errors import ProviderError, ProviderErrorKind
from commerce_i18n.utils.logging_config import get_perf_logger, setup_logger

from .circuit_breaker import CircuitBreaker, CircuitState, CircuitStatus
from .providers import RateProvider
from .store import RateStore

logger = setup_logger(__name__)


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# RESULT TYPES
# =============================================================================


class RefreshStatus(str, Enum):
    """Итог цикла refresh."""

    UPDATED = "updated"
    ALL_PROVIDERS_FAILED = "all_providers_failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    ALREADY_RUNNING = "already_running"


class AttemptOutcome(str, Enum):
    """Исход обращения к одному провайдеру."""

    SUCCESS = "success"
    FAILED = "failed"
    CIRCUIT_OPEN = "circuit_open"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProviderAttempt:
    provider_id: str
    outcome: AttemptOutcome
    error_kind: Optional[ProviderErrorKind] = None
    message: str = ""
    duration_ms: float = 0.0


@dataclass(frozen=True)
class RefreshResult:
    """
    Результат цикла refresh.

    success=True только для UPDATED. При любом другом статусе RateStore
    сохраняет предыдущий снапшот; stale_alert=True, если этот снапшот
    старше порога staleness (или пуст).
    """

    success: bool
    status: RefreshStatus
    base_currency: str
    provider_id: Optional[str] = None
    rates_written: int = 0
    significant_changes: Tuple[str, ...] = ()
    attempts: Tuple[ProviderAttempt, ...] = ()
    snapshot_version: int = 0
    staleness_seconds: Optional[float] = None
    stale_alert: bool = False
    details: str = ""


@dataclass
class _CallOutcome:
    """Внутренний результат одного вызова провайдера."""

    rates: Optional[Mapping[str, Decimal]] = None
    error: Optional[ProviderError] = None
    cancelled: bool = False
    cycle_timed_out: bool = False
    duration_ms: float = 0.0


# =============================================================================
# ORCHESTRATOR
# =============================================================================


class RateProviderOrchestrator:
    """
    Оркестратор провайдеров курсов с per-provider circuit breaking.

    Единственный писатель RateStore.
    """

    def __init__(
        self,
        providers: Sequence[RateProvider],
        rate_store: RateStore,
        config: Optional[RefreshConfig] = None,
        breaker_config: Optional[CircuitBreakerConfig] = None,
        conversion_config: Optional[ConversionConfig] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            providers: Провайдеры в порядке приоритета
            rate_store: Хранилище курсов (оркестратор: единственный писатель)
            config: Таймауты и порог significant change
            breaker_config: Конфигурация breaker каждого провайдера
            conversion_config: Порог staleness для stale alert
            clock: Источник текущего времени (UTC aware)
        """
        if not providers:
            raise ValueError("at least one rate provider is required")
        ids = [p.provider_id for p in providers]
        if len(set(ids)) != len(ids):
            raise ValueError(f"duplicate provider ids: {ids}")

        self.providers: Tuple[RateProvider, ...] = tuple(providers)
        self.rate_store = rate_store
        self.config = config or RefreshConfig()
        self.conversion_config = conversion_config or ConversionConfig()
        self.clock = clock or utc_now

        self._breakers: Dict[str, CircuitBreaker] = {
            p.provider_id: CircuitBreaker(p.provider_id, breaker_config) for p in self.providers
        }
        self._refresh_lock = threading.Lock()
        # Зависший вызов продолжает занимать worker после таймаута, поэтому запас
        self._executor = ThreadPoolExecutor(
            max_workers=max(4, 2 * len(self.providers)), thread_name_prefix="rate-provider"
        )

    # -------------------------------------------------------------------------
    # REFRESH
    # -------------------------------------------------------------------------

    def refresh(
        self,
        base_currency: str,
        expected_currencies: Optional[Iterable[str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RefreshResult:
        """
        Один цикл обновления курсов.

        Args:
            base_currency: Базовая валюта (должна совпадать с RateStore)
            expected_currencies: Валюты, которые обязана содержать карта провайдера.
                None: принимается любая непустая карта
            cancel_event: Установка события прерывает цикл

        Returns:
            RefreshResult (никогда не бросает ProviderError)
        """
        if base_currency != self.rate_store.base_currency:
            raise ValueError(
                f"base currency {base_currency} does not match rate store base {self.rate_store.base_currency}"
            )

        if not self._refresh_lock.acquire(blocking=False):
            logger.info("Refresh already running, skipping")
            return self._no_write_result(
                RefreshStatus.ALREADY_RUNNING, base_currency, (), "another refresh is in progress", alert=False
            )

        try:
            expected = frozenset(expected_currencies) - {base_currency} if expected_currencies else None
            cancel_event = cancel_event or threading.Event()
            threshold_ms = self.config.cycle_timeout_sec * 1000 / 2
            with get_perf_logger(logger, "rate_refresh", threshold_ms=threshold_ms):
                return self._run_cycle(base_currency, expected, cancel_event)
        finally:
            self._refresh_lock.release()

    def _run_cycle(
        self,
        base_currency: str,
        expected: Optional[frozenset],
        cancel_event: threading.Event,
    ) -> RefreshResult:
        deadline = time.monotonic() + self.config.cycle_timeout_sec
        attempts: List[ProviderAttempt] = []

        for provider in self.providers:
            if cancel_event.is_set():
                return self._cancelled(base_currency, attempts)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return self._timed_out(base_currency, attempts)

            breaker = self._breakers[provider.provider_id]
            if not breaker.allow_request(self._now_ms()):
                logger.info(f"Provider {provider.provider_id}: circuit OPEN, skipped")
                attempts.append(ProviderAttempt(provider.provider_id, AttemptOutcome.CIRCUIT_OPEN))
                continue

            call_timeout = min(self.config.provider_timeout_sec, remaining)
            call = self._call_provider(provider, base_currency, call_timeout, deadline, cancel_event)

            if call.cancelled:
                breaker.release()
                attempts.append(
                    ProviderAttempt(provider.provider_id, AttemptOutcome.CANCELLED, duration_ms=call.duration_ms)
                )
                return self._cancelled(base_currency, attempts)

            error = call.error
            if error is None:
                error = self._check_complete(provider.provider_id, call.rates, expected)

            if error is not None:
                breaker.record_failure(self._now_ms())
                logger.warning(f"Provider {provider.provider_id} failed ({error.kind.value}): {error.message}")
                attempts.append(
                    ProviderAttempt(
                        provider.provider_id,
                        AttemptOutcome.FAILED,
                        error_kind=error.kind,
                        message=error.message,
                        duration_ms=call.duration_ms,
                    )
                )
                if call.cycle_timed_out:
                    return self._timed_out(base_currency, attempts)
                continue

            breaker.record_success(self._now_ms())
            attempts.append(
                ProviderAttempt(provider.provider_id, AttemptOutcome.SUCCESS, duration_ms=call.duration_ms)
            )
            return self._publish(base_currency, provider.provider_id, call.rates, expected, attempts)

        return self._all_failed(base_currency, attempts)

    def _call_provider(
        self,
        provider: RateProvider,
        base_currency: str,
        timeout: float,
        deadline: float,
        cancel_event: threading.Event,
    ) -> _CallOutcome:
        """
        Вызов провайдера в worker потоке с ожиданием по частям.

        Каждые cancel_poll_interval_sec проверяется отмена; по истечении
        timeout вызов считается TIMEOUT (поток не прерывается, результат отбрасывается).
        """
        started = time.monotonic()
        future: Future = self._executor.submit(provider.fetch, base_currency)
        call_deadline = started + timeout

        while True:
            now = time.monotonic()
            if now >= call_deadline:
                future.cancel()
                return _CallOutcome(
                    error=ProviderError(
                        ProviderErrorKind.TIMEOUT, provider.provider_id, f"no response within {timeout:.2f}s"
                    ),
                    cycle_timed_out=now >= deadline,
                    duration_ms=(now - started) * 1000,
                )

            wait_for = min(self.config.cancel_poll_interval_sec, call_deadline - now)
            done, _ = wait_futures([future], timeout=wait_for)
            duration_ms = (time.monotonic() - started) * 1000

            if done:
                try:
                    return _CallOutcome(rates=future.result(), duration_ms=duration_ms)
                except ProviderError as e:
                    return _CallOutcome(error=e, duration_ms=duration_ms)
                except Exception as e:
                    logger.exception(f"Provider {provider.provider_id} raised unexpected error")
                    return _CallOutcome(
                        error=ProviderError(ProviderErrorKind.UNAVAILABLE, provider.provider_id, repr(e)),
                        duration_ms=duration_ms,
                    )

            if cancel_event.is_set():
                future.cancel()
                return _CallOutcome(cancelled=True, duration_ms=duration_ms)

    @staticmethod
    def _check_complete(
        provider_id: str,
        rates: Optional[Mapping[str, Decimal]],
        expected: Optional[frozenset],
    ) -> Optional[ProviderError]:
        if not rates:
            return ProviderError(ProviderErrorKind.INCOMPLETE, provider_id, "empty rate map")
        if expected is not None:
            missing = sorted(expected - set(rates))
            if missing:
                return ProviderError(ProviderErrorKind.INCOMPLETE, provider_id, f"missing rates for {missing}")
        return None

    # -------------------------------------------------------------------------
    # OUTCOMES
    # -------------------------------------------------------------------------

    def _publish(
        self,
        base_currency: str,
        provider_id: str,
        rates: Mapping[str, Decimal],
        expected: Optional[frozenset],
        attempts: List[ProviderAttempt],
    ) -> RefreshResult:
        fetched_at = self.clock()
        previous = self.rate_store.snapshot()
        threshold = self.config.significant_change_threshold

        records: List[ExchangeRate] = []
        significant: List[str] = []
        for code in sorted(rates):
            if code == base_currency or (expected is not None and code not in expected):
                continue
            new_rate = rates[code]
            old_rate = previous.rate(code)
            flagged = old_rate is not None and relative_deviation(new_rate, old_rate) > threshold
            if flagged:
                significant.append(code)
                logger.warning(
                    f"Significant rate change {base_currency}->{code}: {old_rate} → {new_rate} "
                    f"(threshold {threshold})"
                )
            records.append(
                ExchangeRate(
                    source=base_currency,
                    target=code,
                    rate=new_rate,
                    fetched_at=fetched_at,
                    provider_id=provider_id,
                    significant_change=flagged,
                )
            )

        snapshot = self.rate_store.publish(records)
        logger.info(
            f"Rates refreshed from {provider_id}: {len(records)} pairs, "
            f"{len(significant)} significant changes, snapshot v{snapshot.version}"
        )
        return RefreshResult(
            success=True,
            status=RefreshStatus.UPDATED,
            base_currency=base_currency,
            provider_id=provider_id,
            rates_written=len(records),
            significant_changes=tuple(significant),
            attempts=tuple(attempts),
            snapshot_version=snapshot.version,
            staleness_seconds=snapshot.staleness_seconds(self.clock()),
            stale_alert=False,
            details=f"updated from {provider_id}",
        )

    def _all_failed(self, base_currency: str, attempts: List[ProviderAttempt]) -> RefreshResult:
        logger.error(
            f"All rate providers failed for base {base_currency}: "
            + ", ".join(f"{a.provider_id}={a.outcome.value}" for a in attempts)
        )
        return self._no_write_result(
            RefreshStatus.ALL_PROVIDERS_FAILED, base_currency, attempts, "all providers failed"
        )

    def _cancelled(self, base_currency: str, attempts: List[ProviderAttempt]) -> RefreshResult:
        logger.info(f"Refresh for {base_currency} cancelled, rate store untouched")
        return self._no_write_result(RefreshStatus.CANCELLED, base_currency, attempts, "refresh cancelled")

    def _timed_out(self, base_currency: str, attempts: List[ProviderAttempt]) -> RefreshResult:
        logger.error(
            f"Refresh for {base_currency} exceeded {self.config.cycle_timeout_sec:.1f}s, rate store untouched"
        )
        return self._no_write_result(
            RefreshStatus.TIMED_OUT, base_currency, attempts, "refresh cycle timed out"
        )

    def _no_write_result(
        self,
        status: RefreshStatus,
        base_currency: str,
        attempts: Iterable[ProviderAttempt],
        details: str,
        alert: bool = True,
    ) -> RefreshResult:
        snapshot = self.rate_store.snapshot()
        staleness = snapshot.staleness_seconds(self.clock())
        stale = alert and (staleness is None or staleness > self.conversion_config.staleness_threshold_sec)
        if stale:
            age = "no rates cached" if staleness is None else f"oldest rate is {staleness:.0f}s old"
            logger.error(
                f"ALERT: stale rate cache for base {base_currency} ({age}, "
                f"threshold {self.conversion_config.staleness_threshold_sec:.0f}s)"
            )
        return RefreshResult(
            success=False,
            status=status,
            base_currency=base_currency,
            attempts=tuple(attempts),
            snapshot_version=snapshot.version,
            staleness_seconds=staleness,
            stale_alert=stale,
            details=details,
        )

    # -------------------------------------------------------------------------
    # MONITORING
    # -------------------------------------------------------------------------

    def circuit_status(self) -> Dict[str, CircuitStatus]:
        return {provider_id: breaker.status() for provider_id, breaker in self._breakers.items()}

    def reset_circuits(self) -> None:
        for breaker in self._breakers.values():
            breaker.reset()

    @property
    def healthy(self) -> bool:
        """True если все breakers в CLOSED."""
        return all(b.state == CircuitState.CLOSED for b in self._breakers.values())

    @property
    def is_running(self) -> bool:
        return self._refresh_lock.locked()

    def close(self) -> None:
        """Остановка пула worker потоков (зависшие вызовы не ожидаются)."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _now_ms(self) -> float:
        return self.clock().timestamp() * 1000
