"""
Circuit Breaker — изоляция сбоев провайдера курсов

State machine:
- CLOSED → (failure_threshold подряд идущих сбоев) → OPEN
- OPEN → (истёк cooldown) → HALF_OPEN (разрешён ровно один пробный вызов)
- HALF_OPEN → (успех) → CLOSED
- HALF_OPEN → (сбой) → OPEN (cooldown начинается заново)

Счётчик сбоев и переход состояния изменяются атомарно (один lock на breaker),
поэтому конкурентные вызовы не могут дважды инкрементировать счётчик
или "гонять" переход.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from commerce_i18n.config import CircuitBreakerConfig
from commerce_i18n.utils.logging_config import setup_logger

logger = setup_logger(__name__)


class CircuitState(str, Enum):
    """Состояние circuit breaker."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class CircuitTransitionResult:
    """Результат регистрации исхода вызова."""

    new_state: CircuitState
    previous_state: CircuitState
    consecutive_failures: int

    # Диагностика
    transition_occurred: bool
    transition_reason: str
    details: str


@dataclass(frozen=True)
class CircuitStatus:
    """Снимок состояния breaker для мониторинга."""

    name: str
    state: CircuitState
    consecutive_failures: int
    last_failure_ms: Optional[float]
    next_retry_ms: Optional[float]


class CircuitBreaker:
    """
    Circuit breaker одного провайдера.

    Время передаётся явно (current_time_ms): breaker не читает часы сам,
    что делает переходы детерминированными и тестируемыми.
    """

    def __init__(self, name: str, config: Optional[CircuitBreakerConfig] = None):
        """
        Args:
            name: Имя защищаемой зависимости (provider_id)
            config: Порог сбоев и cooldown
        """
        self.name = name
        self.config = config or CircuitBreakerConfig()
        if self.config.failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1, got {self.config.failure_threshold}")
        if self.config.cooldown_sec < 0:
            raise ValueError(f"cooldown_sec must be non-negative, got {self.config.cooldown_sec}")

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at_ms: Optional[float] = None
        self._last_failure_ms: Optional[float] = None
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def allow_request(self, current_time_ms: float) -> bool:
        """
        Разрешён ли вызов провайдера сейчас.

        OPEN по истечении cooldown переходит в HALF_OPEN и выдаёт единственный
        пробный вызов; пока пробный вызов не завершён, остальные отклоняются.

        Args:
            current_time_ms: текущее время (ms)

        Returns:
            True если вызов разрешён
        """
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                if self._cooldown_elapsed(current_time_ms):
                    self._state = CircuitState.HALF_OPEN
                    self._trial_in_flight = True
                    logger.info(f"Circuit '{self.name}': OPEN → HALF_OPEN (trial call allowed)")
                    return True
                return False

            # HALF_OPEN
            if self._trial_in_flight:
                return False
            self._trial_in_flight = True
            return True

    def record_success(self, current_time_ms: float) -> CircuitTransitionResult:
        """Успешный вызов: сброс счётчика, переход в CLOSED."""
        with self._lock:
            previous = self._state
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._opened_at_ms = None
            self._trial_in_flight = False

        if previous != CircuitState.CLOSED:
            logger.info(f"Circuit '{self.name}': {previous.value} → CLOSED")
            return self._result(
                new_state=CircuitState.CLOSED,
                previous_state=previous,
                consecutive_failures=0,
                transition_occurred=True,
                transition_reason="trial_succeeded",
                details=f"Provider recovered at {current_time_ms:.0f}ms",
            )
        return self._result(
            new_state=CircuitState.CLOSED,
            previous_state=previous,
            consecutive_failures=0,
            transition_occurred=False,
            transition_reason="success",
            details="Call succeeded",
        )

    def record_failure(self, current_time_ms: float) -> CircuitTransitionResult:
        """
        Неуспешный вызов (включая timeout).

        - HALF_OPEN: пробный вызов провален → OPEN
        - CLOSED: при достижении failure_threshold → OPEN
        """
        with self._lock:
            previous = self._state
            self._consecutive_failures += 1
            self._last_failure_ms = current_time_ms
            self._trial_in_flight = False
            failures = self._consecutive_failures

            if previous == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                self._opened_at_ms = current_time_ms
                reason = "trial_failed"
            elif previous == CircuitState.CLOSED and failures >= self.config.failure_threshold:
                self._state = CircuitState.OPEN
                self._opened_at_ms = current_time_ms
                reason = "failure_threshold_reached"
            else:
                reason = "failure_counted"

            new_state = self._state

        if new_state != previous:
            logger.warning(
                f"Circuit '{self.name}': {previous.value} → {new_state.value} "
                f"after {failures} consecutive failures"
            )

        return self._result(
            new_state=new_state,
            previous_state=previous,
            consecutive_failures=failures,
            transition_occurred=new_state != previous,
            transition_reason=reason,
            details=f"failures={failures}/{self.config.failure_threshold}",
        )

    def release(self) -> None:
        """
        Освобождение пробного слота без учёта исхода (вызов отменён до завершения).

        Состояние и счётчик не меняются.
        """
        with self._lock:
            self._trial_in_flight = False

    def reset(self) -> None:
        """Принудительный возврат в CLOSED (административная операция)."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._opened_at_ms = None
            self._last_failure_ms = None
            self._trial_in_flight = False
        logger.info(f"Circuit '{self.name}' reset to CLOSED")

    def status(self) -> CircuitStatus:
        with self._lock:
            next_retry = None
            if self._state == CircuitState.OPEN and self._opened_at_ms is not None:
                next_retry = self._opened_at_ms + self.config.cooldown_sec * 1000
            return CircuitStatus(
                name=self.name,
                state=self._state,
                consecutive_failures=self._consecutive_failures,
                last_failure_ms=self._last_failure_ms,
                next_retry_ms=next_retry,
            )

    def _cooldown_elapsed(self, current_time_ms: float) -> bool:
        if self._opened_at_ms is None:
            return True
        return current_time_ms - self._opened_at_ms >= self.config.cooldown_sec * 1000

    def _result(
        self,
        new_state: CircuitState,
        previous_state: CircuitState,
        consecutive_failures: int,
        transition_occurred: bool,
        transition_reason: str,
        details: str,
    ) -> CircuitTransitionResult:
        return CircuitTransitionResult(
            new_state=new_state,
            previous_state=previous_state,
            consecutive_failures=consecutive_failures,
            transition_occurred=transition_occurred,
            transition_reason=transition_reason,
            details=details,
        )
