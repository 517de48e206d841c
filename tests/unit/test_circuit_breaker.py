"""Тесты для Circuit Breaker.

Coverage:
- CLOSED → OPEN после failure_threshold подряд идущих сбоев
- OPEN блокирует вызовы до истечения cooldown
- HALF_OPEN: ровно один пробный вызов, успех → CLOSED, сбой → OPEN
- Успех сбрасывает счётчик
- Атомарность счётчика при конкурентных сбоях
"""

import threading

import pytest

from commerce_i18n.config import CircuitBreakerConfig
from commerce_i18n.rates import CircuitBreaker, CircuitState

COOLDOWN_MS = 60_000


@pytest.fixture
def breaker():
    return CircuitBreaker("frankfurter", CircuitBreakerConfig(failure_threshold=3, cooldown_sec=60.0))


def _fail(breaker, times, at=1000.0):
    result = None
    for _ in range(times):
        assert breaker.allow_request(at)
        result = breaker.record_failure(at)
    return result


class TestClosed:
    def test_initial_state(self, breaker):
        assert breaker.state == CircuitState.CLOSED
        assert breaker.allow_request(0.0)

    def test_below_threshold_stays_closed(self, breaker):
        result = _fail(breaker, 2)
        assert result.new_state == CircuitState.CLOSED
        assert not result.transition_occurred
        assert result.transition_reason == "failure_counted"
        assert breaker.consecutive_failures == 2

    def test_success_resets_counter(self, breaker):
        _fail(breaker, 2)
        breaker.record_success(2000.0)
        _fail(breaker, 2)
        assert breaker.state == CircuitState.CLOSED

    def test_opens_after_threshold(self, breaker):
        result = _fail(breaker, 3)
        assert result.new_state == CircuitState.OPEN
        assert result.previous_state == CircuitState.CLOSED
        assert result.transition_occurred
        assert result.transition_reason == "failure_threshold_reached"
        assert result.consecutive_failures == 3


class TestOpen:
    def test_fourth_call_within_cooldown_blocked(self, breaker):
        _fail(breaker, 3, at=1000.0)
        assert not breaker.allow_request(1000.0 + COOLDOWN_MS - 1)
        assert breaker.state == CircuitState.OPEN

    def test_status_reports_next_retry(self, breaker):
        _fail(breaker, 3, at=1000.0)
        status = breaker.status()
        assert status.state == CircuitState.OPEN
        assert status.consecutive_failures == 3
        assert status.last_failure_ms == 1000.0
        assert status.next_retry_ms == 1000.0 + COOLDOWN_MS

    def test_cooldown_elapsed_moves_to_half_open(self, breaker):
        _fail(breaker, 3, at=1000.0)
        assert breaker.allow_request(1000.0 + COOLDOWN_MS)
        assert breaker.state == CircuitState.HALF_OPEN


class TestHalfOpen:
    def _half_open(self, breaker):
        _fail(breaker, 3, at=1000.0)
        assert breaker.allow_request(1000.0 + COOLDOWN_MS)

    def test_single_trial_call(self, breaker):
        self._half_open(breaker)
        assert not breaker.allow_request(1000.0 + COOLDOWN_MS + 1)

    def test_trial_success_closes(self, breaker):
        self._half_open(breaker)
        result = breaker.record_success(1000.0 + COOLDOWN_MS + 10)
        assert result.new_state == CircuitState.CLOSED
        assert result.transition_reason == "trial_succeeded"
        assert breaker.consecutive_failures == 0
        assert breaker.allow_request(1000.0 + COOLDOWN_MS + 20)

    def test_trial_failure_reopens_with_new_cooldown(self, breaker):
        self._half_open(breaker)
        reopened_at = 1000.0 + COOLDOWN_MS + 10
        result = breaker.record_failure(reopened_at)
        assert result.new_state == CircuitState.OPEN
        assert result.transition_reason == "trial_failed"
        assert not breaker.allow_request(reopened_at + COOLDOWN_MS - 1)
        assert breaker.allow_request(reopened_at + COOLDOWN_MS)

    def test_release_frees_trial_slot(self, breaker):
        self._half_open(breaker)
        breaker.release()
        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.allow_request(1000.0 + COOLDOWN_MS + 1)


class TestAdministration:
    def test_reset(self, breaker):
        _fail(breaker, 3)
        breaker.reset()
        status = breaker.status()
        assert status.state == CircuitState.CLOSED
        assert status.consecutive_failures == 0
        assert status.next_retry_ms is None

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            CircuitBreaker("p", CircuitBreakerConfig(failure_threshold=0))
        with pytest.raises(ValueError):
            CircuitBreaker("p", CircuitBreakerConfig(cooldown_sec=-1))

    def test_concurrent_failures_counted_once_each(self):
        breaker = CircuitBreaker("p", CircuitBreakerConfig(failure_threshold=800, cooldown_sec=60.0))
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            for _ in range(100):
                breaker.record_failure(1000.0)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert breaker.consecutive_failures == 800
        assert breaker.state == CircuitState.OPEN
