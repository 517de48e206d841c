"""
RateRefreshScheduler — фоновый запуск refresh по расписанию

Daemon поток вызывает refresh каждые interval_sec. trigger_now() будит
поток для внеочередного цикла; stop() завершает поток и (по умолчанию)
отменяет цикл, выполняющийся в данный момент.
"""

import threading
from typing import Callable, Iterable, Optional

from commerce_i18n.utils.logging_config import setup_logger

from .orchestrator import RateProviderOrchestrator, RefreshResult

logger = setup_logger(__name__)


class RateRefreshScheduler:
    """Периодический refresh курсов в фоновом потоке."""

    def __init__(
        self,
        orchestrator: RateProviderOrchestrator,
        base_currency: str,
        interval_sec: float = 3600.0,
        expected_currencies: Optional[Callable[[], Iterable[str]]] = None,
        on_result: Optional[Callable[[RefreshResult], None]] = None,
        run_immediately: bool = True,
    ):
        """
        Args:
            orchestrator: Оркестратор провайдеров
            base_currency: Базовая валюта
            interval_sec: Интервал между циклами
            expected_currencies: Callable, возвращающий актуальный список валют
                (читается на каждом цикле: каталог может быть перезагружен)
            on_result: Callback с результатом каждого цикла
            run_immediately: Первый цикл сразу после start()
        """
        if interval_sec <= 0:
            raise ValueError(f"interval_sec must be positive, got {interval_sec}")

        self.orchestrator = orchestrator
        self.base_currency = base_currency
        self.interval_sec = interval_sec
        self.expected_currencies = expected_currencies
        self.on_result = on_result
        self.run_immediately = run_immediately

        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._cancel_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_result: Optional[RefreshResult] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._cancel_event.clear()
        if self.run_immediately:
            self._wake_event.set()
        self._thread = threading.Thread(target=self._loop, name="rate-refresh-scheduler", daemon=True)
        self._thread.start()
        logger.info(f"Rate refresh scheduler started (interval {self.interval_sec:.0f}s)")

    def trigger_now(self) -> None:
        """Внеочередной цикл (без ожидания интервала)."""
        self._wake_event.set()

    def stop(self, cancel_running: bool = True, timeout: Optional[float] = None) -> None:
        """
        Остановка планировщика.

        Args:
            cancel_running: Отменить выполняющийся цикл (RateStore не изменится)
            timeout: Ожидание завершения потока
        """
        self._stop_event.set()
        if cancel_running:
            self._cancel_event.set()
        self._wake_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("Rate refresh scheduler stopped")

    def run_once(self) -> RefreshResult:
        """Синхронный цикл refresh с текущими параметрами."""
        expected = list(self.expected_currencies()) if self.expected_currencies else None
        result = self.orchestrator.refresh(
            self.base_currency, expected_currencies=expected, cancel_event=self._cancel_event
        )
        self.last_result = result
        if self.on_result is not None:
            self.on_result(result)
        return result

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self._wake_event.wait(self.interval_sec)
            self._wake_event.clear()
            if self._stop_event.is_set():
                break
            try:
                self.run_once()
            except Exception:
                # Поток планировщика не должен умирать из-за одного цикла
                logger.exception("Scheduled rate refresh failed")
