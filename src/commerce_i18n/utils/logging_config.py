"""
Logging Configuration

Единая настройка логирования для всех модулей движка:
- Структурированный однострочный формат
- Уровень из переменной окружения LOG_LEVEL (или EngineConfig.log_level через set_log_level)
- Опциональный файловый handler
- Контекстный менеджер для замера медленных операций
"""

import logging
import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional


PACKAGE_LOGGER = "commerce_i18n"


class StructuredFormatter(logging.Formatter):
    """
    Формат: [TIMESTAMP] [LEVEL] [MODULE:FUNCTION:LINE] MESSAGE {context}
    """

    def format(self, record: logging.LogRecord) -> str:
        context = getattr(record, "context", "")

        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        location = f"{record.module}:{record.funcName}:{record.lineno}"

        message = f"[{timestamp}] [{record.levelname:8s}] [{location}] {record.getMessage()}"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        if context:
            message += f" {context}"

        return message


class PerformanceLogger:
    """Контекстный менеджер: WARNING если операция дольше threshold_ms."""

    def __init__(self, logger: logging.Logger, operation: str, threshold_ms: float = 1000):
        self.logger = logger
        self.operation = operation
        self.threshold_ms = threshold_ms
        self._start: Optional[float] = None

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._start is None:
            return
        duration_ms = (time.perf_counter() - self._start) * 1000
        if duration_ms > self.threshold_ms:
            self.logger.warning(f"SLOW: {self.operation} took {duration_ms:.1f}ms")
        else:
            self.logger.debug(f"{self.operation} took {duration_ms:.1f}ms")


def setup_logger(
    name: str,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Настройка логгера модуля.

    Args:
        name: Имя логгера (обычно __name__)
        level: DEBUG/INFO/WARNING/ERROR. По умолчанию LOG_LEVEL или INFO
        log_file: Путь к файлу логов (optional, также LOG_FILE)

    Returns:
        Настроенный logger
    """
    logger = logging.getLogger(name)

    # Повторный вызов не добавляет handlers
    if logger.handlers:
        return logger

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, level, logging.INFO)
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    log_file = log_file or os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def set_log_level(level: str, prefix: str = PACKAGE_LOGGER) -> None:
    """
    Уровень для всех уже созданных логгеров пакета и их handlers.

    Логгеры модулей создаются при импорте через setup_logger; уровень из
    конфигурации применяется к ним после загрузки.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    for name in list(logging.Logger.manager.loggerDict):
        if name == prefix or name.startswith(prefix + "."):
            logger = logging.getLogger(name)
            logger.setLevel(log_level)
            for handler in logger.handlers:
                handler.setLevel(log_level)

def get_perf_logger(logger: logging.Logger, operation: str, threshold_ms: float = 1000) -> PerformanceLogger:
    """
    Usage:
        with get_perf_logger(logger, "refresh_rates", threshold_ms=5000):
            orchestrator.refresh("USD")
    """
    return PerformanceLogger(logger, operation, threshold_ms)
