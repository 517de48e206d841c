"""
Preference Store — сохранённые предпочтения principal

Запись принадлежит principal и изменяется только через
PreferenceResolver.update(). Хранится бессрочно до следующего изменения.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from commerce_i18n.core.domain import Preference


class PreferenceStore(ABC):
    @abstractmethod
    def get(self, principal: str) -> Optional[Preference]:
        """Сохранённые предпочтения или None."""

    @abstractmethod
    def save(self, principal: str, preference: Preference) -> None:
        """Замена записи principal целиком."""


class InMemoryPreferenceStore(PreferenceStore):
    """Потокобезопасное in-memory хранилище."""

    def __init__(self, initial: Optional[Dict[str, Preference]] = None):
        self._lock = threading.Lock()
        self._records: Dict[str, Preference] = dict(initial or {})

    def get(self, principal: str) -> Optional[Preference]:
        with self._lock:
            return self._records.get(principal)

    def save(self, principal: str, preference: Preference) -> None:
        with self._lock:
            self._records[principal] = preference

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
