"""Вспомогательные утилиты (логирование)."""
