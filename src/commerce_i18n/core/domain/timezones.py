"""
Timezones — проверка IANA идентификаторов часовых поясов

База часовых поясов: системная zoneinfo, при её отсутствии пакет tzdata.
"""

from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def is_valid_timezone(name: Optional[str]) -> bool:
    """Имя известно базе IANA (Europe/Berlin, UTC)."""
    if not name or not isinstance(name, str):
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True
