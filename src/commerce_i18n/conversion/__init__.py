"""
Conversion — конверсия сумм между валютами и форматирование.
"""

from .engine import ConversionEngine, ConversionQuote
from .formatting import format_amount, format_exchange_rate, format_number

__all__ = [
    "ConversionEngine",
    "ConversionQuote",
    "format_amount",
    "format_exchange_rate",
    "format_number",
]
