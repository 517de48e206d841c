"""
Tax — расчёт налога (VAT, GST, sales, consumption).
"""

from .engine import TaxCalculation, TaxEngine, compute_tax

__all__ = ["TaxCalculation", "TaxEngine", "compute_tax"]
