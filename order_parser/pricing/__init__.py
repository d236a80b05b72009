"""Tax-inclusive price derivation."""

from .tax import TAX_RATE, LineAmounts, calculate_total, derive, split_tax

__all__ = ["TAX_RATE", "LineAmounts", "calculate_total", "derive", "split_tax"]
