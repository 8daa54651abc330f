"""Cross-exchange arbitrage scanner built around a currency price matrix."""

__version__ = "0.1.0"
