class ArbitrageError(Exception):
    """Base error for the arbitrage scanner."""


class ExchangeError(ArbitrageError):
    """Raised when an exchange adapter fails or returns a malformed response."""


class DiscoveryError(ArbitrageError):
    """Raised for market discovery issues."""


class ConfigurationError(ArbitrageError):
    """Raised when settings or market metadata are inconsistent."""
