from .exceptions import ArbitrageError, ConfigurationError, ExchangeError
from .http import HttpClientFactory
from .logging import configure_logging

__all__ = ["configure_logging", "HttpClientFactory", "ArbitrageError", "ConfigurationError", "ExchangeError"]
