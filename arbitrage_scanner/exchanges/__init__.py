from .base import (
    BaseAdapter,
    BatchQuoteSource,
    ExchangeAdapter,
    ExchangeMarket,
    MarketId,
    OrderBook,
    Quote,
)
from .bybit import BybitAdapter
from .kucoin import KucoinAdapter
from .okx import OkxAdapter

__all__ = [
    "BaseAdapter",
    "BatchQuoteSource",
    "BybitAdapter",
    "ExchangeAdapter",
    "ExchangeMarket",
    "KucoinAdapter",
    "MarketId",
    "OkxAdapter",
    "OrderBook",
    "Quote",
]
