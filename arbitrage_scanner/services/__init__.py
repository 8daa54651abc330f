from .market_discovery import MarketDiscoveryService
from .price_matrix import PriceMatrix
from .prices import CrossPrice, ExchangePrice, PriceCell
from .refresh import RefreshOrchestrator
from .schemas import ArbitrageOpportunity, RefreshFailure, RefreshReport

__all__ = [
    "ArbitrageOpportunity",
    "CrossPrice",
    "ExchangePrice",
    "MarketDiscoveryService",
    "PriceCell",
    "PriceMatrix",
    "RefreshFailure",
    "RefreshOrchestrator",
    "RefreshReport",
]
