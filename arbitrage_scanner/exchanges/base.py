from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple, Protocol, Sequence, runtime_checkable

from arbitrage_scanner.core.http import HttpClientFactory


class MarketId(NamedTuple):
    base: str
    quote: str

    def __str__(self) -> str:
        return f"{self.base}/{self.quote}"


@dataclass(frozen=True, slots=True)
class ExchangeMarket:
    symbol: str
    base_asset: str
    quote_asset: str

    @property
    def market_id(self) -> MarketId:
        return MarketId(self.base_asset, self.quote_asset)


@dataclass(slots=True)
class Quote:
    bid: float | None
    ask: float | None


@dataclass(slots=True)
class OrderBook:
    """Order-book snapshot; each level is ``(price, size)``."""

    bids: Sequence[tuple[float, float]]
    asks: Sequence[tuple[float, float]]

    @property
    def best_bid(self) -> float | None:
        return max((price for price, _ in self.bids), default=None)

    @property
    def best_ask(self) -> float | None:
        return min((price for price, _ in self.asks), default=None)

    def to_quote(self) -> Quote:
        return Quote(bid=self.best_bid, ask=self.best_ask)


class ExchangeAdapter(Protocol):
    name: str

    async def fetch_markets(self) -> Sequence[ExchangeMarket]:
        ...

    async def refresh_quote(self, market: ExchangeMarket) -> Quote:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class BatchQuoteSource(Protocol):
    """Exchanges that return every market quoted in one currency from a single call."""

    async def get_order_books(self, quote_asset: str) -> Mapping[MarketId, OrderBook]:
        ...


class BaseAdapter:
    name: str

    def __init__(self, http_factory: HttpClientFactory, quote_assets: Collection[str] | None = None) -> None:
        self._http = http_factory
        self._quote_assets = {asset.upper() for asset in quote_assets} if quote_assets else None
        self._log = logging.getLogger(f"arbitrage_scanner.exchanges.{self.name}")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    async def close(self) -> None:
        self._log.info("Closing adapter")

    def tracks_quote(self, quote_asset: str) -> bool:
        return self._quote_assets is None or quote_asset.upper() in self._quote_assets

    @staticmethod
    def _to_price(value: Any) -> float | None:
        """Parse an exchange price; empty, zero or unparsable values mean no resting order."""
        try:
            price = float(value)
        except (TypeError, ValueError):
            return None
        return price if price > 0 else None
