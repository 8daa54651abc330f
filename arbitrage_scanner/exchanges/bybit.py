from __future__ import annotations

from collections.abc import Collection
from typing import Any, Sequence

from arbitrage_scanner.core.exceptions import ExchangeError
from arbitrage_scanner.core.http import HttpClientFactory
from arbitrage_scanner.exchanges.base import BaseAdapter, ExchangeMarket, Quote


class BybitAdapter(BaseAdapter):
    """
    Bybit exchange adapter using public REST API endpoints.
    Quotes are fetched one market at a time from the top level of the spot order book.
    Public endpoints: /v5/market/instruments-info, /v5/market/orderbook
    """
    name = "bybit"
    _REST_BASE = "https://api.bybit.com"

    def __init__(self, http_factory: HttpClientFactory, quote_assets: Collection[str] | None = None) -> None:
        super().__init__(http_factory, quote_assets=quote_assets)

    def _result(self, data: Any) -> dict[str, Any]:
        if not isinstance(data, dict) or data.get("retCode") not in (0, "0"):
            message = data.get("retMsg") if isinstance(data, dict) else data
            raise ExchangeError(f"Bybit request failed: {message}")
        return data.get("result") or {}

    async def fetch_markets(self) -> Sequence[ExchangeMarket]:
        self._log.info("Fetching markets from Bybit")
        data = await self._http.get_json(f"{self._REST_BASE}/v5/market/instruments-info", params={"category": "spot"})
        markets: list[ExchangeMarket] = []
        for item in self._result(data).get("list", []):
            symbol = item.get("symbol")
            base = item.get("baseCoin")
            quote = item.get("quoteCoin")
            if not symbol or not base or not quote:
                continue
            if item.get("status", "Trading") != "Trading" or not self.tracks_quote(quote):
                continue
            markets.append(ExchangeMarket(symbol=symbol.upper(), base_asset=base.upper(), quote_asset=quote.upper()))
        self._log.info("Fetched %d markets from Bybit", len(markets))
        return markets

    async def refresh_quote(self, market: ExchangeMarket) -> Quote:
        data = await self._http.get_json(
            f"{self._REST_BASE}/v5/market/orderbook",
            params={"category": "spot", "symbol": market.symbol, "limit": 1},
        )
        result = self._result(data)
        bids = result.get("b") or []
        asks = result.get("a") or []
        return Quote(
            bid=self._to_price(bids[0][0]) if bids else None,
            ask=self._to_price(asks[0][0]) if asks else None,
        )
