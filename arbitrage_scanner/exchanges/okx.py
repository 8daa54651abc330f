from __future__ import annotations

from collections.abc import Collection
from typing import Any, Sequence

from arbitrage_scanner.core.exceptions import ExchangeError
from arbitrage_scanner.core.http import HttpClientFactory
from arbitrage_scanner.exchanges.base import BaseAdapter, ExchangeMarket, MarketId, OrderBook, Quote


class OkxAdapter(BaseAdapter):
    """
    OKX exchange adapter.

    Supports batched retrieval: ``/api/v5/market/tickers`` returns the top of
    book for every spot instrument in one response, so ``get_order_books`` is
    answered with one request per quote currency instead of one per market.
    """
    name = "okx"
    _REST_BASE = "https://www.okx.com"

    def __init__(self, http_factory: HttpClientFactory, quote_assets: Collection[str] | None = None) -> None:
        super().__init__(http_factory, quote_assets=quote_assets)

    @staticmethod
    def _data(payload: Any) -> list[dict[str, Any]]:
        if not isinstance(payload, dict) or str(payload.get("code")) != "0":
            message = payload.get("msg") if isinstance(payload, dict) else payload
            raise ExchangeError(f"OKX request failed: {message}")
        return payload.get("data") or []

    def _book_from_ticker(self, item: dict[str, Any]) -> OrderBook:
        bid = self._to_price(item.get("bidPx"))
        ask = self._to_price(item.get("askPx"))
        return OrderBook(
            bids=[(bid, self._to_price(item.get("bidSz")) or 0.0)] if bid is not None else [],
            asks=[(ask, self._to_price(item.get("askSz")) or 0.0)] if ask is not None else [],
        )

    async def fetch_markets(self) -> Sequence[ExchangeMarket]:
        self._log.info("Fetching markets from OKX")
        data = await self._http.get_json(f"{self._REST_BASE}/api/v5/public/instruments", params={"instType": "SPOT"})
        markets: list[ExchangeMarket] = []
        for item in self._data(data):
            symbol = (item.get("instId") or "").upper()
            base = (item.get("baseCcy") or "").upper()
            quote = (item.get("quoteCcy") or "").upper()
            if not symbol or not base or not quote:
                continue
            if item.get("state", "live") != "live" or not self.tracks_quote(quote):
                continue
            markets.append(ExchangeMarket(symbol=symbol, base_asset=base, quote_asset=quote))
        self._log.info("Fetched %d markets from OKX", len(markets))
        return markets

    async def refresh_quote(self, market: ExchangeMarket) -> Quote:
        data = await self._http.get_json(f"{self._REST_BASE}/api/v5/market/ticker", params={"instId": market.symbol})
        entries = self._data(data)
        if not entries:
            raise ExchangeError(f"OKX returned no ticker for {market.symbol}")
        return self._book_from_ticker(entries[0]).to_quote()

    async def get_order_books(self, quote_asset: str) -> dict[MarketId, OrderBook]:
        quote_asset = quote_asset.upper()
        data = await self._http.get_json(f"{self._REST_BASE}/api/v5/market/tickers", params={"instType": "SPOT"})
        books: dict[MarketId, OrderBook] = {}
        for item in self._data(data):
            base, _, quote = item.get("instId", "").upper().partition("-")
            if quote != quote_asset or not base:
                continue
            books[MarketId(base, quote)] = self._book_from_ticker(item)
        self._log.debug("Fetched %d %s order books from OKX", len(books), quote_asset)
        return books
