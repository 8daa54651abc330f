from __future__ import annotations

from collections.abc import Collection
from typing import Any, Sequence

from arbitrage_scanner.core.exceptions import ExchangeError
from arbitrage_scanner.core.http import HttpClientFactory
from arbitrage_scanner.exchanges.base import BaseAdapter, ExchangeMarket, Quote


class KucoinAdapter(BaseAdapter):
    """
    KuCoin exchange adapter using public REST API endpoints.
    Symbols use the dashed form ("BTC-USDT"); quotes come from the level 1 book.
    """
    name = "kucoin"
    _REST_BASE = "https://api.kucoin.com"
    _OK_CODE = "200000"

    def __init__(self, http_factory: HttpClientFactory, quote_assets: Collection[str] | None = None) -> None:
        super().__init__(http_factory, quote_assets=quote_assets)

    def _payload(self, data: Any) -> Any:
        if not isinstance(data, dict) or str(data.get("code")) != self._OK_CODE:
            message = data.get("msg") if isinstance(data, dict) else data
            raise ExchangeError(f"KuCoin request failed: {message}")
        return data.get("data")

    async def fetch_markets(self) -> Sequence[ExchangeMarket]:
        self._log.info("Fetching markets from KuCoin")
        data = await self._http.get_json(f"{self._REST_BASE}/api/v1/symbols")
        markets: list[ExchangeMarket] = []
        for item in self._payload(data) or []:
            if item.get("enableTrading") is not True:
                continue
            symbol = (item.get("symbol") or "").upper()
            base = (item.get("baseCurrency") or "").upper()
            quote = (item.get("quoteCurrency") or "").upper()
            if not symbol or not base or not quote or not self.tracks_quote(quote):
                continue
            markets.append(ExchangeMarket(symbol=symbol, base_asset=base, quote_asset=quote))
        self._log.info("Fetched %d markets from KuCoin", len(markets))
        return markets

    async def refresh_quote(self, market: ExchangeMarket) -> Quote:
        data = await self._http.get_json(
            f"{self._REST_BASE}/api/v1/market/orderbook/level1",
            params={"symbol": market.symbol},
        )
        book = self._payload(data)
        if not book:
            # KuCoin answers unknown or delisted symbols with an empty payload.
            raise ExchangeError(f"KuCoin returned no order book for {market.symbol}")
        return Quote(bid=self._to_price(book.get("bestBid")), ask=self._to_price(book.get("bestAsk")))
