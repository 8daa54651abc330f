from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Collection
from typing import Sequence

from arbitrage_scanner.core.exceptions import DiscoveryError
from arbitrage_scanner.exchanges.base import ExchangeAdapter, ExchangeMarket

log = logging.getLogger(__name__)


class MarketDiscoveryService:
    """Collects the markets each exchange lists; the snapshot a price matrix is built from."""

    def __init__(self, adapters: Sequence[ExchangeAdapter], quote_assets: Collection[str] | None = None) -> None:
        self._adapters = adapters
        self._quote_assets = {asset.upper() for asset in quote_assets} if quote_assets else None
        self._cache: dict[ExchangeAdapter, list[ExchangeMarket]] = {}
        self._lock = asyncio.Lock()

    def _tracked(self, market: ExchangeMarket) -> bool:
        return self._quote_assets is None or market.quote_asset.upper() in self._quote_assets

    async def refresh(self) -> dict[ExchangeAdapter, list[ExchangeMarket]]:
        log.info("Refreshing market discovery for %d exchanges", len(self._adapters))
        # One exchange failing must not hide the markets of the others.
        results = await asyncio.gather(
            *(adapter.fetch_markets() for adapter in self._adapters),
            return_exceptions=True,
        )

        discovered: dict[ExchangeAdapter, list[ExchangeMarket]] = {}
        for adapter, result in zip(self._adapters, results, strict=True):
            if isinstance(result, BaseException):
                log.error("Failed to fetch markets from %s: %s", adapter.name, result)
                continue
            discovered[adapter] = [market for market in result if self._tracked(market)]

        if self._adapters and not discovered:
            raise DiscoveryError("Failed to fetch markets from every exchange")

        listings = Counter(market.market_id for markets in discovered.values() for market in set(markets))
        shared = sum(1 for count in listings.values() if count >= 2)
        log.info(
            "Discovered %d markets on %d of %d exchanges; %d pairs are listed on at least two",
            sum(len(markets) for markets in discovered.values()),
            len(discovered),
            len(self._adapters),
            shared,
        )

        async with self._lock:
            self._cache = discovered
        return dict(discovered)

    async def get_cached(self) -> dict[ExchangeAdapter, list[ExchangeMarket]]:
        async with self._lock:
            return dict(self._cache)
