from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

from arbitrage_scanner.config.models import RefreshConfig
from arbitrage_scanner.core.exceptions import ConfigurationError
from arbitrage_scanner.exchanges.base import ExchangeMarket, MarketId
from arbitrage_scanner.services.opportunity_scanner import scan
from arbitrage_scanner.services.prices import ExchangePrice, PriceCell, exchange_name
from arbitrage_scanner.services.refresh import RefreshOrchestrator
from arbitrage_scanner.services.schemas import ArbitrageOpportunity, RefreshReport

log = logging.getLogger(__name__)


def _check_code(code: Any, where: str) -> None:
    if not isinstance(code, str) or not code.strip():
        raise ConfigurationError(f"Invalid currency code {code!r} in {where}")


def validate_markets(markets: Mapping[Any, Sequence[ExchangeMarket]]) -> None:
    """Reject market metadata that cannot be placed in the grid."""
    for exchange, exchange_markets in markets.items():
        for market in exchange_markets:
            where = f"{exchange_name(exchange)} market {market.symbol!r}"
            _check_code(market.base_asset, where)
            _check_code(market.quote_asset, where)
            if market.base_asset == market.quote_asset:
                raise ConfigurationError(f"{where} has the same base and quote currency {market.base_asset!r}")


def collect_currencies(markets: Mapping[Any, Sequence[ExchangeMarket]], extra: Iterable[str] = ()) -> list[str]:
    currencies = set(extra)
    for exchange_markets in markets.values():
        for market in exchange_markets:
            currencies.add(market.base_asset)
            currencies.add(market.quote_asset)
    return sorted(currencies)


class PriceMatrix:
    """Base currency x quote currency grid of every known way to price a pair.

    ``grid[i][j]`` holds the prices of currency ``i`` in terms of currency ``j``;
    the diagonal is never allocated. The grid shape and the cells it holds are
    fixed at construction; refreshes only update cell values in place.
    """

    def __init__(
        self,
        markets: Mapping[Any, Sequence[ExchangeMarket]],
        *,
        currencies: Iterable[str] = (),
        refresh: RefreshConfig | None = None,
    ) -> None:
        extra = list(currencies)
        validate_markets(markets)
        for code in extra:
            _check_code(code, "extra currencies")

        self._codes: tuple[str, ...] = tuple(collect_currencies(markets, extra))
        self._indices: dict[str, int] = {code: idx for idx, code in enumerate(self._codes)}

        size = len(self._codes)
        self._grid: list[list[list[PriceCell] | None]] = [
            [None if base_idx == quote_idx else [] for quote_idx in range(size)]
            for base_idx in range(size)
        ]

        cell_count = 0
        for exchange, exchange_markets in markets.items():
            seen: set[MarketId] = set()
            for market in exchange_markets:
                if market.market_id in seen:
                    log.warning("Skipping duplicate %s market %s", exchange_name(exchange), market.market_id)
                    continue
                seen.add(market.market_id)
                self._position(market.base_asset, market.quote_asset).append(ExchangePrice(exchange, market))
                cell_count += 1

        refresh = refresh or RefreshConfig()
        self._refresher = RefreshOrchestrator(
            self.exchange_prices(),
            join_timeout_sec=refresh.join_timeout_sec,
            max_concurrency=refresh.max_concurrency,
        )
        self.last_refresh: RefreshReport | None = None
        log.info("Built price matrix: %d currencies, %d exchange prices", size, cell_count)

    def __len__(self) -> int:
        return len(self._codes)

    @property
    def currencies(self) -> tuple[str, ...]:
        return self._codes

    def index_of(self, code: str) -> int:
        return self._indices[code]

    def _position(self, base: str, quote: str) -> list[PriceCell]:
        cells = self._grid[self._indices[base]][self._indices[quote]]
        if cells is None:
            raise ValueError(f"{base}/{quote} is not a tradable pair")
        return cells

    def prices_for(self, base: str, quote: str) -> tuple[PriceCell, ...]:
        return tuple(self._position(base, quote))

    def positions(self) -> Iterator[tuple[str, str, list[PriceCell]]]:
        """Yield ``(base, quote, cells)`` for every off-diagonal grid position in index order."""
        for base_idx, row in enumerate(self._grid):
            for quote_idx, cells in enumerate(row):
                if cells is None:
                    continue
                yield self._codes[base_idx], self._codes[quote_idx], cells

    def exchange_prices(self) -> Iterator[ExchangePrice]:
        for _base, _quote, cells in self.positions():
            for cell in cells:
                if isinstance(cell, ExchangePrice):
                    yield cell

    def add_price(self, base: str, quote: str, cell: PriceCell) -> None:
        """Add a derived price, e.g. a ``CrossPrice``, to an existing grid position."""
        if isinstance(cell, ExchangePrice):
            raise ConfigurationError("Exchange prices are created from market metadata, not added later")
        for code in (base, quote):
            if code not in self._indices:
                raise ConfigurationError(f"Unknown currency {code!r}")
        if base == quote:
            raise ConfigurationError(f"Cannot price {base} in terms of itself")
        self._position(base, quote).append(cell)

    async def refresh_all(self) -> RefreshReport:
        self.last_refresh = await self._refresher.refresh_all()
        return self.last_refresh

    def find_opportunities(self) -> list[ArbitrageOpportunity]:
        return scan(self)

    async def get_arbitrage_opportunities(self) -> list[ArbitrageOpportunity]:
        await self.refresh_all()
        opportunities = self.find_opportunities()
        log.info("Found %d arbitrage opportunities", len(opportunities))
        return opportunities
