from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Protocol

from arbitrage_scanner.exchanges.base import ExchangeMarket, Quote


def exchange_name(exchange: Any) -> str:
    return getattr(exchange, "name", None) or str(exchange)


class PriceCell(Protocol):
    """Anything that can price one base currency in terms of one quote currency."""

    @property
    def bid(self) -> float | None:
        ...

    @property
    def ask(self) -> float | None:
        ...

    @property
    def label(self) -> str:
        ...

    async def refresh(self) -> None:
        ...


@dataclass(eq=False, slots=True)
class ExchangePrice:
    """Top of book for one market on one exchange, updated in place on every refresh.

    Equality is identity: two exchanges quoting the same pair are never the same price.
    """

    exchange: Any
    market: ExchangeMarket
    bid: float | None = None
    ask: float | None = None
    updated_ms: int | None = None

    @property
    def exchange_name(self) -> str:
        return exchange_name(self.exchange)

    @property
    def label(self) -> str:
        return f"{self.exchange_name}:{self.market.market_id}"

    async def refresh(self) -> None:
        quote = await self.exchange.refresh_quote(self.market)
        self.apply_quote(quote)

    def apply_quote(self, quote: Quote) -> None:
        self.bid = quote.bid
        self.ask = quote.ask
        self.updated_ms = int(time.time() * 1000)


@dataclass(eq=False, slots=True)
class CrossPrice:
    """Price of base/quote inferred through an intermediate currency.

    ``first`` prices base/via and ``second`` prices via/quote. Nothing is
    fetched; values follow the legs, which are refreshed on their own.
    """

    first: PriceCell
    second: PriceCell
    via: str

    @property
    def bid(self) -> float | None:
        first, second = self.first.bid, self.second.bid
        if first is None or second is None:
            return None
        return first * second

    @property
    def ask(self) -> float | None:
        first, second = self.first.ask, self.second.ask
        if first is None or second is None:
            return None
        return first * second

    @property
    def label(self) -> str:
        return f"{self.first.label} x {self.second.label}"

    async def refresh(self) -> None:
        return None
