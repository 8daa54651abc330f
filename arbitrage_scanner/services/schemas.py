from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arbitrage_scanner.services.prices import PriceCell


@dataclass(frozen=True, slots=True)
class ArbitrageOpportunity:
    """A crossed pair as seen at scan time.

    The cells identify where to buy and sell; ``buy_price`` and ``sell_price``
    are copied when the opportunity is found, so later refreshes of the cells
    do not change it.
    """

    label: str  # "BASE/QUOTE"
    lowest_ask: PriceCell
    highest_bid: PriceCell
    buy_price: float
    sell_price: float

    @property
    def spread(self) -> float:
        return self.sell_price - self.buy_price

    @property
    def spread_pct(self) -> float:
        return self.spread / self.buy_price * 100.0


@dataclass(frozen=True, slots=True)
class RefreshFailure:
    exchange: str
    scope: str  # market label, or "quote:<CODE>" for a batched request
    error: str


@dataclass(slots=True)
class RefreshReport:
    started_ms: int
    finished_ms: int | None = None
    refreshed: int = 0
    failures: list[RefreshFailure] = field(default_factory=list)
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def duration_ms(self) -> int | None:
        if self.finished_ms is None:
            return None
        return self.finished_ms - self.started_ms
