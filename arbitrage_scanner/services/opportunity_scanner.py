from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from arbitrage_scanner.services.prices import PriceCell
from arbitrage_scanner.services.schemas import ArbitrageOpportunity

if TYPE_CHECKING:
    from arbitrage_scanner.services.price_matrix import PriceMatrix


def select_extremes(cells: Iterable[PriceCell]) -> tuple[PriceCell | None, PriceCell | None]:
    """Return ``(highest_bid_cell, lowest_ask_cell)``.

    Comparisons are strict, so on equal prices the cell seen first is kept.
    Cells missing a side are ignored for that side.
    """
    highest_bid: PriceCell | None = None
    lowest_ask: PriceCell | None = None
    best_bid = best_ask = 0.0

    for cell in cells:
        bid = cell.bid
        if bid is not None and (highest_bid is None or bid > best_bid):
            highest_bid, best_bid = cell, bid
        ask = cell.ask
        if ask is not None and (lowest_ask is None or ask < best_ask):
            lowest_ask, best_ask = cell, ask

    return highest_bid, lowest_ask


def scan(matrix: PriceMatrix) -> list[ArbitrageOpportunity]:
    """Walk every off-diagonal grid position and collect crossed pairs.

    A position yields an opportunity when the best bid beats the best ask and
    the two come from different cells; one cell's own crossed book is not
    arbitrage. (base, quote) and (quote, base) are independent positions.
    """
    opportunities: list[ArbitrageOpportunity] = []
    for base, quote, cells in matrix.positions():
        highest_bid, lowest_ask = select_extremes(cells)
        if highest_bid is None or lowest_ask is None or highest_bid is lowest_ask:
            continue
        bid, ask = highest_bid.bid, lowest_ask.ask
        if bid > ask:  # type: ignore[operator]
            opportunities.append(
                ArbitrageOpportunity(
                    label=f"{base}/{quote}",
                    lowest_ask=lowest_ask,
                    highest_bid=highest_bid,
                    buy_price=ask,  # type: ignore[arg-type]
                    sell_price=bid,  # type: ignore[arg-type]
                )
            )
    return opportunities
