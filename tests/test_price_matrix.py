from __future__ import annotations

import pytest

from arbitrage_scanner.config.models import RefreshConfig
from arbitrage_scanner.core.exceptions import ConfigurationError
from arbitrage_scanner.exchanges.base import ExchangeMarket, Quote
from arbitrage_scanner.services.price_matrix import PriceMatrix
from arbitrage_scanner.services.prices import CrossPrice, ExchangePrice


class DummyExchange:
    def __init__(self, name: str, quotes: dict[str, Quote] | None = None) -> None:
        self.name = name
        self.quotes = quotes or {}
        self.calls: list[str] = []

    async def refresh_quote(self, market: ExchangeMarket) -> Quote:
        self.calls.append(market.symbol)
        return self.quotes.get(market.symbol, Quote(bid=None, ask=None))


def market(base: str, quote: str) -> ExchangeMarket:
    return ExchangeMarket(symbol=f"{base}{quote}", base_asset=base, quote_asset=quote)


def test_construction_indexes_every_currency_once() -> None:
    bybit = DummyExchange("bybit")
    okx = DummyExchange("okx")
    matrix = PriceMatrix({
        bybit: [market("BTC", "USDT"), market("ETH", "USDT")],
        okx: [market("ETH", "BTC"), market("BTC", "USDT")],
    })

    assert matrix.currencies == ("BTC", "ETH", "USDT")
    assert len(matrix) == 3
    assert sorted(matrix.index_of(code) for code in matrix.currencies) == [0, 1, 2]
    with pytest.raises(KeyError):
        matrix.index_of("LTC")


def test_every_declared_market_gets_exactly_one_cell() -> None:
    bybit = DummyExchange("bybit")
    okx = DummyExchange("okx")
    matrix = PriceMatrix({
        bybit: [market("BTC", "USDT"), market("ETH", "USDT")],
        okx: [market("BTC", "USDT")],
    })

    btc_usdt = matrix.prices_for("BTC", "USDT")
    assert [cell.exchange for cell in btc_usdt] == [bybit, okx]
    assert all(isinstance(cell, ExchangePrice) for cell in btc_usdt)
    assert len(matrix.prices_for("ETH", "USDT")) == 1
    # A market in one direction does not imply the reverse direction.
    assert matrix.prices_for("USDT", "BTC") == ()
    assert matrix.prices_for("BTC", "ETH") == ()
    assert len(list(matrix.exchange_prices())) == 3


def test_diagonal_is_not_a_position() -> None:
    matrix = PriceMatrix({DummyExchange("bybit"): [market("BTC", "USDT")]})

    with pytest.raises(ValueError):
        matrix.prices_for("BTC", "BTC")
    positions = [(base, quote) for base, quote, _ in matrix.positions()]
    assert positions == [("BTC", "USDT"), ("USDT", "BTC")]


def test_duplicate_market_on_one_exchange_is_skipped() -> None:
    bybit = DummyExchange("bybit")
    matrix = PriceMatrix({bybit: [market("BTC", "USDT"), market("BTC", "USDT")]})

    assert len(matrix.prices_for("BTC", "USDT")) == 1


def test_empty_input_is_legal() -> None:
    matrix = PriceMatrix({})

    assert len(matrix) == 0
    assert matrix.find_opportunities() == []


@pytest.mark.asyncio
async def test_empty_matrix_refresh_and_scan() -> None:
    matrix = PriceMatrix({})

    assert await matrix.get_arbitrage_opportunities() == []
    assert matrix.last_refresh is not None
    assert matrix.last_refresh.ok
    assert matrix.last_refresh.refreshed == 0


@pytest.mark.parametrize(
    "bad_market",
    [
        ExchangeMarket(symbol="BTCBTC", base_asset="BTC", quote_asset="BTC"),
        ExchangeMarket(symbol="XUSDT", base_asset="", quote_asset="USDT"),
        ExchangeMarket(symbol="BTC", base_asset="BTC", quote_asset="   "),
    ],
)
def test_inconsistent_markets_are_rejected_before_building(bad_market: ExchangeMarket) -> None:
    with pytest.raises(ConfigurationError):
        PriceMatrix({DummyExchange("bybit"): [market("ETH", "USDT"), bad_market]})


def test_currency_without_markets_gets_an_empty_row_and_column() -> None:
    matrix = PriceMatrix({DummyExchange("bybit"): [market("BTC", "USDT")]}, currencies=["XRP"])

    assert "XRP" in matrix.currencies
    for other in ("BTC", "USDT"):
        assert matrix.prices_for("XRP", other) == ()
        assert matrix.prices_for(other, "XRP") == ()
    assert matrix.find_opportunities() == []


def test_add_price_places_derived_cell() -> None:
    bybit = DummyExchange("bybit")
    matrix = PriceMatrix({bybit: [market("ETH", "BTC"), market("BTC", "USDT"), market("ETH", "USDT")]})
    eth_btc = matrix.prices_for("ETH", "BTC")[0]
    btc_usdt = matrix.prices_for("BTC", "USDT")[0]

    cross = CrossPrice(first=eth_btc, second=btc_usdt, via="BTC")
    matrix.add_price("ETH", "USDT", cross)

    assert matrix.prices_for("ETH", "USDT")[-1] is cross
    # Derived prices are not refreshed by the orchestrator.
    assert cross not in list(matrix.exchange_prices())


def test_add_price_rejects_unknown_currency_and_self_pair() -> None:
    bybit = DummyExchange("bybit")
    matrix = PriceMatrix({bybit: [market("BTC", "USDT")]})
    cell = matrix.prices_for("BTC", "USDT")[0]
    cross = CrossPrice(first=cell, second=cell, via="USDT")

    with pytest.raises(ConfigurationError):
        matrix.add_price("LTC", "USDT", cross)
    with pytest.raises(ConfigurationError):
        matrix.add_price("BTC", "BTC", cross)
    with pytest.raises(ConfigurationError):
        matrix.add_price("USDT", "BTC", ExchangePrice(bybit, market("USDT", "BTC")))


@pytest.mark.asyncio
async def test_get_arbitrage_opportunities_refreshes_then_scans() -> None:
    cheap = DummyExchange("cheap", {"BTCUSDT": Quote(bid=99.0, ask=100.0)})
    rich = DummyExchange("rich", {"BTCUSDT": Quote(bid=101.0, ask=102.0)})
    matrix = PriceMatrix(
        {cheap: [market("BTC", "USDT")], rich: [market("BTC", "USDT")]},
        refresh=RefreshConfig(join_timeout_sec=5.0, max_concurrency=2),
    )

    opportunities = await matrix.get_arbitrage_opportunities()

    assert cheap.calls == ["BTCUSDT"]
    assert rich.calls == ["BTCUSDT"]
    assert len(opportunities) == 1
    opportunity = opportunities[0]
    assert opportunity.label == "BTC/USDT"
    assert opportunity.lowest_ask.exchange is cheap
    assert opportunity.highest_bid.exchange is rich
    assert opportunity.spread == pytest.approx(1.0)
    assert opportunity.spread_pct == pytest.approx(1.0)
    assert matrix.last_refresh is not None and matrix.last_refresh.refreshed == 2


@pytest.mark.asyncio
async def test_repeated_scans_without_price_change_are_equal() -> None:
    a = DummyExchange("a", {"BTCUSDT": Quote(bid=99.0, ask=100.0), "ETHBTC": Quote(bid=0.05, ask=0.051)})
    b = DummyExchange("b", {"BTCUSDT": Quote(bid=101.0, ask=102.0), "ETHBTC": Quote(bid=0.052, ask=0.053)})
    matrix = PriceMatrix({
        a: [market("BTC", "USDT"), market("ETH", "BTC")],
        b: [market("ETH", "BTC"), market("BTC", "USDT")],
    })

    first = await matrix.get_arbitrage_opportunities()
    second = await matrix.get_arbitrage_opportunities()

    assert len(first) == 2
    assert set(first) == set(second)
