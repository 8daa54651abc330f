from __future__ import annotations

import asyncio
import logging

import pytest

from arbitrage_scanner.config.models import Settings
from arbitrage_scanner.core.app_runner import ScanRunner
from arbitrage_scanner.core.exceptions import ExchangeError
from arbitrage_scanner.exchanges.base import ExchangeMarket, Quote
from arbitrage_scanner.services.price_matrix import PriceMatrix


class DummyAdapter:
    def __init__(self, name: str, quote: Quote | Exception) -> None:
        self.name = name
        self._quote = quote
        self.closed = False

    async def refresh_quote(self, market: ExchangeMarket) -> Quote:
        if isinstance(self._quote, Exception):
            raise self._quote
        return self._quote

    async def close(self) -> None:
        self.closed = True


class DummyHttp:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def build_runner(*adapters: DummyAdapter) -> tuple[ScanRunner, DummyHttp]:
    btc_usdt = ExchangeMarket(symbol="BTCUSDT", base_asset="BTC", quote_asset="USDT")
    matrix = PriceMatrix({adapter: [btc_usdt] for adapter in adapters})
    http = DummyHttp()
    settings = Settings.model_validate({"scan": {"interval_sec": 0.01}})
    return ScanRunner(settings, matrix, list(adapters), http), http  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_scan_once_logs_opportunities_and_failures(caplog: pytest.LogCaptureFixture) -> None:
    runner, _ = build_runner(
        DummyAdapter("cheap", Quote(bid=99.0, ask=100.0)),
        DummyAdapter("rich", Quote(bid=101.0, ask=102.0)),
        DummyAdapter("broken", ExchangeError("boom")),
    )

    with caplog.at_level(logging.INFO, logger="arbitrage_scanner.system"):
        opportunities = await runner.scan_once()

    assert [opportunity.label for opportunity in opportunities] == ["BTC/USDT"]
    assert "buy on cheap:BTC/USDT" in caplog.text
    assert "Refresh failure on broken" in caplog.text


@pytest.mark.asyncio
async def test_stop_closes_adapters_and_http() -> None:
    adapter = DummyAdapter("cheap", Quote(bid=99.0, ask=100.0))
    runner, http = build_runner(adapter)

    await runner.start()
    await asyncio.sleep(0.05)
    await runner.stop()

    assert adapter.closed
    assert http.closed
