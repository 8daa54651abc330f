from __future__ import annotations

from typing import Sequence

from arbitrage_scanner.config import Settings, load_settings
from arbitrage_scanner.core import HttpClientFactory, configure_logging
from arbitrage_scanner.exchanges.base import ExchangeAdapter
from arbitrage_scanner.exchanges.bybit import BybitAdapter
from arbitrage_scanner.exchanges.kucoin import KucoinAdapter
from arbitrage_scanner.exchanges.okx import OkxAdapter
from arbitrage_scanner.services.market_discovery import MarketDiscoveryService
from arbitrage_scanner.services.price_matrix import PriceMatrix


def create_adapters(settings: Settings, http_factory: HttpClientFactory) -> Sequence[ExchangeAdapter]:
    adapters: list[ExchangeAdapter] = []
    quote_assets = settings.quote_assets
    for exchange in settings.enabled_exchanges():
        match exchange:
            case "bybit":
                adapters.append(BybitAdapter(http_factory, quote_assets=quote_assets))
            case "kucoin":
                adapters.append(KucoinAdapter(http_factory, quote_assets=quote_assets))
            case "okx":
                adapters.append(OkxAdapter(http_factory, quote_assets=quote_assets))
            case _:
                raise ValueError(f"Unsupported exchange: {exchange}")
    return adapters


async def build_app_components(config_path: str | None = None) -> tuple[
    Settings,
    HttpClientFactory,
    Sequence[ExchangeAdapter],
    PriceMatrix,
]:
    settings = load_settings(config_path)
    configure_logging(settings.logging)

    http_factory = HttpClientFactory(timeout=settings.http.timeout_sec, max_retries=settings.http.max_retries)
    adapters = create_adapters(settings, http_factory)
    discovery = MarketDiscoveryService(adapters, quote_assets=settings.quote_assets)

    markets = await discovery.refresh()
    matrix = PriceMatrix(markets, refresh=settings.refresh)

    return settings, http_factory, adapters, matrix
