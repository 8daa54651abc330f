from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable
from typing import Any

from arbitrage_scanner.exchanges.base import BatchQuoteSource, MarketId
from arbitrage_scanner.services.prices import ExchangePrice, exchange_name
from arbitrage_scanner.services.schemas import RefreshFailure, RefreshReport

log = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _describe(exc: BaseException) -> str:
    message = str(exc)[:200]
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


class RefreshOrchestrator:
    """Brings every exchange price up to date with as few round trips as possible.

    Exchanges implementing ``BatchQuoteSource`` are asked once per quote
    currency; every other price gets its own request. All requests run as
    independent tasks and ``refresh_all`` is their single join point.
    """

    def __init__(
        self,
        prices: Iterable[ExchangePrice],
        *,
        join_timeout_sec: float | None = None,
        max_concurrency: int = 16,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._join_timeout_sec = join_timeout_sec
        self._max_concurrency = max_concurrency
        self._single: list[ExchangePrice] = []
        # exchange -> quote asset -> market id -> price
        self._batched: dict[Any, dict[str, dict[MarketId, ExchangePrice]]] = {}

        batch_capable: dict[Any, bool] = {}
        for price in prices:
            exchange = price.exchange
            if exchange not in batch_capable:
                batch_capable[exchange] = isinstance(exchange, BatchQuoteSource)
            if batch_capable[exchange]:
                groups = self._batched.setdefault(exchange, {})
                groups.setdefault(price.market.quote_asset, {})[price.market.market_id] = price
            else:
                self._single.append(price)

        log.info(
            "Refresh plan: %d per-market prices, %d batched requests across %d exchanges",
            len(self._single),
            sum(len(groups) for groups in self._batched.values()),
            len(self._batched),
        )

    @property
    def single_prices(self) -> list[ExchangePrice]:
        return list(self._single)

    @property
    def batch_groups(self) -> dict[Any, list[str]]:
        return {exchange: list(groups) for exchange, groups in self._batched.items()}

    async def refresh_all(self) -> RefreshReport:
        """Refresh every price and wait for all requests to finish.

        Quote-source failures never propagate; they are recorded on the
        returned report and the affected prices keep their previous values.
        """
        report = RefreshReport(started_ms=_now_ms())
        semaphore = asyncio.Semaphore(self._max_concurrency)
        # Quote assets each batch exchange has finished with, for timeout reporting.
        finished: dict[Any, set[str]] = {exchange: set() for exchange in self._batched}
        single_tasks: dict[asyncio.Task[None], ExchangePrice] = {}
        batch_tasks: dict[asyncio.Task[None], Any] = {}

        for price in self._single:
            task = asyncio.create_task(self._refresh_single(price, semaphore, report), name=f"refresh-{price.label}")
            single_tasks[task] = price

        for exchange, groups in self._batched.items():
            task = asyncio.create_task(
                self._refresh_batches(exchange, groups, report, finished[exchange]),
                name=f"refresh-batch-{exchange_name(exchange)}",
            )
            batch_tasks[task] = exchange

        tasks = [*single_tasks, *batch_tasks]
        if tasks:
            try:
                _done, pending = await asyncio.wait(tasks, timeout=self._join_timeout_sec)
            finally:
                for task in tasks:
                    if not task.done():
                        task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

            if pending:
                report.timed_out = True
                error = f"timed out after {self._join_timeout_sec}s"
                for task in pending:
                    if task in single_tasks:
                        price = single_tasks[task]
                        report.failures.append(RefreshFailure(price.exchange_name, str(price.market.market_id), error))
                        continue
                    exchange = batch_tasks[task]
                    # Groups never reached are as stale as the one that hung.
                    for quote_asset in self._batched[exchange]:
                        if quote_asset not in finished[exchange]:
                            report.failures.append(
                                RefreshFailure(exchange_name(exchange), f"quote:{quote_asset}", error)
                            )
                log.warning(
                    "Refresh join timed out after %.1f seconds; %d requests cancelled",
                    self._join_timeout_sec,
                    len(pending),
                )

        report.finished_ms = _now_ms()
        log.info(
            "Refreshed %d prices in %d ms (%d failures)",
            report.refreshed,
            report.duration_ms,
            len(report.failures),
        )
        return report

    async def _refresh_single(
        self,
        price: ExchangePrice,
        semaphore: asyncio.Semaphore,
        report: RefreshReport,
    ) -> None:
        async with semaphore:
            try:
                await price.refresh()
            except Exception as exc:
                log.warning("Failed to refresh %s: %s", price.label, exc)
                report.failures.append(
                    RefreshFailure(price.exchange_name, str(price.market.market_id), _describe(exc))
                )
                return
        report.refreshed += 1
        log.debug("Refreshed %s: bid=%s ask=%s", price.label, price.bid, price.ask)

    async def _refresh_batches(
        self,
        exchange: BatchQuoteSource,
        groups: dict[str, dict[MarketId, ExchangePrice]],
        report: RefreshReport,
        finished: set[str],
    ) -> None:
        name = exchange_name(exchange)
        for quote_asset, prices in groups.items():
            try:
                books = await exchange.get_order_books(quote_asset)
                # Parse every book first so a malformed response leaves the whole group unchanged.
                updates = [
                    (prices[market_id], book.to_quote())
                    for market_id, book in books.items()
                    if market_id in prices
                ]
            except Exception as exc:
                log.warning("Batch refresh of %s markets quoted in %s failed: %s", name, quote_asset, exc)
                report.failures.append(RefreshFailure(name, f"quote:{quote_asset}", _describe(exc)))
                finished.add(quote_asset)
                continue

            for price, quote in updates:
                price.apply_quote(quote)
            report.refreshed += len(updates)
            if len(updates) < len(prices):
                # Declared markets missing from the response keep their last values.
                log.debug(
                    "%s batch for %s left %d of %d markets unchanged",
                    name,
                    quote_asset,
                    len(prices) - len(updates),
                    len(prices),
                )
            finished.add(quote_asset)
