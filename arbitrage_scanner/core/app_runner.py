from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any, Sequence

from arbitrage_scanner.config import Settings
from arbitrage_scanner.core.http import HttpClientFactory
from arbitrage_scanner.exchanges.base import ExchangeAdapter
from arbitrage_scanner.services.price_matrix import PriceMatrix
from arbitrage_scanner.services.schemas import ArbitrageOpportunity

log = logging.getLogger("arbitrage_scanner.system")


class ScanRunner:
    """Manages application lifecycle: the scan loop and shutdown."""

    def __init__(
        self,
        settings: Settings,
        matrix: PriceMatrix,
        adapters: Sequence[ExchangeAdapter],
        http_factory: HttpClientFactory,
    ) -> None:
        self._settings = settings
        self._matrix = matrix
        self._adapters = adapters
        self._http_factory = http_factory
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    def setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()

        def _handle_stop(*_: Any) -> None:
            log.info("Received shutdown signal")
            self._stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, _handle_stop)
            except NotImplementedError:
                # Windows doesn't support all signals
                pass

    async def start(self) -> None:
        log.info("Starting scan runner")
        self.setup_signal_handlers()
        self._task = asyncio.create_task(self._scan_loop(), name="scan-loop")

    async def scan_once(self) -> list[ArbitrageOpportunity]:
        opportunities = await self._matrix.get_arbitrage_opportunities()
        report = self._matrix.last_refresh
        if report is not None and not report.ok:
            for failure in report.failures:
                log.warning("Refresh failure on %s (%s): %s", failure.exchange, failure.scope, failure.error)
        for opportunity in opportunities:
            log.info(
                "%s: buy on %s at %.8g, sell on %s at %.8g (%.3f%%)",
                opportunity.label,
                opportunity.lowest_ask.label,
                opportunity.buy_price,
                opportunity.highest_bid.label,
                opportunity.sell_price,
                opportunity.spread_pct,
            )
        return opportunities

    async def _scan_loop(self) -> None:
        iteration = 0
        interval = self._settings.scan.interval_sec
        try:
            while not self._stop_event.is_set():
                iteration += 1
                try:
                    opportunities = await self.scan_once()
                    log.info("Scan iteration %d: found %d opportunities", iteration, len(opportunities))
                except Exception as scan_error:
                    log.warning("Error in scan iteration %d: %s (continuing)", iteration, scan_error, exc_info=True)
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            log.info("Scan loop cancelled after %d iterations", iteration)
            raise

    async def stop(self) -> None:
        log.info("Stopping scan runner")
        self._stop_event.set()
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        await asyncio.gather(*(adapter.close() for adapter in self._adapters), return_exceptions=True)
        await self._http_factory.close()
        log.info("Scan runner stopped")

    async def wait(self) -> None:
        await self._stop_event.wait()
