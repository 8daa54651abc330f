from __future__ import annotations

import asyncio
import logging

from arbitrage_scanner.bootstrap import build_app_components
from arbitrage_scanner.core.app_runner import ScanRunner

log = logging.getLogger("arbitrage_scanner.system")


async def main() -> None:
    settings, http_factory, adapters, matrix = await build_app_components()
    log.info("Starting arbitrage scanner with %d exchanges and %d currencies", len(adapters), len(matrix))

    runner = ScanRunner(settings, matrix, adapters, http_factory)
    await runner.start()
    try:
        await runner.wait()
    finally:
        await runner.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        ...
