from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

from arbitrage_scanner.config.models import LoggingConfig

_MAX_LOG_SIZE = 10 * 1024 * 1024
_BACKUP_COUNT = 5
_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Component loggers that also get their own file under logs/.
_COMPONENT_LOGS = {
    "arbitrage_scanner.system": "system.log",
    "arbitrage_scanner.exchanges": "exchanges.log",
    "arbitrage_scanner.services.market_discovery": "market_discovery.log",
    "arbitrage_scanner.services.refresh": "refresh.log",
    "arbitrage_scanner.services.price_matrix": "price_matrix.log",
    "arbitrage_scanner.core.http": "http.log",
}


def _create_file_handler(log_file: Path, level: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        log_file,
        maxBytes=_MAX_LOG_SIZE,
        backupCount=_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT))
    return handler


def _attach_file_handler(logger_name: str, log_file: str, level: str, logs_dir: Path) -> None:
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.addHandler(_create_file_handler(logs_dir / log_file, level))


def configure_logging(config: LoggingConfig, logs_dir: Path | None = None) -> None:
    shared_processors: list[structlog.types.Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer: structlog.types.Processor
    if config.json_format:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(config.level)),
        cache_logger_on_first_use=True,
    )

    level = config.level
    logs_dir = logs_dir or Path("logs")
    logs_dir.mkdir(exist_ok=True)

    # Component records propagate to the root console handler as well.
    for logger_name, log_file in _COMPONENT_LOGS.items():
        _attach_file_handler(logger_name, log_file, level, logs_dir)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(_FORMAT))
    root_logger.addHandler(console_handler)
