from __future__ import annotations

from pathlib import Path

import pytest

from arbitrage_scanner.config import Settings, load_settings
from arbitrage_scanner.config.loader import find_config_path
from arbitrage_scanner.core.exceptions import ConfigurationError


def test_defaults() -> None:
    settings = Settings.model_validate({})

    assert settings.enabled_exchanges() == ["bybit", "kucoin", "okx"]
    assert settings.refresh.join_timeout_sec == 30.0
    assert settings.refresh.max_concurrency == 16
    assert settings.logging.json_format is False


def test_load_settings_from_yaml(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "exchanges: [bybit, okx]\n"
        "exchange_enabled:\n"
        "  okx: false\n"
        "quote_assets: [BTC]\n"
        "refresh:\n"
        "  join_timeout_sec: null\n"
        "  max_concurrency: 4\n"
        "logging:\n"
        "  level: DEBUG\n"
        "  json: true\n",
        encoding="utf-8",
    )

    settings = load_settings(config)

    assert find_config_path(config) == config
    assert settings.enabled_exchanges() == ["bybit"]
    assert list(settings.quote_assets or []) == ["BTC"]
    assert settings.refresh.join_timeout_sec is None
    assert settings.refresh.max_concurrency == 4
    assert settings.logging.level == "DEBUG"
    assert settings.logging.json_format is True


def test_overrides_replace_file_values(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("scan:\n  interval_sec: 30\n", encoding="utf-8")

    settings = load_settings(config, overrides={"scan": {"interval_sec": 2}})

    assert settings.scan.interval_sec == 2


def test_example_config_is_valid() -> None:
    example = Path(__file__).resolve().parents[1] / "config" / "config.example.yaml"

    settings = load_settings(example)

    assert settings.enabled_exchanges() == ["bybit", "kucoin", "okx"]


@pytest.mark.parametrize(
    "content",
    [
        "exchanges: [binance]\n",
        "refresh:\n  max_concurrency: 0\n",
        "- just\n- a list\n",
    ],
)
def test_invalid_configuration_is_rejected(tmp_path: Path, content: str) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_settings(config)
