from __future__ import annotations

from typing import Literal, Sequence

from pydantic import BaseModel, Field, PositiveFloat

ExchangeName = Literal["bybit", "kucoin", "okx"]


class RefreshConfig(BaseModel):
    # None disables the join deadline: one hanging exchange then stalls the whole refresh.
    join_timeout_sec: PositiveFloat | None = Field(default=30.0)
    max_concurrency: int = Field(default=16, ge=1)


class ScanConfig(BaseModel):
    interval_sec: PositiveFloat = Field(default=10.0)


class HttpConfig(BaseModel):
    timeout_sec: PositiveFloat = Field(default=10.0)
    max_retries: int = Field(default=3, ge=1)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    json_format: bool = Field(default=False, alias="json")


class Settings(BaseModel):
    exchanges: Sequence[ExchangeName] = Field(default_factory=lambda: ["bybit", "kucoin", "okx"])
    exchange_enabled: dict[ExchangeName, bool] = Field(default_factory=lambda: {
        "bybit": True,
        "kucoin": True,
        "okx": True,
    })
    quote_assets: Sequence[str] | None = Field(
        default_factory=lambda: ["USDT", "USDC", "BTC", "ETH"],
        description="Only markets quoted in these currencies are tracked; null tracks everything",
    )
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def enabled_exchanges(self) -> list[ExchangeName]:
        return [name for name in self.exchanges if self.exchange_enabled.get(name, True)]
