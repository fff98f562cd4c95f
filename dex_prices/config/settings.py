import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field

_DEFAULT_PEGGED = "USDT:1.0,USDC:1.0"


def _parse_pegged(raw: str) -> dict[str, float]:
    out: dict[str, float] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        symbol, _, value = item.partition(":")
        symbol = symbol.strip().upper()
        if not symbol:
            continue
        out[symbol] = float(value.strip() or "1.0")
    return out


class Settings(BaseModel):
    NETWORK: Literal["mainnet", "testnet"] = "mainnet"
    ANCHOR_SYMBOL: str = "KLV"
    ANCHOR_COINGECKO_ID: str = "klever"
    COINGECKO_API_URL: str = "https://api.coingecko.com/api/v3"
    KLEVER_API_URL: str = "https://api.mainnet.klever.org"
    DEX_CONTRACT: str = "klv1qqqqqqqqqqqqqpgq2jqc28xwmk82mng4kwpm3j9vkq3vyga8xw9qq85y6h"
    MAX_PAIRS: int = Field(default=50, ge=1)
    MAX_ROUNDS: int = Field(default=10, ge=1)
    PRICE_CACHE_TTL_SEC: int = Field(default=300, gt=0)
    ANCHOR_CACHE_TTL_SEC: int = Field(default=60, gt=0)
    PEGGED_PRICES: dict[str, float] = Field(default_factory=lambda: _parse_pegged(_DEFAULT_PEGGED))
    SWAP_HISTORY_URL: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        raw = {
            "NETWORK": os.getenv("NETWORK"),
            "ANCHOR_SYMBOL": os.getenv("ANCHOR_SYMBOL"),
            "ANCHOR_COINGECKO_ID": os.getenv("ANCHOR_COINGECKO_ID"),
            "COINGECKO_API_URL": os.getenv("COINGECKO_API_URL"),
            "KLEVER_API_URL": os.getenv("KLEVER_API_URL"),
            "DEX_CONTRACT": os.getenv("DEX_CONTRACT"),
            "MAX_PAIRS": os.getenv("MAX_PAIRS"),
            "MAX_ROUNDS": os.getenv("MAX_ROUNDS"),
            "PRICE_CACHE_TTL_SEC": os.getenv("PRICE_CACHE_TTL_SEC"),
            "ANCHOR_CACHE_TTL_SEC": os.getenv("ANCHOR_CACHE_TTL_SEC"),
            "SWAP_HISTORY_URL": os.getenv("SWAP_HISTORY_URL") or None,
        }
        raw_pegged = os.getenv("PEGGED_PRICES")
        if raw_pegged is not None:
            raw["PEGGED_PRICES"] = _parse_pegged(raw_pegged)

        return cls.model_validate({k: v for k, v in raw.items() if v is not None})


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
