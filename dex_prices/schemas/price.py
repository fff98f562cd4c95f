import math
from typing import Literal

from pydantic import BaseModel, Field


class AnchorPrice(BaseModel):
    symbol: str
    price_usd: float | None = None
    change_24h: float | None = None
    source: str = "coingecko"

    @property
    def available(self) -> bool:
        return self.price_usd is not None and math.isfinite(self.price_usd) and self.price_usd > 0


class PriceRecord(BaseModel, frozen=True):
    usd: float
    via: str | None = None
    iteration: int = 0
    pool_id: int | str | None = None
    depth: int = 0
    price_in_anchor: float = 0.0
    source: Literal["anchor", "pool", "peg"] = "pool"
    peg: str | None = None


class PropagationResult(BaseModel):
    prices: dict[str, PriceRecord] = Field(default_factory=dict)
    unpriced: list[str] = Field(default_factory=list)
    rounds: int = 0
    peg_rounds: int = 0
    log: list[str] = Field(default_factory=list)


class PriceChanges(BaseModel):
    change_24h: float | None = None
    change_7d: float | None = None
    change_30d: float | None = None
    change_all: float | None = None


class SwapTransaction(BaseModel):
    timestamp: float
    status: str
    input_token: str
    output_token: str
    input_amount: float
    output_amount: float


class PriceView(BaseModel):
    symbol: str
    price_usd: float
    price_in_anchor: float
    via: str | None = None
    iteration: int
    depth: int
    pool_id: int | str | None = None
    source: str
    change_24h: float | None = None
    change_7d: float | None = None
    change_30d: float | None = None
    change_all: float | None = None


class PairSummary(BaseModel):
    id: int | str
    pair: str
    active: bool
    reserve_a: float
    reserve_b: float


class PropagationDebug(BaseModel):
    total_pairs: int
    pairs: list[PairSummary]
    rounds: int
    peg_rounds: int
    log: list[str]


class PriceSnapshot(BaseModel):
    available: bool
    anchor: AnchorPrice
    prices: dict[str, PriceView] = Field(default_factory=dict)
    unpriced: list[str] = Field(default_factory=list)
    updated_at: str
    network: str
    source: str = "fresh"
    debug: PropagationDebug | None = None
