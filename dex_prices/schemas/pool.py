import math

from pydantic import BaseModel, field_validator

SYMBOL_SEPARATOR = "-"


def symbol_of(asset_id: str, separator: str = SYMBOL_SEPARATOR) -> str:
    """'DGKO-CXVJ' -> 'DGKO', 'KLV' -> 'KLV'."""
    head = asset_id.split(separator, 1)[0]
    return head or asset_id


class Pool(BaseModel):
    id: int | str
    token_a: str
    token_b: str
    reserve_a: float
    reserve_b: float
    is_active: bool

    @field_validator("token_a", "token_b")
    @classmethod
    def require_token(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("empty asset identifier")
        return value

    @field_validator("reserve_a", "reserve_b")
    @classmethod
    def require_non_negative(cls, value: float) -> float:
        if not math.isfinite(value) or value < 0:
            raise ValueError("reserve must be a finite non-negative number")
        return value

    @property
    def is_priceable(self) -> bool:
        return self.is_active and self.reserve_a > 0 and self.reserve_b > 0
