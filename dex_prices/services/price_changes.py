from __future__ import annotations

import math
import time
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from dex_prices.schemas.price import PriceChanges, SwapTransaction

_DAY_SEC = 24 * 60 * 60
_MIN_CHANGE_PCT = -99.99
_MAX_CHANGE_PCT = 999.99
_IQR_MIN_SAMPLES = 4
_IQR_FENCE = 2.0


def parse_swaps(rows: Iterable[Mapping[str, Any]]) -> list[SwapTransaction]:
    out: list[SwapTransaction] = []
    for row in rows:
        try:
            out.append(
                SwapTransaction(
                    timestamp=row["timestamp"],
                    status=row["status"],
                    input_token=row.get("inputToken", row.get("input_token")),
                    output_token=row.get("outputToken", row.get("output_token")),
                    input_amount=row.get("inputAmount", row.get("input_amount")),
                    output_amount=row.get("outputAmount", row.get("output_amount")),
                )
            )
        except (KeyError, TypeError, AttributeError, ValidationError):
            continue
    return out


def _swap_price(tx: SwapTransaction, token: str) -> float:
    """Price of ``token`` in anchor units for a single swap."""
    try:
        if tx.input_token == token:
            return tx.output_amount / tx.input_amount
        return tx.input_amount / tx.output_amount
    except ZeroDivisionError:
        return math.nan


def _usable(price: float) -> bool:
    return math.isfinite(price) and price > 0


def _window_change(window: list[SwapTransaction], token: str) -> float | None:
    if len(window) < 2:
        return None

    prices = [p for p in (_swap_price(tx, token) for tx in window) if _usable(p)]
    if len(prices) < 2:
        return None

    if len(prices) >= _IQR_MIN_SAMPLES:
        ordered = sorted(prices)
        q1 = ordered[int(len(ordered) * 0.25)]
        q3 = ordered[int(len(ordered) * 0.75)]
        iqr = q3 - q1
        lower = q1 - iqr * _IQR_FENCE
        upper = q3 + iqr * _IQR_FENCE
        clean = [tx for tx in window if lower <= _swap_price(tx, token) <= upper]
        if len(clean) < 2:
            return None
        first = _swap_price(clean[0], token)
        last = _swap_price(clean[-1], token)
    else:
        first = _swap_price(window[0], token)
        last = _swap_price(window[-1], token)

    if not (_usable(first) and _usable(last)):
        return None
    change = (last - first) / first * 100
    return max(_MIN_CHANGE_PCT, min(_MAX_CHANGE_PCT, change))


def calculate_price_changes(
    token: str,
    swaps: Iterable[SwapTransaction],
    *,
    anchor_symbol: str = "KLV",
    now: float | None = None,
) -> PriceChanges:
    """Percent price change of ``token`` against the anchor over 24h/7d/30d/all.

    Only successful swaps directly between the token and the anchor count.
    Windows with four or more samples drop outliers outside twice the
    interquartile range before comparing the first and last swap.
    """
    ref = time.time() if now is None else now
    history = sorted(
        (
            tx
            for tx in swaps
            if tx.status == "success"
            and {tx.input_token, tx.output_token} == {token, anchor_symbol}
        ),
        key=lambda tx: tx.timestamp,
    )
    if len(history) < 2:
        return PriceChanges()

    def since(days: int) -> list[SwapTransaction]:
        cutoff = ref - days * _DAY_SEC
        return [tx for tx in history if tx.timestamp >= cutoff]

    return PriceChanges(
        change_24h=_window_change(since(1), token),
        change_7d=_window_change(since(7), token),
        change_30d=_window_change(since(30), token),
        change_all=_window_change(history, token),
    )
