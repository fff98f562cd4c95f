"""USD price propagation over a graph of liquidity pools.

One asset (the anchor) carries an externally sourced USD price. Every other
asset is priced by walking outward through active pools: when exactly one side
of a pool is priced, the other side is priced from the reserve ratio. Prices
are first-write-wins; a pool whose two sides are already priced is inert.

The engine does no I/O and keeps no state between calls.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from dex_prices.schemas.pool import SYMBOL_SEPARATOR, Pool, symbol_of
from dex_prices.schemas.price import PriceRecord, PropagationResult

DEFAULT_MAX_ROUNDS = 10

PoolOrder = Callable[[Pool], Any]


def by_pool_id(pool: Pool) -> tuple:
    """Ascending pool id. Integer ids sort before string ids."""
    if isinstance(pool.id, int):
        return (0, pool.id, "")
    return (1, 0, str(pool.id))


def _usable_usd(value: float) -> bool:
    return math.isfinite(value) and value > 0


def coerce_pools(pools: Iterable[Pool | Mapping[str, Any]]) -> list[Pool]:
    out: list[Pool] = []
    for raw in pools:
        if isinstance(raw, Pool):
            out.append(raw)
            continue
        try:
            out.append(Pool.model_validate(raw))
        except ValidationError:
            continue
    return out


class _Edge:
    __slots__ = ("pool", "symbol_a", "symbol_b")

    def __init__(self, pool: Pool, separator: str) -> None:
        self.pool = pool
        self.symbol_a = symbol_of(pool.token_a, separator)
        self.symbol_b = symbol_of(pool.token_b, separator)


def _derive(
    edge: _Edge,
    known: str,
    unknown: str,
    known_record: PriceRecord,
    *,
    iteration: int,
    anchor_usd: float,
) -> PriceRecord:
    pool = edge.pool
    if known == edge.symbol_a:
        reserve_known, reserve_unknown = pool.reserve_a, pool.reserve_b
    else:
        reserve_known, reserve_unknown = pool.reserve_b, pool.reserve_a
    usd = known_record.usd * (reserve_known / reserve_unknown)
    return PriceRecord(
        usd=usd,
        via=known,
        iteration=iteration,
        pool_id=pool.id,
        depth=known_record.depth + 1,
        price_in_anchor=usd / anchor_usd,
        source="pool",
    )


def _propagate(
    edges: list[_Edge],
    prices: dict[str, PriceRecord],
    *,
    anchor_usd: float,
    max_rounds: int,
    round_offset: int,
    skip: Callable[[_Edge], bool],
    log: list[str],
) -> int:
    rounds = 0
    changed = True
    while changed and rounds < max_rounds:
        changed = False
        rounds += 1
        iteration = round_offset + rounds
        for edge in edges:
            if skip(edge):
                continue
            record_a = prices.get(edge.symbol_a)
            record_b = prices.get(edge.symbol_b)
            if record_a is not None and record_b is None:
                known, unknown, known_record = edge.symbol_a, edge.symbol_b, record_a
            elif record_b is not None and record_a is None:
                known, unknown, known_record = edge.symbol_b, edge.symbol_a, record_b
            else:
                continue
            if not known_record.usd > 0:
                continue
            record = _derive(
                edge,
                known,
                unknown,
                known_record,
                iteration=iteration,
                anchor_usd=anchor_usd,
            )
            if not _usable_usd(record.usd):
                continue
            prices[unknown] = record
            log.append(
                f"[{iteration}] {unknown}: ${record.usd:.8f} "
                f"(via {known} from pair #{edge.pool.id})"
            )
            changed = True
    return rounds


def resolve_prices(
    anchor_symbol: str,
    anchor_price_usd: float | None,
    pools: Iterable[Pool | Mapping[str, Any]],
    *,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
    pool_order: PoolOrder | None = None,
    pegged_prices: Mapping[str, float] | None = None,
    separator: str = SYMBOL_SEPARATOR,
) -> PropagationResult:
    """Price every asset reachable from the anchor through active pools.

    Pools are visited in ``pool_order`` (a sort key, ascending pool id by
    default) on every round, so when two paths disagree the earlier round
    wins, and within a round the pool visited first wins.

    ``pegged_prices`` pins assets such as stablecoins to a fixed USD value.
    Pools touching a pegged asset are ignored while propagating from the
    anchor; afterwards the pegged assets seed a second propagation pass for
    whatever the anchor could not reach.

    Pools that fail validation are skipped. A derived price that is not a
    finite positive number is not recorded. An anchor price that is missing,
    infinite or not positive yields an empty price map with every pool symbol listed
    as unpriced.
    """
    if max_rounds < 1:
        raise ValueError("max_rounds must be >= 1")

    valid = coerce_pools(pools)
    ordered = sorted(valid, key=pool_order or by_pool_id)
    edges = [_Edge(pool, separator) for pool in ordered]

    seen: set[str] = set()
    for edge in edges:
        seen.add(edge.symbol_a)
        seen.add(edge.symbol_b)

    if anchor_price_usd is None or not _usable_usd(anchor_price_usd):
        return PropagationResult(unpriced=sorted(seen))

    anchor = symbol_of(anchor_symbol, separator)
    pegs = {
        symbol: float(value)
        for symbol, value in (pegged_prices or {}).items()
        if symbol != anchor and _usable_usd(value)
    }
    liquid = [edge for edge in edges if edge.pool.is_priceable]

    prices: dict[str, PriceRecord] = {
        anchor: PriceRecord(
            usd=anchor_price_usd,
            iteration=0,
            depth=0,
            price_in_anchor=1.0,
            source="anchor",
        )
    }
    log: list[str] = []

    rounds = _propagate(
        liquid,
        prices,
        anchor_usd=anchor_price_usd,
        max_rounds=max_rounds,
        round_offset=0,
        skip=lambda edge: edge.symbol_a in pegs or edge.symbol_b in pegs,
        log=log,
    )

    peg_rounds = 0
    seeded = False
    for symbol in sorted(pegs):
        if symbol not in seen or symbol in prices:
            continue
        usd = pegs[symbol]
        prices[symbol] = PriceRecord(
            usd=usd,
            iteration=0,
            depth=0,
            price_in_anchor=usd / anchor_price_usd,
            source="peg",
            peg="USD",
        )
        log.append(f"[peg] {symbol}: ${usd:.8f} (pegged to USD)")
        seeded = True

    if seeded:
        peg_rounds = _propagate(
            liquid,
            prices,
            anchor_usd=anchor_price_usd,
            max_rounds=max_rounds,
            round_offset=rounds,
            skip=lambda edge: False,
            log=log,
        )

    return PropagationResult(
        prices=prices,
        unpriced=sorted(seen - prices.keys()),
        rounds=rounds,
        peg_rounds=peg_rounds,
        log=log,
    )
