from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Mapping

from dex_prices.errors import PricesUnavailableError, UnknownSymbolError
from dex_prices.schemas.pool import SYMBOL_SEPARATOR, Pool, symbol_of
from dex_prices.schemas.price import (
    AnchorPrice,
    PairSummary,
    PriceSnapshot,
    PriceView,
    PropagationDebug,
    PropagationResult,
)
from dex_prices.services.price_changes import calculate_price_changes, parse_swaps
from dex_prices.services.price_engine import DEFAULT_MAX_ROUNDS, resolve_prices
from dex_prices.services.ttl_cache import TtlCache


class PriceGatewayService:
    """Anchor + pool snapshot -> cached USD view prices.

    The anchor fetch gets one retry and falls back to the last good anchor.
    A fresh snapshot is served from cache until its TTL runs out; when the
    anchor is unavailable an expired snapshot is served instead of nothing.
    """

    SNAPSHOT_KEY = "prices:snapshot"
    ANCHOR_KEY = "prices:anchor"

    def __init__(
        self,
        *,
        anchor_client,
        pool_source,
        cache: TtlCache,
        swap_history=None,
        anchor_symbol: str = "KLV",
        pegged_prices: Mapping[str, float] | None = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        cache_ttl_sec: int = 300,
        anchor_ttl_sec: int = 60,
        network: str = "mainnet",
        separator: str = SYMBOL_SEPARATOR,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.anchor_client = anchor_client
        self.pool_source = pool_source
        self.cache = cache
        self.swap_history = swap_history
        self.anchor_symbol = anchor_symbol
        self.pegged_prices = dict(pegged_prices or {})
        self.max_rounds = max_rounds
        self.cache_ttl_sec = cache_ttl_sec
        self.anchor_ttl_sec = anchor_ttl_sec
        self.network = network
        self.separator = separator
        self.clock = clock

        self.refreshes = 0
        self.cache_hits = 0
        self.stale_serves = 0
        self.anchor_failures = 0
        self.anchor_retries = 0
        self.anchor_fallbacks = 0
        self.pool_source_errors = 0
        self.last_pool_count = 0
        self.last_priced_count = 0
        self.last_unpriced_count = 0

    def _now_iso(self) -> str:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc).isoformat()

    def get_anchor_price(self) -> AnchorPrice:
        for attempt in range(2):
            try:
                payload = self.anchor_client.get_anchor_price()
            except Exception as exc:
                self.anchor_failures += 1
                if attempt == 0:
                    self.anchor_retries += 1
                    print(f"[PRICES][anchor_retry] symbol={self.anchor_symbol} error={exc}", flush=True)
                continue
            anchor = AnchorPrice(
                symbol=self.anchor_symbol,
                price_usd=payload.get("price_usd"),
                change_24h=payload.get("change_24h"),
            )
            if anchor.available:
                self.cache.set(self.ANCHOR_KEY, anchor, self.anchor_ttl_sec)
                return anchor
            self.anchor_failures += 1
            break

        cached, _ = self.cache.get(self.ANCHOR_KEY)
        if cached is not None:
            self.anchor_fallbacks += 1
            print(
                f"[PRICES][anchor_fallback] symbol={self.anchor_symbol} price_usd={cached.price_usd}",
                flush=True,
            )
            return cached.model_copy(update={"source": "cache"})
        return AnchorPrice(symbol=self.anchor_symbol)

    def _load_pools(self) -> tuple[list[Pool], bool]:
        try:
            return list(self.pool_source.get_pool_snapshot()), True
        except Exception as exc:
            self.pool_source_errors += 1
            print(f"[PRICES][pool_snapshot_error] error={exc}", flush=True)
            return [], False

    def _load_swaps(self):
        if self.swap_history is None:
            return []
        try:
            return parse_swaps(self.swap_history.get_swaps())
        except Exception as exc:
            print(f"[PRICES][swap_history_error] error={exc}", flush=True)
            return []

    def _propagate(self, anchor: AnchorPrice, pools: list[Pool]) -> PropagationResult:
        return resolve_prices(
            self.anchor_symbol,
            anchor.price_usd,
            pools,
            max_rounds=self.max_rounds,
            pegged_prices=self.pegged_prices,
            separator=self.separator,
        )

    def _debug_block(self, pools: list[Pool], result: PropagationResult) -> PropagationDebug:
        return PropagationDebug(
            total_pairs=len(pools),
            pairs=[
                PairSummary(
                    id=p.id,
                    pair=f"{symbol_of(p.token_a, self.separator)}/{symbol_of(p.token_b, self.separator)}",
                    active=p.is_active,
                    reserve_a=p.reserve_a,
                    reserve_b=p.reserve_b,
                )
                for p in pools
            ],
            rounds=result.rounds,
            peg_rounds=result.peg_rounds,
            log=list(result.log),
        )

    def _build_snapshot(self, anchor: AnchorPrice, pools: list[Pool], result: PropagationResult) -> PriceSnapshot:
        swaps = self._load_swaps()
        now = self.clock()
        views: dict[str, PriceView] = {}
        for symbol, record in result.prices.items():
            view = PriceView(
                symbol=symbol,
                price_usd=record.usd,
                price_in_anchor=record.price_in_anchor,
                via=record.via,
                iteration=record.iteration,
                depth=record.depth,
                pool_id=record.pool_id,
                source=record.source,
            )
            if record.source == "anchor":
                view.change_24h = anchor.change_24h
            elif swaps:
                changes = calculate_price_changes(symbol, swaps, anchor_symbol=self.anchor_symbol, now=now)
                view.change_24h = changes.change_24h
                view.change_7d = changes.change_7d
                view.change_30d = changes.change_30d
                view.change_all = changes.change_all
            views[symbol] = view

        return PriceSnapshot(
            available=anchor.available,
            anchor=anchor,
            prices=views,
            unpriced=list(result.unpriced),
            updated_at=self._now_iso(),
            network=self.network,
            source="fresh",
            debug=self._debug_block(pools, result),
        )

    @staticmethod
    def _present(snapshot: PriceSnapshot, *, source: str, include_debug: bool) -> PriceSnapshot:
        update: dict = {"source": source}
        if not include_debug:
            update["debug"] = None
        return snapshot.model_copy(update=update)

    def get_snapshot(self, *, force_refresh: bool = False, include_debug: bool = False) -> PriceSnapshot:
        if not force_refresh:
            cached, stale = self.cache.get(self.SNAPSHOT_KEY)
            if cached is not None and not stale:
                self.cache_hits += 1
                return self._present(cached, source="cache", include_debug=include_debug)

        anchor = self.get_anchor_price()
        if not anchor.available:
            cached, _ = self.cache.get(self.SNAPSHOT_KEY)
            if cached is not None:
                self.stale_serves += 1
                print("[PRICES][stale_serve] reason=anchor_unavailable", flush=True)
                return self._present(cached, source="stale-cache", include_debug=include_debug)

        pools, pools_ok = self._load_pools()
        result = self._propagate(anchor, pools)
        snapshot = self._build_snapshot(anchor, pools, result)

        self.refreshes += 1
        self.last_pool_count = len(pools)
        self.last_priced_count = len(result.prices)
        self.last_unpriced_count = len(result.unpriced)
        print(
            "[PRICES][refresh] "
            f"anchor={self.anchor_symbol} anchor_usd={anchor.price_usd} pools={len(pools)} "
            f"priced={len(result.prices)} unpriced={len(result.unpriced)} "
            f"rounds={result.rounds} peg_rounds={result.peg_rounds}",
            flush=True,
        )

        if snapshot.available and pools_ok:
            self.cache.set(self.SNAPSHOT_KEY, snapshot, self.cache_ttl_sec)
        return self._present(snapshot, source="fresh", include_debug=include_debug)

    def get_price(self, symbol: str) -> PriceView:
        snapshot = self.get_snapshot()
        if not snapshot.available:
            raise PricesUnavailableError("PRICES_TEMPORARILY_UNAVAILABLE")
        key = symbol_of(symbol.strip().upper(), self.separator)
        view = snapshot.prices.get(key)
        if view is None:
            raise UnknownSymbolError(key)
        return view

    def debug_propagation(self) -> dict:
        anchor = self.get_anchor_price()
        pools, _ = self._load_pools()
        result = self._propagate(anchor, pools)
        debug = self._debug_block(pools, result)
        return {
            "anchor": anchor.model_dump(),
            "total_pairs": debug.total_pairs,
            "pairs": [p.model_dump() for p in debug.pairs],
            "propagation": {
                "rounds": debug.rounds,
                "peg_rounds": debug.peg_rounds,
                "log": debug.log,
            },
            "prices": {symbol: record.model_dump() for symbol, record in result.prices.items()},
            "unpriced": result.unpriced,
        }

    def metrics(self) -> dict[str, int]:
        return {
            "refreshes": self.refreshes,
            "cache_hits": self.cache_hits,
            "stale_serves": self.stale_serves,
            "anchor_failures": self.anchor_failures,
            "anchor_retries": self.anchor_retries,
            "anchor_fallbacks": self.anchor_fallbacks,
            "pool_source_errors": self.pool_source_errors,
            "last_pool_count": self.last_pool_count,
            "last_priced_count": self.last_priced_count,
            "last_unpriced_count": self.last_unpriced_count,
        }
