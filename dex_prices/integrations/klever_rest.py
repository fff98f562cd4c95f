from __future__ import annotations

import base64
import binascii
from typing import Any, Callable, Optional

import requests

from dex_prices.config.tokens import get_precision
from dex_prices.errors import PoolQueryError
from dex_prices.schemas.pool import Pool


def encode_pair_id(pair_id: int) -> list[int]:
    """Big-endian byte list, as the DEX contract expects its u64 arguments."""
    if pair_id == 0:
        return [0]
    return list(pair_id.to_bytes((pair_id.bit_length() + 7) // 8, "big"))


def decode_base64_int(value: str | None) -> int:
    if not value:
        return 0
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return 0
    return int.from_bytes(raw, "big")


def decode_base64_str(value: str | None) -> str:
    if not value:
        return ""
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return ""


class KleverPoolClient:
    """Reads DEX pair state through the Klever node smart-contract query API."""

    _MIN_RETURN_FIELDS = 8

    def __init__(
        self,
        dex_contract: str,
        base_url: str = "https://api.mainnet.klever.org",
        session: Optional[Any] = None,
        max_pairs: int = 50,
        timeout: float = 5,
        precision_of: Callable[[str], int] = get_precision,
    ) -> None:
        self.dex_contract = dex_contract
        self.base_url = base_url.rstrip("/")
        self.session = session or requests
        self.max_pairs = max_pairs
        self.timeout = timeout
        self.precision_of = precision_of
        self.last_errors: dict[int, str] = {}

    def query_pair(self, pair_id: int) -> Pool:
        try:
            response = self.session.post(
                f"{self.base_url}/v1.0/sc/query",
                headers={"content-type": "application/json"},
                json={
                    "scAddress": self.dex_contract,
                    "funcName": "getPairInfo",
                    "arguments": [encode_pair_id(pair_id)],
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise PoolQueryError(pair_id, str(exc)) from exc
        if not isinstance(payload, dict):
            raise PoolQueryError(pair_id, "unexpected payload")

        data = payload.get("data") or {}
        if payload.get("code") != "successful" or data.get("returnCode") != "Ok":
            raise PoolQueryError(pair_id, "query failed")

        fields = data.get("returnData") or []
        if len(fields) < self._MIN_RETURN_FIELDS:
            raise PoolQueryError(pair_id, f"not enough data ({len(fields)})")

        token_a = decode_base64_str(fields[0])
        token_b = decode_base64_str(fields[1])
        if not token_a or not token_b:
            raise PoolQueryError(pair_id, "missing token id")

        return Pool(
            id=pair_id,
            token_a=token_a,
            token_b=token_b,
            reserve_a=decode_base64_int(fields[4]) / self.precision_of(token_a),
            reserve_b=decode_base64_int(fields[5]) / self.precision_of(token_b),
            is_active=decode_base64_int(fields[7]) == 1,
        )

    def get_pool_snapshot(self) -> list[Pool]:
        pools: list[Pool] = []
        errors: dict[int, str] = {}
        for pair_id in range(1, self.max_pairs + 1):
            try:
                pools.append(self.query_pair(pair_id))
            except PoolQueryError as exc:
                errors[pair_id] = exc.reason
                continue
        self.last_errors = errors
        if errors:
            print(
                f"[POOLS][pair_query_error] failed={len(errors)} ok={len(pools)} "
                f"first_pair_id={min(errors)} error={errors[min(errors)]}",
                flush=True,
            )
        return pools
