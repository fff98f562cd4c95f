from __future__ import annotations

from typing import Any, Dict, Optional

import requests


class CoinGeckoClient:
    """Anchor USD price (and 24h change) from the CoinGecko simple price API."""

    def __init__(
        self,
        coin_id: str = "klever",
        base_url: str = "https://api.coingecko.com/api/v3",
        session: Optional[Any] = None,
        timeout: float = 5,
    ) -> None:
        self.coin_id = coin_id
        self.base_url = base_url.rstrip("/")
        self.session = session or requests
        self.timeout = timeout

    @staticmethod
    def _to_float(value: Any) -> Optional[float]:
        try:
            if value is None or value == "":
                return None
            return float(value)
        except (TypeError, ValueError):
            return None

    def get_anchor_price(self) -> Dict[str, Optional[float]]:
        response = self.session.get(
            f"{self.base_url}/simple/price",
            params={
                "ids": self.coin_id,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json() or {}
        row = payload.get(self.coin_id) or {}

        return {
            "price_usd": self._to_float(row.get("usd")),
            "change_24h": self._to_float(row.get("usd_24h_change")),
        }
