from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests


class SwapHistoryClient:
    def __init__(
        self,
        url: str,
        network: str = "mainnet",
        session: Optional[Any] = None,
        timeout: float = 5,
    ) -> None:
        self.url = url
        self.network = network
        self.session = session or requests
        self.timeout = timeout

    def get_swaps(self) -> List[Dict[str, Any]]:
        response = self.session.get(
            self.url,
            params={"network": self.network},
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json() or {}
        rows = payload.get("data") or []
        return [row for row in rows if isinstance(row, dict)]
