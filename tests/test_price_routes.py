import unittest

from fastapi.testclient import TestClient

from dex_prices.main import app
from dex_prices.schemas.pool import Pool
from dex_prices.services.price_gateway import PriceGatewayService
from dex_prices.services.ttl_cache import TtlCache


class StubAnchorClient:
    def __init__(self, price_usd) -> None:
        self.price_usd = price_usd

    def get_anchor_price(self) -> dict:
        return {"price_usd": self.price_usd, "change_24h": 3.2}


class StubPoolSource:
    def get_pool_snapshot(self) -> list[Pool]:
        return [
            Pool(id=1, token_a="KLV", token_b="DGKO-CXVJ", reserve_a=1_000_000, reserve_b=500_000, is_active=True),
            Pool(id=2, token_a="GOAT-Z9Y8", token_b="KONG-X7W6", reserve_a=1, reserve_b=1, is_active=True),
        ]


class PriceRoutesTest(unittest.TestCase):
    def setUp(self):
        self._original_service = app.state.price_gateway_service
        self.client = TestClient(app)
        self._install(0.0045)

    def tearDown(self):
        app.state.price_gateway_service = self._original_service

    def _install(self, anchor_price):
        app.state.price_gateway_service = PriceGatewayService(
            anchor_client=StubAnchorClient(anchor_price),
            pool_source=StubPoolSource(),
            cache=TtlCache(),
        )

    def test_get_prices(self):
        res = self.client.get("/v1/prices")

        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual(body["source"], "fresh")
        self.assertEqual(body["network"], "mainnet")
        self.assertAlmostEqual(body["prices"]["DGKO"]["price_usd"], 0.009)
        self.assertEqual(body["prices"]["DGKO"]["via"], "KLV")
        self.assertEqual(body["prices"]["DGKO"]["iteration"], 1)
        self.assertEqual(body["prices"]["KLV"]["change_24h"], 3.2)
        self.assertEqual(body["unpriced"], ["GOAT", "KONG"])
        self.assertNotIn("debug", body)

    def test_get_prices_cached_then_refresh(self):
        self.client.get("/v1/prices")

        cached = self.client.get("/v1/prices").json()
        refreshed = self.client.get("/v1/prices", params={"refresh": "true"}).json()

        self.assertEqual(cached["source"], "cache")
        self.assertEqual(refreshed["source"], "fresh")

    def test_get_prices_with_debug(self):
        body = self.client.get("/v1/prices", params={"debug": "true"}).json()

        self.assertEqual(body["debug"]["total_pairs"], 2)
        self.assertEqual(body["debug"]["pairs"][0]["pair"], "KLV/DGKO")

    def test_prices_unavailable_returns_503(self):
        self._install(0)

        res = self.client.get("/v1/prices")

        self.assertEqual(res.status_code, 503)
        self.assertEqual(res.json()["detail"], "PRICES_TEMPORARILY_UNAVAILABLE")

    def test_single_price(self):
        res = self.client.get("/v1/prices/DGKO-CXVJ")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["symbol"], "DGKO")

    def test_single_price_unknown_symbol_returns_404(self):
        res = self.client.get("/v1/prices/GOAT")

        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json()["detail"], "UNKNOWN_SYMBOL")

    def test_single_price_unavailable_returns_503(self):
        self._install(None)

        res = self.client.get("/v1/prices/DGKO")

        self.assertEqual(res.status_code, 503)

    def test_debug_route(self):
        res = self.client.get("/v1/prices/debug")

        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual(body["propagation"]["log"], ["[1] DGKO: $0.00900000 (via KLV from pair #1)"])
        self.assertEqual(body["unpriced"], ["GOAT", "KONG"])

    def test_metrics_route(self):
        self.client.get("/v1/prices")
        self.client.get("/v1/prices")

        metrics = self.client.get("/v1/metrics/prices").json()

        self.assertEqual(metrics["refreshes"], 1)
        self.assertEqual(metrics["cache_hits"], 1)
        self.assertEqual(metrics["last_priced_count"], 2)


if __name__ == "__main__":
    unittest.main()
