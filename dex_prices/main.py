from __future__ import annotations

from fastapi import FastAPI

from dex_prices.api.routes import router
from dex_prices.config.settings import Settings, get_settings
from dex_prices.integrations.coingecko import CoinGeckoClient
from dex_prices.integrations.klever_rest import KleverPoolClient
from dex_prices.integrations.swap_history import SwapHistoryClient
from dex_prices.services.price_gateway import PriceGatewayService
from dex_prices.services.ttl_cache import TtlCache


def build_price_gateway_service(settings: Settings) -> PriceGatewayService:
    swap_history = None
    if settings.SWAP_HISTORY_URL:
        swap_history = SwapHistoryClient(settings.SWAP_HISTORY_URL, network=settings.NETWORK)

    return PriceGatewayService(
        anchor_client=CoinGeckoClient(
            coin_id=settings.ANCHOR_COINGECKO_ID,
            base_url=settings.COINGECKO_API_URL,
        ),
        pool_source=KleverPoolClient(
            dex_contract=settings.DEX_CONTRACT,
            base_url=settings.KLEVER_API_URL,
            max_pairs=settings.MAX_PAIRS,
        ),
        cache=TtlCache(max_stale_sec=settings.PRICE_CACHE_TTL_SEC * 12),
        swap_history=swap_history,
        anchor_symbol=settings.ANCHOR_SYMBOL,
        pegged_prices=settings.PEGGED_PRICES,
        max_rounds=settings.MAX_ROUNDS,
        cache_ttl_sec=settings.PRICE_CACHE_TTL_SEC,
        anchor_ttl_sec=settings.ANCHOR_CACHE_TTL_SEC,
        network=settings.NETWORK,
    )


app = FastAPI(title="DEX Price Gateway", version="0.1.0")
app.include_router(router, prefix="/v1")

app.state.get_settings = get_settings
app.state.price_gateway_service = build_price_gateway_service(get_settings())
