from fastapi import APIRouter, HTTPException, Request

from dex_prices.errors import PricesUnavailableError, UnknownSymbolError

router = APIRouter()


def _service(request: Request):
    return request.app.state.price_gateway_service


@router.get('/prices')
def get_prices(request: Request, refresh: bool = False, debug: bool = False):
    snapshot = _service(request).get_snapshot(force_refresh=refresh, include_debug=debug)
    if not snapshot.available:
        raise HTTPException(status_code=503, detail='PRICES_TEMPORARILY_UNAVAILABLE')
    return snapshot.model_dump(exclude=None if debug else {'debug'})


@router.get('/prices/debug')
def get_price_debug(request: Request):
    return _service(request).debug_propagation()


@router.get('/prices/{symbol}')
def get_price(symbol: str, request: Request):
    try:
        row = _service(request).get_price(symbol)
    except PricesUnavailableError as exc:
        raise HTTPException(status_code=503, detail='PRICES_TEMPORARILY_UNAVAILABLE') from exc
    except UnknownSymbolError as exc:
        raise HTTPException(status_code=404, detail='UNKNOWN_SYMBOL') from exc
    return row.model_dump()


@router.get('/metrics/prices')
def price_metrics(request: Request):
    return _service(request).metrics()
