class PriceGatewayError(Exception):
    pass


class PoolQueryError(PriceGatewayError):
    def __init__(self, pair_id: int, reason: str) -> None:
        super().__init__(f"pair {pair_id}: {reason}")
        self.pair_id = pair_id
        self.reason = reason


class PricesUnavailableError(PriceGatewayError):
    pass


class UnknownSymbolError(PriceGatewayError):
    def __init__(self, symbol: str) -> None:
        super().__init__(symbol)
        self.symbol = symbol
