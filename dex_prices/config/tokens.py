from dex_prices.schemas.pool import symbol_of

DEFAULT_DECIMALS = 6

# symbol -> on-chain decimals; precision is 10 ** decimals
TOKEN_DECIMALS: dict[str, int] = {
    "KLV": 6,
    "KFI": 6,
    "DRG": 6,
    "DGKO": 4,
    "BABYDGKO": 8,
    "KUNAI": 6,
    "KID": 3,
    "DAXDO": 8,
    "GOAT": 3,
    "CTR": 6,
    "KAKA": 0,
    "KONG": 3,
    "SAVO": 3,
    "SHIT": 6,
    "WSOL": 8,
    "USDT": 6,
    "USDC": 6,
    "PMD": 0,
    "CHIPS": 6,
    "KPEPE": 6,
    "MEME": 6,
    "MOTO": 8,
    "PHARAO": 6,
    "SAME": 6,
    "VLX": 6,
    "KIRA": 3,
    "XPORT": 6,
    "BPGOK": 8,
}


def get_precision(asset_id: str, decimals: dict[str, int] | None = None) -> int:
    table = TOKEN_DECIMALS if decimals is None else decimals
    if asset_id in table:
        return 10 ** table[asset_id]
    symbol = symbol_of(asset_id)
    if symbol in table:
        return 10 ** table[symbol]
    return 10 ** DEFAULT_DECIMALS
