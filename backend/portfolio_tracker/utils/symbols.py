# backend/portfolio_tracker/utils/symbols.py
"""
Ticker symbol normalization.

Exchanges and CSV exports spell the same asset many ways ("bitcoin", "XBT",
"BTC/USDT", "btc-usdt"). Everything that reaches the engine is reduced to a
single uppercase ticker first.
"""

# Lowercase alias -> canonical ticker
SYMBOL_ALIASES: dict[str, str] = {
    "bitcoin": "BTC",
    "xbt": "BTC",
    "ethereum": "ETH",
    "ether": "ETH",
    "solana": "SOL",
    "cardano": "ADA",
    "polkadot": "DOT",
    "polygon": "MATIC",
    "chainlink": "LINK",
    "avalanche": "AVAX",
    "ripple": "XRP",
    "litecoin": "LTC",
    "dogecoin": "DOGE",
    "binance coin": "BNB",
    "tether": "USDT",
    "usd coin": "USDC",
}

MAX_SYMBOL_LENGTH = 10


def normalize_symbol(symbol: str) -> str:
    """
    Normalize a symbol to its canonical uppercase ticker.

    Pair notation keeps only the base asset: "BTC/USDT" and "BTC-USDT"
    both become "BTC".

    Examples:
        >>> normalize_symbol(" bitcoin ")
        'BTC'
        >>> normalize_symbol("eth/usdc")
        'ETH'
    """
    normalized = symbol.strip()

    for separator in ("/", "-"):
        if separator in normalized:
            normalized = normalized.split(separator)[0].strip()

    lower = normalized.lower()
    return SYMBOL_ALIASES.get(lower, normalized.upper())
