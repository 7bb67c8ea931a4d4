"""
Connectors module for the Crypto Info Bot.

Provides access to external data sources:
- Price data fetcher (CoinMarketCap-style ticker API)
"""

from connectors.price_fetcher import (
    FetchError,
    PriceFetcher,
    build_symbol_index,
)

__all__ = [
    # Price fetcher
    "FetchError",
    "PriceFetcher",
    "build_symbol_index",
]
