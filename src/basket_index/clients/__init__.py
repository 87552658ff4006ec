"""Provider adapters built on the shared upstream client."""

from .coingecko import CoinGeckoClient
from .tiingo import TiingoClient

__all__ = ["CoinGeckoClient", "TiingoClient"]
