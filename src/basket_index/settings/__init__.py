from .environment import parse_env_bool, parse_env_float, parse_env_int, parse_env_str
from .settings import (
    DEFAULT_COINGECKO_BASE_URL,
    DEFAULT_TIINGO_BASE_URL,
    ENV_COINGECKO_API_KEY,
    ENV_TIINGO_API_KEY,
    IndexSettings,
    load_index_settings,
)

__all__ = [
    "IndexSettings",
    "load_index_settings",
    "parse_env_bool",
    "parse_env_float",
    "parse_env_int",
    "parse_env_str",
    "DEFAULT_COINGECKO_BASE_URL",
    "DEFAULT_TIINGO_BASE_URL",
    "ENV_COINGECKO_API_KEY",
    "ENV_TIINGO_API_KEY",
]
