"""
Price providers: registry, per-exchange adapters and the failover fetcher.
"""

from .registry import (
    DEFAULT_PROVIDERS,
    SYMBOL_MAP,
    SymbolAliases,
    resolve_symbol,
    select_providers,
    with_separator,
)
from .adapters import (
    ADAPTER_TYPES,
    PriceQuote,
    ProviderAdapter,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    build_adapter,
)
from .monitor import ProviderMonitor
from .fetcher import ALL_FAILED, FailoverFetcher

__all__ = [
    "DEFAULT_PROVIDERS",
    "SYMBOL_MAP",
    "SymbolAliases",
    "resolve_symbol",
    "select_providers",
    "with_separator",
    "ADAPTER_TYPES",
    "PriceQuote",
    "ProviderAdapter",
    "ProviderError",
    "ProviderResponseError",
    "ProviderTimeoutError",
    "build_adapter",
    "ProviderMonitor",
    "ALL_FAILED",
    "FailoverFetcher",
]
