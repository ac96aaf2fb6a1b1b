"""
Provider registry and symbol naming conventions.

Holds the default ranked provider list and maps canonical symbols
('bitcoin', 'btc', 'BTCUSDT', 'BTC_USDT', ...) onto each provider's pair
naming scheme.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..models.providers import ProviderDescriptor, ProviderKind

DEFAULT_PROVIDERS: List[ProviderDescriptor] = [
    ProviderDescriptor(name="CoinGecko", kind=ProviderKind.AGGREGATOR,
                       base_endpoint="https://api.coingecko.com/api/v3", priority=1),
    ProviderDescriptor(name="OKX", kind=ProviderKind.EXCHANGE,
                       base_endpoint="https://www.okx.com/api/v5", priority=2),
    ProviderDescriptor(name="Kraken", kind=ProviderKind.EXCHANGE,
                       base_endpoint="https://api.kraken.com/0/public", priority=3),
    ProviderDescriptor(name="Gate.io", kind=ProviderKind.EXCHANGE,
                       base_endpoint="https://api.gateio.ws/api/v4", priority=4),
    ProviderDescriptor(name="MEXC", kind=ProviderKind.EXCHANGE,
                       base_endpoint="https://api.mexc.com/api/v3", priority=5),
    ProviderDescriptor(name="Bitget", kind=ProviderKind.EXCHANGE,
                       base_endpoint="https://api.bitget.com/api/spot/v1", priority=6),
    ProviderDescriptor(name="Binance", kind=ProviderKind.EXCHANGE,
                       base_endpoint="https://api.binance.com/api/v3", priority=7),
    ProviderDescriptor(name="Bybit", kind=ProviderKind.EXCHANGE,
                       base_endpoint="https://api.bybit.com/v5", priority=8),
]


@dataclass(frozen=True)
class SymbolAliases:
    """Per-provider names for one asset."""
    coingecko: str
    exchange: str
    kraken: str


SYMBOL_MAP: Dict[str, SymbolAliases] = {
    "bitcoin": SymbolAliases(coingecko="bitcoin", exchange="BTCUSDT", kraken="XBTUSDT"),
    "btc": SymbolAliases(coingecko="bitcoin", exchange="BTCUSDT", kraken="XBTUSDT"),
    "ethereum": SymbolAliases(coingecko="ethereum", exchange="ETHUSDT", kraken="ETHUSDT"),
    "eth": SymbolAliases(coingecko="ethereum", exchange="ETHUSDT", kraken="ETHUSDT"),
    "solana": SymbolAliases(coingecko="solana", exchange="SOLUSDT", kraken="SOLUSDT"),
    "sol": SymbolAliases(coingecko="solana", exchange="SOLUSDT", kraken="SOLUSDT"),
}

QUOTE_ASSET = "USDT"


def resolve_symbol(symbol: str) -> SymbolAliases:
    """
    Resolve a canonical symbol to per-provider aliases.

    Known assets may be given by name ('bitcoin'), ticker ('BTC') or pair
    ('BTCUSDT', 'BTC_USDT', 'BTC-USDT'). Unknown assets keep their own name:
    the lower-cased base for CoinGecko and ``<BASE>USDT`` for exchanges.
    """
    key = symbol.strip().lower()
    if key in SYMBOL_MAP:
        return SYMBOL_MAP[key]

    compact = key.replace("_", "").replace("-", "").replace("/", "")
    base = compact
    quote = QUOTE_ASSET.lower()
    if compact.endswith(quote) and len(compact) > len(quote):
        base = compact[:-len(quote)]
    if base in SYMBOL_MAP:
        return SYMBOL_MAP[base]

    pair = f"{base.upper()}{QUOTE_ASSET}"
    return SymbolAliases(coingecko=base, exchange=pair, kraken=pair)


def with_separator(pair: str, separator: str) -> str:
    """Insert a separator before the quote asset: BTCUSDT -> BTC-USDT."""
    if pair.endswith(QUOTE_ASSET):
        return f"{pair[:-len(QUOTE_ASSET)]}{separator}{QUOTE_ASSET}"
    return pair


def select_providers(
    providers: Iterable[ProviderDescriptor],
    allowed: Optional[Iterable[str]] = None
) -> List[ProviderDescriptor]:
    """
    Enabled providers, optionally filtered by name, in ascending priority.

    Equal priorities keep declaration order.
    """
    allowed_names = {name.lower() for name in allowed} if allowed else None
    selected = [
        p for p in providers
        if p.enabled and (allowed_names is None or p.name.lower() in allowed_names)
    ]
    return sorted(selected, key=lambda p: p.priority)
