"""
Provider response adapters.

Each adapter knows one upstream's request shape and response layout:
it maps a canonical symbol to the provider's pair name, issues a bounded
timeout GET through a shared httpx client, and extracts a numeric price.
Any failure (timeout, transport error, HTTP status, missing field) surfaces
as a ProviderError carrying a descriptive message.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import httpx

from ..models.providers import ProviderDescriptor
from .registry import resolve_symbol, with_separator

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "bandwatch/0.1 (+market-data diagnostics)",
}


class ProviderError(Exception):
    """A provider read failed; recorded as one failed attempt."""


class ProviderTimeoutError(ProviderError):
    """The read exceeded its timeout."""


class ProviderResponseError(ProviderError):
    """The response did not carry the expected fields."""


@dataclass
class PriceQuote:
    """Price extracted from one provider response."""
    price: float
    source: str
    raw: Dict[str, Any] = field(default_factory=dict)


class ProviderAdapter(ABC):
    """Base adapter: request building, bounded read, price extraction."""

    def __init__(self, descriptor: ProviderDescriptor):
        self.descriptor = descriptor

    @property
    def name(self) -> str:
        return self.descriptor.name

    @abstractmethod
    def build_request(self, symbol: str) -> Tuple[str, Dict[str, str]]:
        """Return (url, query params) for the ticker endpoint."""

    @abstractmethod
    def parse_price(self, data: Any, symbol: str) -> Tuple[float, Dict[str, Any]]:
        """Extract (price, raw ticker) from a decoded response."""

    async def fetch_price(
        self,
        client: httpx.AsyncClient,
        symbol: str,
        timeout_ms: Optional[int] = None
    ) -> PriceQuote:
        """
        Read the current price for ``symbol``.

        Args:
            client: Shared async HTTP client
            symbol: Canonical symbol
            timeout_ms: Overrides the descriptor timeout when given

        Raises:
            ProviderError: On timeout, transport failure, HTTP error status or
                a malformed payload
        """
        url, params = self.build_request(symbol)
        timeout_s = (timeout_ms or self.descriptor.timeout_ms) / 1000.0

        try:
            response = await client.get(url, params=params, headers=DEFAULT_HEADERS, timeout=timeout_s)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"{self.name}: request timed out after {timeout_s:.1f}s") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name}: network error: {e}") from e

        if not response.is_success:
            raise ProviderError(f"{self.name}: HTTP {response.status_code}: {response.text[:100]}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderResponseError(f"{self.name}: invalid JSON body") from e

        try:
            price, raw = self.parse_price(data, symbol)
        except ProviderError:
            raise
        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderResponseError(f"{self.name}: price data not found ({e})") from e

        return PriceQuote(price=price, source=self.name, raw=raw)


class CoinGeckoAdapter(ProviderAdapter):

    def build_request(self, symbol):
        coin_id = resolve_symbol(symbol).coingecko
        return f"{self.descriptor.base_endpoint}/simple/price", {"ids": coin_id, "vs_currencies": "usd"}

    def parse_price(self, data, symbol):
        coin_id = resolve_symbol(symbol).coingecko
        entry = data.get(coin_id) if isinstance(data, dict) else None
        if not entry or not entry.get("usd"):
            raise ProviderResponseError(f"{self.name}: price data not found")
        return float(entry["usd"]), data


class OKXAdapter(ProviderAdapter):
    """OKX uses hyphenated instrument ids (BTC-USDT)."""

    def build_request(self, symbol):
        inst_id = with_separator(resolve_symbol(symbol).exchange, "-")
        return f"{self.descriptor.base_endpoint}/market/ticker", {"instId": inst_id}

    def parse_price(self, data, symbol):
        if data.get("code") != "0" or not data.get("data"):
            raise ProviderResponseError(f"{self.name}: {data.get('msg') or 'price data not found'}")
        ticker = data["data"][0]
        return float(ticker["last"]), ticker


class KrakenAdapter(ProviderAdapter):
    """Kraken names bitcoin XBT."""

    def build_request(self, symbol):
        return f"{self.descriptor.base_endpoint}/Ticker", {"pair": resolve_symbol(symbol).kraken}

    def parse_price(self, data, symbol):
        errors = data.get("error") or []
        if errors:
            raise ProviderResponseError(f"{self.name}: {', '.join(errors)}")
        result = data.get("result") or {}
        if not result:
            raise ProviderResponseError(f"{self.name}: price data not found")
        ticker = next(iter(result.values()))
        if not ticker or not ticker.get("c"):
            raise ProviderResponseError(f"{self.name}: price data not found")
        return float(ticker["c"][0]), ticker


class GateIOAdapter(ProviderAdapter):
    """Gate.io uses underscored currency pairs (BTC_USDT)."""

    def build_request(self, symbol):
        pair = with_separator(resolve_symbol(symbol).exchange, "_")
        return f"{self.descriptor.base_endpoint}/spot/tickers", {"currency_pair": pair}

    def parse_price(self, data, symbol):
        if not isinstance(data, list) or not data or not data[0].get("last"):
            raise ProviderResponseError(f"{self.name}: price data not found")
        return float(data[0]["last"]), data[0]


class SimpleTickerAdapter(ProviderAdapter):
    """Binance-style ``/ticker/price?symbol=BTCUSDT`` returning ``{"price": ...}``."""

    def build_request(self, symbol):
        return f"{self.descriptor.base_endpoint}/ticker/price", {"symbol": resolve_symbol(symbol).exchange}

    def parse_price(self, data, symbol):
        if not isinstance(data, dict) or not data.get("price"):
            raise ProviderResponseError(f"{self.name}: price data not found")
        return float(data["price"]), data


class BitgetAdapter(ProviderAdapter):

    def build_request(self, symbol):
        return f"{self.descriptor.base_endpoint}/market/ticker", {"symbol": resolve_symbol(symbol).exchange}

    def parse_price(self, data, symbol):
        ticker = data.get("data")
        if data.get("code") != "00000" or not ticker or not ticker.get("close"):
            raise ProviderResponseError(f"{self.name}: {data.get('msg') or 'price data not found'}")
        return float(ticker["close"]), ticker


class BybitAdapter(ProviderAdapter):

    def build_request(self, symbol):
        return (
            f"{self.descriptor.base_endpoint}/market/tickers",
            {"category": "spot", "symbol": resolve_symbol(symbol).exchange},
        )

    def parse_price(self, data, symbol):
        entries = (data.get("result") or {}).get("list") or []
        if data.get("retCode") != 0 or not entries:
            raise ProviderResponseError(f"{self.name}: {data.get('retMsg') or 'price data not found'}")
        return float(entries[0]["lastPrice"]), entries[0]


ADAPTER_TYPES = {
    "CoinGecko": CoinGeckoAdapter,
    "OKX": OKXAdapter,
    "Kraken": KrakenAdapter,
    "Gate.io": GateIOAdapter,
    "MEXC": SimpleTickerAdapter,
    "Bitget": BitgetAdapter,
    "Binance": SimpleTickerAdapter,
    "Bybit": BybitAdapter,
}


def build_adapter(descriptor: ProviderDescriptor) -> Optional[ProviderAdapter]:
    """Adapter bound to ``descriptor``, or None when no adapter handles that provider."""
    adapter_type = ADAPTER_TYPES.get(descriptor.name)
    if adapter_type is None:
        return None
    return adapter_type(descriptor)
