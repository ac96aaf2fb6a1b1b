"""
Unit tests for provider response adapters, using httpx.MockTransport.
"""

import httpx
import pytest

from bandwatch.providers.adapters import (
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    build_adapter,
)
from bandwatch.providers.registry import DEFAULT_PROVIDERS

DESCRIPTORS = {p.name: p for p in DEFAULT_PROVIDERS}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def _fetch(provider: str, payload, symbol: str = "bitcoin", status: int = 200):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(status, json=payload)

    adapter = build_adapter(DESCRIPTORS[provider])
    async with _client(handler) as client:
        quote = await adapter.fetch_price(client, symbol)
    return quote, seen["url"]


class TestAdapters:
    """Test request building and price extraction per provider."""

    @pytest.mark.asyncio
    async def test_coingecko(self):
        quote, url = await _fetch("CoinGecko", {"bitcoin": {"usd": 67000.5}})

        assert quote.price == 67000.5
        assert quote.source == "CoinGecko"
        assert url.path == "/api/v3/simple/price"
        assert url.params["ids"] == "bitcoin"
        assert url.params["vs_currencies"] == "usd"

    @pytest.mark.asyncio
    async def test_okx(self):
        payload = {"code": "0", "data": [{"instId": "BTC-USDT", "last": "67010.1"}]}
        quote, url = await _fetch("OKX", payload)

        assert quote.price == 67010.1
        assert url.params["instId"] == "BTC-USDT"

    @pytest.mark.asyncio
    async def test_okx_error_code(self):
        with pytest.raises(ProviderResponseError, match="Instrument ID does not exist"):
            await _fetch("OKX", {"code": "51001", "msg": "Instrument ID does not exist", "data": []})

    @pytest.mark.asyncio
    async def test_kraken(self):
        payload = {"error": [], "result": {"XBTUSDT": {"c": ["66990.0", "0.01"]}}}
        quote, url = await _fetch("Kraken", payload)

        assert quote.price == 66990.0
        assert url.params["pair"] == "XBTUSDT"

    @pytest.mark.asyncio
    async def test_kraken_error_list(self):
        with pytest.raises(ProviderResponseError, match="Unknown asset pair"):
            await _fetch("Kraken", {"error": ["EQuery:Unknown asset pair"], "result": {}})

    @pytest.mark.asyncio
    async def test_gateio(self):
        quote, url = await _fetch("Gate.io", [{"currency_pair": "ETH_USDT", "last": "3500.2"}], symbol="eth")

        assert quote.price == 3500.2
        assert url.params["currency_pair"] == "ETH_USDT"

    @pytest.mark.asyncio
    async def test_mexc_and_binance(self):
        for provider in ("MEXC", "Binance"):
            quote, url = await _fetch(provider, {"symbol": "SOLUSDT", "price": "150.25"}, symbol="SOL_USDT")
            assert quote.price == 150.25
            assert url.path.endswith("/ticker/price")
            assert url.params["symbol"] == "SOLUSDT"

    @pytest.mark.asyncio
    async def test_bitget(self):
        quote, _ = await _fetch("Bitget", {"code": "00000", "data": {"close": "67001"}})
        assert quote.price == 67001.0

    @pytest.mark.asyncio
    async def test_bybit(self):
        payload = {"retCode": 0, "result": {"list": [{"symbol": "BTCUSDT", "lastPrice": "67005.5"}]}}
        quote, url = await _fetch("Bybit", payload)

        assert quote.price == 67005.5
        assert url.params["category"] == "spot"

    @pytest.mark.asyncio
    async def test_missing_field(self):
        with pytest.raises(ProviderResponseError, match="price data not found"):
            await _fetch("CoinGecko", {"ethereum": {"usd": 1.0}})

        with pytest.raises(ProviderResponseError):
            await _fetch("Binance", {"symbol": "BTCUSDT"})


class TestAdapterFailures:
    """Test transport and HTTP failures surface as ProviderError."""

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        with pytest.raises(ProviderError, match="HTTP 503"):
            await _fetch("Binance", {"msg": "unavailable"}, status=503)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        adapter = build_adapter(DESCRIPTORS["OKX"])
        async with _client(handler) as client:
            with pytest.raises(ProviderTimeoutError):
                await adapter.fetch_price(client, "bitcoin", timeout_ms=50)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        adapter = build_adapter(DESCRIPTORS["Kraken"])
        async with _client(handler) as client:
            with pytest.raises(ProviderError, match="network error"):
                await adapter.fetch_price(client, "bitcoin")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        adapter = build_adapter(DESCRIPTORS["MEXC"])
        async with _client(handler) as client:
            with pytest.raises(ProviderResponseError, match="invalid JSON"):
                await adapter.fetch_price(client, "bitcoin")

    def test_unknown_provider_has_no_adapter(self):
        descriptor = DESCRIPTORS["OKX"].model_copy(update={"name": "Unlisted"})
        assert build_adapter(descriptor) is None
