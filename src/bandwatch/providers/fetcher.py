"""
Multi-source price fetcher with failover and fan-out modes.

Failover mode walks providers in ascending priority and retries each one a
bounded number of times; the first success wins. Fan-out mode queries every
provider once, concurrently, and aggregates the outcomes for
cross-validation. Provider errors never escape either mode: they are
recorded in the attempt trail and the walk (or tally) continues.
"""

import asyncio
import time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import httpx

from ..config import FetcherConfig
from ..logger import get_logger, get_sync_adapter
from ..models.providers import (
    AttemptOutcome,
    AttemptRecord,
    FetchReport,
    FetchResult,
    PriceRange,
    ProviderDescriptor,
    ProviderOutcome,
    ProviderStatus,
)
from .adapters import PriceQuote, ProviderAdapter, ProviderTimeoutError, build_adapter
from .monitor import ProviderMonitor
from .registry import DEFAULT_PROVIDERS, select_providers

logger = get_logger(__name__)

ALL_FAILED = "all providers failed"


class FailoverFetcher:
    """
    Ranked multi-provider price fetcher.

    Owns one shared httpx.AsyncClient (created lazily, closed by close() or
    on leaving ``async with``) and one ProviderMonitor per provider.
    """

    def __init__(
        self,
        providers: Optional[Sequence[ProviderDescriptor]] = None,
        adapters: Optional[Dict[str, ProviderAdapter]] = None,
        config: Optional[FetcherConfig] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the fetcher.

        Args:
            providers: Provider descriptors, defaults to DEFAULT_PROVIDERS
            adapters: Adapters keyed by provider name; built from the
                descriptors when omitted
            config: Retry/timeout defaults
            client: Shared HTTP client; created on first use when omitted
        """
        self.providers: List[ProviderDescriptor] = list(providers or DEFAULT_PROVIDERS)
        self.config = config or FetcherConfig()

        if adapters is None:
            adapters = {}
            for descriptor in self.providers:
                adapter = build_adapter(descriptor)
                if adapter is not None:
                    adapters[descriptor.name] = adapter
        self.adapters = adapters

        self._client = client
        self._owns_client = client is None
        self.monitors: Dict[str, ProviderMonitor] = {
            p.name: ProviderMonitor(p.name) for p in self.providers
        }

    async def __aenter__(self) -> "FailoverFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _select(self, allowed_providers: Optional[Iterable[str]]) -> List[ProviderDescriptor]:
        selected = select_providers(self.providers, allowed_providers)
        if not selected:
            raise ValueError("No enabled providers match the requested selection")
        return selected

    async def _attempt(
        self,
        descriptor: ProviderDescriptor,
        adapter: ProviderAdapter,
        symbol: str,
        timeout_ms: Optional[int],
        retry_index: int
    ) -> Tuple[AttemptRecord, Optional[PriceQuote]]:
        """Run one read and turn its outcome into an audit record."""
        start = time.perf_counter()
        try:
            quote = await adapter.fetch_price(self._get_client(), symbol, timeout_ms)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.monitors[descriptor.name].record_request(
                elapsed_ms, False, str(e), timed_out=isinstance(e, ProviderTimeoutError)
            )
            return AttemptRecord(
                source=descriptor.name,
                outcome=AttemptOutcome.FAILURE,
                elapsed_ms=elapsed_ms,
                retry_index=retry_index,
                error=str(e) or e.__class__.__name__,
            ), None

        elapsed_ms = (time.perf_counter() - start) * 1000
        self.monitors[descriptor.name].record_request(elapsed_ms, True)
        return AttemptRecord(
            source=descriptor.name,
            outcome=AttemptOutcome.SUCCESS,
            elapsed_ms=elapsed_ms,
            retry_index=retry_index,
        ), quote

    async def fetch_failover(
        self,
        symbol: str,
        max_retries: Optional[int] = None,
        timeout_ms: Optional[int] = None,
        allowed_providers: Optional[Iterable[str]] = None
    ) -> FetchResult:
        """
        Fetch a price from the first provider that answers.

        Providers are tried in ascending priority; each gets up to
        ``max_retries`` attempts separated by the configured retry delay.
        A lower-priority provider is never tried while a higher-priority one
        still has retries left.

        Args:
            symbol: Canonical symbol ('bitcoin', 'BTCUSDT', ...)
            max_retries: Attempts per provider, defaults to config
            timeout_ms: Per-read timeout override
            allowed_providers: Restrict to these provider names

        Returns:
            FetchResult with the winning price and the full attempt trail, or
            success=False with the trail when every provider failed

        Raises:
            ValueError: If no enabled provider matches ``allowed_providers``
        """
        retries = max_retries if max_retries is not None else self.config.max_retries
        if retries < 1:
            raise ValueError("max_retries must be >= 1")
        timeout_ms = timeout_ms if timeout_ms is not None else self.config.timeout_ms
        delay = self.config.retry_delay_ms / 1000.0

        selected = self._select(allowed_providers or self.config.allowed_providers)
        attempts: List[AttemptRecord] = []

        for position, descriptor in enumerate(selected, 1):
            log = get_sync_adapter(logger, symbol=symbol, provider=descriptor.name)
            adapter = self.adapters.get(descriptor.name)
            if adapter is None:
                log.warning("No adapter registered, skipping provider")
                continue

            log.debug(f"Trying source {position}/{len(selected)} ({descriptor.kind.value})")
            for retry in range(retries):
                if retry > 0:
                    log.debug(f"Retry {retry + 1}/{retries}")

                record, quote = await self._attempt(descriptor, adapter, symbol, timeout_ms, retry)
                attempts.append(record)

                if quote is not None:
                    log.info(f"Price {quote.price} in {record.elapsed_ms:.0f}ms")
                    return FetchResult(
                        success=True,
                        source=descriptor.name,
                        kind=descriptor.kind,
                        price=quote.price,
                        elapsed_ms=record.elapsed_ms,
                        data=quote.raw,
                        attempts=attempts,
                    )

                if retry < retries - 1:
                    await asyncio.sleep(delay)

            log.warning(f"Failed after {retries} attempts: {attempts[-1].error}")

        logger.error(f"All {len(selected)} providers failed for {symbol}")
        return FetchResult(success=False, attempts=attempts, error=ALL_FAILED)

    async def _probe(
        self,
        descriptor: ProviderDescriptor,
        symbol: str,
        timeout_ms: Optional[int]
    ) -> ProviderOutcome:
        adapter = self.adapters.get(descriptor.name)
        if adapter is None:
            return ProviderOutcome(
                source=descriptor.name,
                kind=descriptor.kind,
                priority=descriptor.priority,
                success=False,
                error="no adapter registered",
            )

        record, quote = await self._attempt(descriptor, adapter, symbol, timeout_ms, 0)
        return ProviderOutcome(
            source=descriptor.name,
            kind=descriptor.kind,
            priority=descriptor.priority,
            success=quote is not None,
            price=quote.price if quote else None,
            elapsed_ms=record.elapsed_ms,
            data=quote.raw if quote else None,
            error=record.error,
        )

    async def fetch_all(
        self,
        symbol: str,
        timeout_ms: Optional[int] = None,
        allowed_providers: Optional[Iterable[str]] = None
    ) -> FetchReport:
        """
        Query every selected provider once, concurrently, and aggregate.

        Results list successes before failures, each group in ascending
        priority. Average price and price range cover successes only.

        Raises:
            ValueError: If no enabled provider matches ``allowed_providers``
        """
        selected = self._select(allowed_providers or self.config.allowed_providers)
        timeout_ms = timeout_ms if timeout_ms is not None else self.config.timeout_ms

        logger.info(f"Fetching {symbol} from all {len(selected)} providers in parallel")
        outcomes = await asyncio.gather(*(self._probe(p, symbol, timeout_ms) for p in selected))

        results = sorted(outcomes, key=lambda r: (not r.success, r.priority))
        successful = [r for r in results if r.success]

        average_price = None
        price_range = None
        if successful:
            average_price = sum(r.price for r in successful) / len(successful)
            lowest = min(successful, key=lambda r: r.price)
            highest = max(successful, key=lambda r: r.price)
            price_range = PriceRange(
                min=lowest.price,
                max=highest.price,
                min_source=lowest.source,
                max_source=highest.source,
            )

        return FetchReport(
            total=len(results),
            successful=len(successful),
            failed=len(results) - len(successful),
            results=results,
            average_price=average_price,
            price_range=price_range,
        )

    async def health_check(self, symbol: str = "bitcoin", timeout_ms: Optional[int] = None) -> List[ProviderStatus]:
        """Probe each enabled provider once, one after another, in priority order."""
        statuses: List[ProviderStatus] = []

        for descriptor in select_providers(self.providers):
            if descriptor.name not in self.adapters:
                continue
            outcome = await self._probe(
                descriptor, symbol, timeout_ms if timeout_ms is not None else self.config.timeout_ms
            )
            statuses.append(ProviderStatus(
                name=descriptor.name,
                kind=descriptor.kind,
                available=outcome.success,
                elapsed_ms=outcome.elapsed_ms,
                price=outcome.price,
                error=outcome.error,
            ))

        available = sum(1 for s in statuses if s.available)
        logger.info(f"Health check: {available}/{len(statuses)} providers available")
        return statuses

    def get_stats(self) -> Dict[str, Dict]:
        """Request statistics per provider."""
        return {name: monitor.get_stats() for name, monitor in self.monitors.items()}
