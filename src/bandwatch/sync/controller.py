"""
Live Synchronization Controller

Keeps a client-side view of candles, indicators and alerts for the selected
(symbol, period) in step with a MarketBackend:

- load() issues the three reads concurrently and commits only if it is still
  the newest load and the selection has not moved in the meantime
- toggle_stream() starts/stops server-side streaming and a periodic refresh
- select() handles symbol/period changes, restarting the stream when needed
- on_price_tick() merges pushed ticks into the bounded candle buffer

Every asynchronous step re-validates the selection it was issued for before
touching state, so results from superseded requests are dropped silently.
"""

import asyncio
import dataclasses
from typing import Any, Awaitable, Iterable, Optional, Set, Tuple

from pydantic import ValidationError

from ..config import SyncConfig
from ..logger import get_logger, get_sync_adapter
from ..models.indicators import coerce_indicators
from ..models.market_data import Timeframe, coerce_candle, coerce_tick
from ..models.signals import coerce_alerts
from ..signals.detector import latest_alert
from .backend import MarketBackend, Unsubscribe
from .buffer import CandleBuffer
from .state import LoadPhase, StreamSession, SyncState

logger = get_logger(__name__)


def _pair_symbol(symbol: str) -> str:
    return symbol.replace("_", "").upper()


class LiveSyncController:
    """
    Reactive market view synchronized with a MarketBackend.

    Intended to run on a single asyncio event loop. Use ``async with`` (or
    start()/close()) to attach to the backend's push channel and to release
    the poll timer, the subscription and the server-side stream on exit.
    """

    def __init__(
        self,
        backend: MarketBackend,
        config: Optional[SyncConfig] = None,
        symbol: Optional[str] = None,
        period: Optional[str] = None
    ):
        self.backend = backend
        self.config = config or SyncConfig()

        self._state = SyncState(
            symbol=(symbol or self.config.default_symbol).upper().strip(),
            period=period or self.config.default_period,
        )
        self._buffer = CandleBuffer(self.config.max_candles)

        # (generation, symbol, period) of the load currently allowed to run
        self._inflight: Optional[Tuple[int, str, str]] = None
        self._session: Optional[StreamSession] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._background_tasks: Set[asyncio.Task] = set()

    async def __aenter__(self) -> "LiveSyncController":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def state(self) -> SyncState:
        """Snapshot of the current view state."""
        return dataclasses.replace(
            self._state,
            candles=self._buffer.snapshot(),
            alerts=list(self._state.alerts),
        )

    @property
    def is_loading(self) -> bool:
        return self._inflight is not None

    @property
    def poll_active(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def stream_session(self) -> Optional[StreamSession]:
        return self._session

    def _is_current(self, generation: int, symbol: str, period: str) -> bool:
        return (
            generation == self._state.load_generation
            and symbol == self._state.symbol
            and period == self._state.period
        )

    # Lifecycle

    async def start(self) -> None:
        """Attach to the push channel and perform the initial load."""
        if self._unsubscribe is None:
            self._unsubscribe = self.backend.subscribe(self.on_price_tick)
        await self.load()

    async def close(self) -> None:
        """Cancel the timer, drop the subscription and stop an active stream."""
        poll_task = self._poll_task
        self._cancel_poll_timer()
        if poll_task is not None:
            await asyncio.gather(poll_task, return_exceptions=True)

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        if self._state.streaming:
            await self._stop_streaming()

        for task in list(self._background_tasks):
            task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

        logger.debug("Sync controller closed")

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        """Create and track a background task."""
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background task failed: {error!r}")

    # Loading

    async def load(self) -> LoadPhase:
        """
        Refresh candles, indicators and alerts for the current selection.

        A call made while a load for the same selection is in flight joins it
        and returns immediately. Results are committed only when this load
        still holds the newest generation and the selection is unchanged.
        Non-empty candles replace the buffer; an empty candle list keeps the
        buffer and refreshes only indicators and alerts. Failures never clear
        existing data.

        Returns:
            LOADING when coalesced into an in-flight load, otherwise the
            outcome of this load (LOADED, STALE_DISCARDED or FAILED)
        """
        symbol, period = self._state.symbol, self._state.period
        log = get_sync_adapter(logger, symbol=symbol, period=period)

        if self._inflight is not None and self._inflight[1:] == (symbol, period):
            log.debug(f"Load {self._inflight[0]} already in flight, coalescing")
            return LoadPhase.LOADING

        self._state.load_generation += 1
        generation = self._state.load_generation
        self._inflight = (generation, symbol, period)
        self._state.phase = LoadPhase.LOADING

        try:
            results = await asyncio.gather(
                self.backend.get_candles(symbol, period),
                self.backend.get_indicators(symbol, period),
                self.backend.get_alerts(symbol, period),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result

            candles = [coerce_candle(c) for c in (results[0] or [])]
            indicators = coerce_indicators(results[1])
            alerts = coerce_alerts(results[2])
        except Exception as e:
            if not self._is_current(generation, symbol, period):
                log.debug(f"Load {generation} failed after being superseded: {e}")
                return LoadPhase.STALE_DISCARDED
            self._state.phase = LoadPhase.FAILED
            self._state.last_error = str(e) or e.__class__.__name__
            log.error(f"Load {generation} failed: {e}")
            return LoadPhase.FAILED
        finally:
            if self._inflight is not None and self._inflight[0] == generation:
                self._inflight = None

        if not self._is_current(generation, symbol, period):
            log.debug(
                f"Discarding load {generation}: current generation "
                f"{self._state.load_generation}, selection "
                f"{self._state.symbol}/{self._state.period}"
            )
            return LoadPhase.STALE_DISCARDED

        if candles:
            self._buffer.replace(candles)
            log.debug(f"Loaded {len(candles)} candles")
        else:
            log.warning("No candles returned, keeping existing data")

        self._state.indicators = indicators
        self._state.alerts = alerts
        self._state.latest_alert = latest_alert(alerts)
        self._state.phase = LoadPhase.LOADED
        self._state.last_error = None
        return LoadPhase.LOADED

    # Streaming

    async def toggle_stream(self) -> bool:
        """
        Start or stop live streaming for the current selection.

        Returns:
            The streaming flag after the toggle
        """
        if self._state.streaming:
            await self._stop_streaming()
        else:
            await self._start_streaming()
        return self._state.streaming

    async def _start_streaming(self) -> None:
        symbol, period = self._state.symbol, self._state.period
        log = get_sync_adapter(logger, symbol=symbol, period=period)

        try:
            await self.backend.start_stream(symbol, period)
        except Exception as e:
            log.error(f"Failed to start stream: {e}")
            return

        if not StreamSession(symbol, period).matches(self._state.symbol, self._state.period):
            log.warning("Selection changed while the stream was starting, releasing it")
            await self._release_stream(symbol)
            return

        self._state.streaming = True
        self._state.stream_period = period
        self._session = StreamSession(symbol, period)
        log.info("Streaming started")

        self._spawn(self._resync(symbol))
        self._arm_poll_timer(self._session)
        await self.load()

    async def _stop_streaming(self) -> None:
        symbol = self._session.symbol if self._session else self._state.symbol

        self._cancel_poll_timer()
        self._state.streaming = False
        self._state.stream_period = None
        self._session = None

        try:
            await self.backend.stop_stream(symbol)
            logger.info(f"Streaming stopped for {symbol}")
        except Exception as e:
            logger.error(f"Failed to stop stream for {symbol}: {e}")

    async def _restart_stream(self, old_symbol: str, symbol_changed: bool) -> None:
        """Move the server-side stream to the current selection."""
        symbol, period = self._state.symbol, self._state.period
        log = get_sync_adapter(logger, symbol=symbol, period=period)

        # Period-only changes reuse the running subscription
        if symbol_changed:
            try:
                await self.backend.stop_stream(old_symbol)
            except Exception as e:
                log.error(f"Failed to stop previous stream for {old_symbol}: {e}")

        try:
            await self.backend.start_stream(symbol, period)
        except Exception as e:
            log.error(f"Failed to restart stream: {e}")
            if StreamSession(symbol, period).matches(self._state.symbol, self._state.period):
                self._state.streaming = False
                self._state.stream_period = None
                self._session = None
            return

        if not self._state.streaming or not StreamSession(symbol, period).matches(
            self._state.symbol, self._state.period
        ):
            log.info("Stream restart superseded while pending")
            await self._release_stream(symbol)
            return

        self._state.stream_period = period
        self._session = StreamSession(symbol, period)
        log.info("Stream restarted for new selection")

        self._spawn(self._resync(symbol))
        self._arm_poll_timer(self._session)

    async def _release_stream(self, symbol: str) -> None:
        """
        Stop a stream whose start was superseded while it was pending.

        While streaming is on for the same symbol the backend stream belongs
        to a newer start or restart and is kept.
        """
        if self._state.streaming and self._state.symbol == symbol:
            return
        try:
            await self.backend.stop_stream(symbol)
        except Exception as e:
            logger.error(f"Failed to release stream for {symbol}: {e}")

    async def _resync(self, symbol: str) -> None:
        try:
            await self.backend.resync(symbol, self.config.resync_lookback)
            logger.debug(f"Resync requested for {symbol}")
        except Exception as e:
            logger.error(f"Resync for {symbol} failed: {e}")

    # Poll timer

    def _arm_poll_timer(self, session: StreamSession) -> None:
        self._cancel_poll_timer()
        self._poll_task = asyncio.create_task(self._poll_loop(session))

    def _cancel_poll_timer(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll_loop(self, session: StreamSession) -> None:
        interval = self.config.poll_interval_seconds
        while True:
            await asyncio.sleep(interval)
            if not self._state.streaming or not session.matches(self._state.symbol, self._state.period):
                logger.debug(f"Poll timer for {session.symbol}/{session.period} no longer matches selection")
                if self._poll_task is asyncio.current_task():
                    self._poll_task = None
                return
            await self.load()

    # Selection

    async def select(self, symbol: Optional[str] = None, period: Optional[str] = None) -> None:
        """
        Change the selected symbol and/or period.

        The poll timer is cancelled before anything else. While streaming, the
        stream is restarted when the symbol changes or the period moves away
        from the stream period. A fresh load is always issued, and a symbol
        change also fires a background resync.
        """
        old_symbol, old_period = self._state.symbol, self._state.period
        new_symbol = symbol.upper().strip() if symbol else old_symbol
        new_period = period or old_period
        if new_symbol == old_symbol and new_period == old_period:
            return

        self._cancel_poll_timer()
        self._state.symbol = new_symbol
        self._state.period = new_period
        symbol_changed = new_symbol != old_symbol
        logger.info(f"Selection changed: {old_symbol}/{old_period} -> {new_symbol}/{new_period}")

        if self._state.streaming and (symbol_changed or new_period != self._state.stream_period):
            await self._restart_stream(old_symbol, symbol_changed)

        if symbol_changed:
            self._spawn(self._resync(new_symbol))

        await self.load()

    async def set_symbol(self, symbol: str) -> None:
        await self.select(symbol=symbol)

    async def set_period(self, period: str) -> None:
        await self.select(period=period)

    # Push channel

    def on_price_tick(self, payload: Any) -> bool:
        """
        Merge a pushed price tick into the candle buffer.

        Ticks are applied only for the selected symbol, only while the finest
        period is selected (and, when streaming, only if the stream runs at the
        finest period too), and only onto an already loaded buffer. A tick
        that opens a new bucket triggers a fresh load.

        Returns:
            True when the tick was applied
        """
        try:
            tick = coerce_tick(payload)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed price tick: {e.error_count()} errors")
            return False
        if tick is None:
            return False

        if _pair_symbol(tick.symbol) != _pair_symbol(self._state.symbol):
            return False

        finest = Timeframe.finest().value
        if self._state.period != finest:
            return False
        if self._state.streaming and self._state.stream_period != finest:
            return False

        if not self._buffer:
            logger.debug(f"Ignoring tick for {tick.symbol}: no candles loaded")
            return False

        try:
            appended = self._buffer.apply_tick(tick)
        except ValidationError as e:
            logger.warning(f"Ignoring inconsistent price tick for {tick.symbol}: {e.error_count()} errors")
            return False

        if appended:
            self._spawn(self.load())
        return True

    # Test seeding

    def load_test_data(
        self,
        candles: Optional[Iterable[Any]] = None,
        alerts: Optional[Iterable[Any]] = None,
        indicators: Optional[Any] = None
    ) -> None:
        """Replace the view with injected data, bypassing the backend."""
        candle_list = [coerce_candle(c) for c in (candles or [])]
        alert_list = coerce_alerts(list(alerts or []))

        self._buffer.replace(candle_list)
        self._state.alerts = alert_list
        self._state.latest_alert = latest_alert(alert_list)

        if indicators is not None:
            self._state.indicators = coerce_indicators(indicators)
        elif candle_list:
            logger.warning("Test data has no indicators, keeping the previous indicator snapshot")

        logger.info(f"Test data loaded: {len(candle_list)} candles, {len(alert_list)} alerts")
