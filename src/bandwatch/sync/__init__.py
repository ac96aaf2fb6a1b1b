"""
Live synchronization between a client-side market view and a backend.
"""

from .backend import InMemoryMarketBackend, MarketBackend
from .buffer import CandleBuffer, same_bucket
from .controller import LiveSyncController
from .state import LoadPhase, StreamSession, SyncState

__all__ = [
    "MarketBackend",
    "InMemoryMarketBackend",
    "CandleBuffer",
    "same_bucket",
    "LiveSyncController",
    "LoadPhase",
    "StreamSession",
    "SyncState",
]
