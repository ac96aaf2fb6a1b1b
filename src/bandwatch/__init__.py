"""
bandwatch: resilient market data acquisition and live view synchronization.

Fetches cryptocurrency prices from ranked upstream providers with failover,
and keeps a client-side candle/indicator/alert view in step with a backend
computation service, discarding stale responses.
"""

__version__ = "0.1.0"
__description__ = "Multi-source market data fetcher and live sync controller"

# Package-level imports for convenience
from .config import Config
from .logger import get_logger

__all__ = ["Config", "get_logger", "__version__"]
