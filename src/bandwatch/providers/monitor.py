"""
Per-provider request monitoring.
"""

from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, Optional


class ProviderMonitor:
    """
    Track response times and outcomes for one upstream provider.
    """

    def __init__(self, name: str, window_size: int = 100):
        self.name = name
        self.window_size = window_size
        self.request_times: Deque[float] = deque(maxlen=window_size)
        self.total_requests = 0
        self.successful_requests = 0
        self.error_count = 0
        self.timeout_errors = 0
        self.last_error: Optional[str] = None
        self.last_error_time: Optional[datetime] = None
        self.last_success_time: Optional[datetime] = None

    def record_request(self, duration_ms: float, success: bool, error: Optional[str] = None,
                       timed_out: bool = False) -> None:
        """Record a request result."""
        self.total_requests += 1
        self.request_times.append(duration_ms)

        if success:
            self.successful_requests += 1
            self.last_success_time = datetime.now()
        else:
            self.error_count += 1
            self.last_error = error
            self.last_error_time = datetime.now()
            if timed_out:
                self.timeout_errors += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get performance statistics."""
        if not self.request_times:
            return {
                'provider': self.name,
                'avg_response_ms': 0,
                'success_rate': 0,
                'total_requests': self.total_requests,
                'error_rate': 0,
                'timeout_errors': self.timeout_errors
            }

        return {
            'provider': self.name,
            'avg_response_ms': sum(self.request_times) / len(self.request_times),
            'max_response_ms': max(self.request_times),
            'min_response_ms': min(self.request_times),
            'success_rate': (self.successful_requests / self.total_requests) * 100,
            'total_requests': self.total_requests,
            'successful_requests': self.successful_requests,
            'error_count': self.error_count,
            'error_rate': (self.error_count / self.total_requests) * 100,
            'timeout_errors': self.timeout_errors,
            'last_error': self.last_error,
            'last_error_time': self.last_error_time,
            'last_success_time': self.last_success_time
        }
