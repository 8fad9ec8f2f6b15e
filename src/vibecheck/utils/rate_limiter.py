"""
Thread-safe request pacing for the Bluesky XRPC endpoints.
"""
import threading
import time


class RateLimiter:
    """
    Enforces a minimum interval between requests across threads.

    Example:
        >>> limiter = RateLimiter(max_rate=5.0)
        >>> limiter.acquire()  # returns immediately
        >>> limiter.acquire()  # waits ~0.2s
    """

    def __init__(self, max_rate: float = 5.0):
        """
        :param max_rate: Maximum requests per second
        """
        if max_rate <= 0:
            raise ValueError(f"max_rate must be positive, got {max_rate}")
        self.max_rate = max_rate
        self.min_interval = 1.0 / max_rate
        self.last_request_time = 0
        self._lock = threading.Lock()

    def acquire(self) -> None:
        """Block until the next request is allowed."""
        with self._lock:
            now = time.time()
            wait = self.min_interval - (now - self.last_request_time)
            if wait > 0:
                time.sleep(wait)
                now = time.time()
            self.last_request_time = now
