"""
Per-client request throttling for the API
"""
import time
from collections import deque
from fastapi import Request, HTTPException
from typing import Deque, Dict, NamedTuple, Optional, Tuple
import logging

from fretboard_quiz.api.deps import USER_ID_HEADER
from fretboard_quiz.config import settings

logger = logging.getLogger(__name__)


class Window(NamedTuple):
    name: str
    seconds: int
    limit: int


class RateLimiter:
    """
    Sliding-window limiter kept in process memory

    Each worker counts on its own; callers are keyed by their X-User-Id
    header, else by client address.
    """

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.windows: Tuple[Window, ...] = (
            Window("minute", 60, requests_per_minute),
            Window("hour", 3600, requests_per_hour),
        )
        # {(client_id, window name): request timestamps, oldest first}
        self._hits: Dict[Tuple[str, str], Deque[float]] = {}

    def client_id(self, request: Request) -> str:
        user_id = request.headers.get(USER_ID_HEADER)
        if user_id:
            return f"user:{user_id}"
        host = request.client.host if request.client else "unknown"
        return f"ip:{host}"

    def _cleanup_old_entries(self, now: float) -> None:
        """Drop timestamps that left their window, and keys with none left"""
        seconds = {window.name: window.seconds for window in self.windows}

        for key in list(self._hits.keys()):
            hits = self._hits[key]
            cutoff = now - seconds[key[1]]
            while hits and hits[0] <= cutoff:
                hits.popleft()

            if not hits:
                del self._hits[key]

    def check(self, client_id: str, now: Optional[float] = None) -> None:
        """
        Count one request for client_id against every window

        Raises:
            HTTPException: 429 with retry_after when any window is full
        """
        now = time.time() if now is None else now
        self._cleanup_old_entries(now)

        for window in self.windows:
            if len(self._hits.get((client_id, window.name), ())) >= window.limit:
                logger.warning(f"Rate limit exceeded ({window.name}): {client_id}")
                raise HTTPException(
                    status_code=429,
                    detail={
                        "error": "rate_limit_exceeded",
                        "message": f"Too many requests. Limit: {window.limit} requests per {window.name}",
                        "retry_after": window.seconds,
                    },
                )

        for window in self.windows:
            self._hits.setdefault((client_id, window.name), deque()).append(now)

    async def check_rate_limit(self, request: Request) -> None:
        self.check(self.client_id(request))


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR,
)
