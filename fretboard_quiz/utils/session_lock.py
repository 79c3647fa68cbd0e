"""
Per-session write locks

Serializes writers (answer appends, closes) for one session id. Uses a Redis
lock so multiple API workers agree; falls back to in-process locks when Redis
is not configured or unreachable.
"""
import redis
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional
from fretboard_quiz.config import settings
from fretboard_quiz.utils.errors import Conflict

logger = logging.getLogger(__name__)


class SessionLockService:
    """Lock keyed by quiz session id"""

    KEY_PREFIX = "quiz_session_lock"

    def __init__(self, redis_url: Optional[str] = None, timeout: Optional[int] = None):
        self.redis_url = settings.REDIS_URL if redis_url is None else redis_url
        self.timeout = timeout or settings.SESSION_LOCK_TIMEOUT_SECONDS
        self._redis_client = None
        self._connected = False
        # {lock key: in-process lock}, plus how many holders or waiters use it
        self._local_locks: Dict[str, threading.Lock] = {}
        self._local_users: Dict[str, int] = {}
        self._local_guard = threading.Lock()

    @property
    def redis_client(self):
        """Connect lazily on first use"""
        if not self._connected:
            self._connected = True
            if not self.redis_url:
                logger.info("Redis not configured. Using in-process session locks.")
                return None
            try:
                client = redis.from_url(self.redis_url, socket_connect_timeout=5)
                client.ping()
                self._redis_client = client
                logger.info("Redis connection established for session locks")
            except redis.RedisError as e:
                logger.warning(f"Redis connection failed: {str(e)}. Using in-process session locks.")
                self._redis_client = None
        return self._redis_client

    def lock_key(self, session_id) -> str:
        return f"{self.KEY_PREFIX}:{session_id}"

    @contextmanager
    def hold(self, session_id) -> Iterator[None]:
        """
        Hold the lock for session_id for the duration of the block

        Raises:
            Conflict: lock could not be acquired within the timeout
        """
        key = self.lock_key(session_id)
        client = self.redis_client

        if client is not None:
            lock = client.lock(key, timeout=self.timeout, blocking_timeout=self.timeout)
            if not lock.acquire():
                logger.warning(f"Timed out waiting for {key}")
                raise Conflict("Session is busy, try again")
            try:
                yield
            finally:
                try:
                    lock.release()
                except redis.exceptions.LockError:
                    logger.warning(f"Lock {key} expired before release")
            return

        with self._local_guard:
            local_lock = self._local_locks.setdefault(key, threading.Lock())
            self._local_users[key] = self._local_users.get(key, 0) + 1
        try:
            if not local_lock.acquire(timeout=self.timeout):
                logger.warning(f"Timed out waiting for {key}")
                raise Conflict("Session is busy, try again")
            try:
                yield
            finally:
                local_lock.release()
        finally:
            # Forget the lock once nobody holds or waits on it
            with self._local_guard:
                self._local_users[key] -= 1
                if not self._local_users[key]:
                    del self._local_users[key]
                    del self._local_locks[key]


# Global instance
session_lock_service = SessionLockService()
