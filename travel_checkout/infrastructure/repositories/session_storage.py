"""Session snapshot storage backends."""
import json
import logging
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

import redis

from travel_checkout.domain.interfaces.session_storage import ISessionStorage
from travel_checkout.infrastructure.redis_client import RedisClientFactory


class RedisSessionStorage(ISessionStorage):
    """
    Redis-based snapshot storage with TTL support.

    Keys are ``checkout:<session_id>``; values are JSON documents.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, ttl: Optional[int] = None):
        """
        Args:
            redis_client: Redis client instance (defaults to the shared client)
            ttl: Default time to live in seconds (defaults to 1 hour)
        """
        self.redis = redis_client if redis_client is not None else RedisClientFactory.get_client()
        self.default_ttl = ttl or 3600
        self._logger = logging.getLogger(__name__)
        self._key_prefix = "checkout:"

    def _get_key(self, session_id: str) -> str:
        return f"{self._key_prefix}{session_id}"

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        if not self.redis:
            self._logger.warning("Redis not available - cannot retrieve session")
            return None

        try:
            data = self.redis.get(self._get_key(session_id))
        except redis.RedisError as e:
            self._logger.error(f"Failed to get session {session_id}: {e}")
            return None
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError as e:
            self._logger.error(f"Discarding corrupt snapshot of session {session_id}: {e}")
            return None

    def set_session(self, session_id: str, data: Dict[str, Any], ttl: Optional[int] = None) -> None:
        if not self.redis:
            self._logger.warning("Redis not available - cannot store session")
            raise RuntimeError("Redis not available - cannot store session")

        ttl = ttl or self.default_ttl
        try:
            self.redis.setex(self._get_key(session_id), ttl, json.dumps(data))
            self._logger.debug(f"Session {session_id} stored with TTL {ttl}s")
        except redis.RedisError as e:
            self._logger.error(f"Failed to set session {session_id}: {e}")
            raise

    def delete_session(self, session_id: str) -> None:
        if not self.redis:
            self._logger.warning("Redis not available - cannot delete session")
            return

        try:
            self.redis.delete(self._get_key(session_id))
            self._logger.debug(f"Session {session_id} deleted")
        except redis.RedisError as e:
            self._logger.error(f"Failed to delete session {session_id}: {e}")
            raise

    def list_sessions(self) -> List[str]:
        if not self.redis:
            return []
        prefix_length = len(self._key_prefix)
        return [key[prefix_length:] for key in self.redis.scan_iter(match=f"{self._key_prefix}*")]


class InMemorySessionStorage(ISessionStorage):
    """Process-local snapshot storage for development and tests."""

    def __init__(self, ttl: Optional[int] = None):
        self.default_ttl = ttl or 3600
        self._data: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._data.get(session_id)
            if entry is None:
                return None
            expires_at, payload = entry
            if time.monotonic() >= expires_at:
                del self._data[session_id]
                return None
        return json.loads(payload)

    def set_session(self, session_id: str, data: Dict[str, Any], ttl: Optional[int] = None) -> None:
        payload = json.dumps(data)
        with self._lock:
            self._data[session_id] = (time.monotonic() + (ttl or self.default_ttl), payload)

    def delete_session(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)

    def list_sessions(self) -> List[str]:
        now = time.monotonic()
        with self._lock:
            return [sid for sid, (expires_at, _) in self._data.items() if expires_at > now]
