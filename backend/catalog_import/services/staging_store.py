"""
Staging store for import sessions and commit results.

Sessions live for a short TTL (30 minutes by default) and vanish afterwards;
commit results are kept much longer so an import's outcome can still be read
once its session is gone. Every write refreshes the TTL of the written key.
"""
import copy
import json
import logging
import secrets
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..config import get_settings

logger = logging.getLogger(__name__)

STAGING_PREFIX = "import:staging:"
RESULT_PREFIX = "import:result:"
COMMIT_LOCK_PREFIX = "import:commit-lock:"


def generate_import_id() -> str:
    """Opaque id for a new import session."""
    return f"imp_{secrets.token_hex(12)}"


class StagingStore(ABC):
    """Keyed, expiring storage for staging sessions and commit results."""

    def __init__(self, session_ttl: int, result_ttl: int):
        self.session_ttl = session_ttl
        self.result_ttl = result_ttl

    @abstractmethod
    def put(self, import_id: str, data: Dict[str, Any]) -> None:
        """Write (or overwrite) a session, restarting its TTL."""

    @abstractmethod
    def get(self, import_id: str) -> Optional[Dict[str, Any]]:
        """Session data, or None if it never existed or has expired."""

    @abstractmethod
    def delete(self, import_id: str) -> None:
        ...

    @abstractmethod
    def store_result(self, import_id: str, result: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def get_result(self, import_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def claim_commit(self, import_id: str) -> bool:
        """
        Atomically mark a session as being committed.

        Returns False if another caller already holds the claim.
        """

    @abstractmethod
    def release_commit(self, import_id: str) -> None:
        ...

    def create(self, import_id: str, data: Dict[str, Any]) -> None:
        """Store a freshly staged session."""
        self.put(import_id, data)


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

@dataclass
class CacheEntry:
    """A stored value with expiration (monotonic seconds)."""
    data: Any
    expires_at: float


class InMemoryStagingStore(StagingStore):
    """
    Process-local store.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store, mirroring a serializing backend.
    """

    def __init__(
        self,
        session_ttl: int = 1800,
        result_ttl: int = 604800,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(session_ttl, result_ttl)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _is_expired(self, entry: Optional[CacheEntry], now: float) -> bool:
        if entry is None:
            return True
        return now >= entry.expires_at

    def _prune(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            self._entries.pop(key, None)

    def _set(self, key: str, data: Any, ttl: int) -> None:
        now = self._clock()
        with self._lock:
            self._prune(now)
            self._entries[key] = CacheEntry(data=copy.deepcopy(data), expires_at=now + ttl)

    def _get(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            self._prune(now)
            entry = self._entries.get(key)
            if entry is None:
                return None
            return copy.deepcopy(entry.data)

    def put(self, import_id: str, data: Dict[str, Any]) -> None:
        self._set(STAGING_PREFIX + import_id, data, self.session_ttl)

    def get(self, import_id: str) -> Optional[Dict[str, Any]]:
        return self._get(STAGING_PREFIX + import_id)

    def delete(self, import_id: str) -> None:
        with self._lock:
            self._entries.pop(STAGING_PREFIX + import_id, None)
            self._entries.pop(COMMIT_LOCK_PREFIX + import_id, None)

    def store_result(self, import_id: str, result: Dict[str, Any]) -> None:
        self._set(RESULT_PREFIX + import_id, result, self.result_ttl)

    def get_result(self, import_id: str) -> Optional[Dict[str, Any]]:
        return self._get(RESULT_PREFIX + import_id)

    def claim_commit(self, import_id: str) -> bool:
        key = COMMIT_LOCK_PREFIX + import_id
        now = self._clock()
        with self._lock:
            self._prune(now)
            if key in self._entries:
                return False
            self._entries[key] = CacheEntry(data=True, expires_at=now + self.result_ttl)
            return True

    def release_commit(self, import_id: str) -> None:
        with self._lock:
            self._entries.pop(COMMIT_LOCK_PREFIX + import_id, None)


# ---------------------------------------------------------------------------
# Redis store
# ---------------------------------------------------------------------------

class RedisStagingStore(StagingStore):
    """Store backed by Redis keys with native expiry (JSON values)."""

    def __init__(self, client, session_ttl: int = 1800, result_ttl: int = 604800):
        super().__init__(session_ttl, result_ttl)
        self.client = client

    def _load(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def put(self, import_id: str, data: Dict[str, Any]) -> None:
        self.client.setex(STAGING_PREFIX + import_id, self.session_ttl, json.dumps(data))

    def get(self, import_id: str) -> Optional[Dict[str, Any]]:
        return self._load(STAGING_PREFIX + import_id)

    def delete(self, import_id: str) -> None:
        self.client.delete(STAGING_PREFIX + import_id, COMMIT_LOCK_PREFIX + import_id)

    def store_result(self, import_id: str, result: Dict[str, Any]) -> None:
        self.client.setex(RESULT_PREFIX + import_id, self.result_ttl, json.dumps(result))

    def get_result(self, import_id: str) -> Optional[Dict[str, Any]]:
        return self._load(RESULT_PREFIX + import_id)

    def claim_commit(self, import_id: str) -> bool:
        # SET NX is the conditional write: only one caller can create the key
        return bool(self.client.set(COMMIT_LOCK_PREFIX + import_id, "1", nx=True, ex=self.result_ttl))

    def release_commit(self, import_id: str) -> None:
        self.client.delete(COMMIT_LOCK_PREFIX + import_id)


# Singleton instance
_store_instance: Optional[StagingStore] = None


def get_staging_store() -> StagingStore:
    """Get the process-wide staging store (Redis when REDIS_URL is set)."""
    global _store_instance
    if _store_instance is None:
        settings = get_settings()
        if settings.redis_url:
            import redis

            client = redis.from_url(settings.redis_url, decode_responses=True)
            _store_instance = RedisStagingStore(
                client,
                session_ttl=settings.import_staging_ttl_seconds,
                result_ttl=settings.import_result_ttl_seconds,
            )
            logger.info("Using Redis for import staging store")
        else:
            _store_instance = InMemoryStagingStore(
                session_ttl=settings.import_staging_ttl_seconds,
                result_ttl=settings.import_result_ttl_seconds,
            )
            logger.info("Using in-memory import staging store")
    return _store_instance
