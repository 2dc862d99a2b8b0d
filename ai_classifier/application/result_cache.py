from __future__ import annotations
import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable
from ai_classifier.config import CacheConfig
from ai_classifier.domain.models import ClassificationResult


logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class CacheEntry:
    value: ClassificationResult
    timestamp: float

def generate_key(ticket_id: str | None, subject: str | None, body: str | None) -> str:
    """Deterministic fingerprint of (ticket_id, subject, body): first 32 hex chars of SHA-256.

        Fields are JSON-encoded as a list so separators inside a field cannot
        make two different tickets collide. None counts as an empty string.
        """

    content = json.dumps([ticket_id or "", subject or "", body or ""], ensure_ascii=False)
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:32]

class ResultCache:
    """In-memory, TTL-bounded store of classification results keyed by ticket fingerprint.

        Local to the process and best-effort. Expired entries are dropped lazily
        on read and in bulk when the store reaches max_size; if it is still full
        after that, the oldest-written half is evicted.
        """

    def __init__(self, config: CacheConfig, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl_minutes = config.ttl_minutes
        self._ttl_seconds = config.ttl_minutes * 60.0
        self._max_size = config.max_size
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def generate_key(ticket_id: str | None, subject: str | None, body: str | None) -> str:
        return generate_key(ticket_id, subject, body)

    def get(self, key: str) -> ClassificationResult | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if now - entry.timestamp > self._ttl_seconds:
                del self._entries[key]
                expired = True
            else:
                expired = False

        if expired:
            logger.debug("Cache entry expired for key %s", key[:8])
            return None

        logger.debug("Cache hit for key %s", key[:8])
        return entry.value

    def put(self, key: str, value: ClassificationResult) -> None:
        now = self._clock()
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_size:
                self._evict(now)
            # last writer wins
            self._entries[key] = CacheEntry(value=value, timestamp=now)

        logger.debug("Cache stored for key %s", key[:8])

    def get_for(self, ticket_id: str | None, subject: str | None, body: str | None) -> ClassificationResult | None:
        return self.get(generate_key(ticket_id, subject, body))

    def put_for(
        self,
        ticket_id: str | None,
        subject: str | None,
        body: str | None,
        value: ClassificationResult,
    ) -> None:
        self.put(generate_key(ticket_id, subject, body), value)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Classification cache cleared")

    def stats(self) -> dict[str, Any]:
        return {
            "size": self.size(),
            "max_size": self._max_size,
            "ttl_minutes": self._ttl_minutes,
        }

    def _evict(self, now: float) -> None:
        # caller holds self._lock
        size_before = len(self._entries)
        expired_keys = [
            key for key, entry in self._entries.items()
            if now - entry.timestamp > self._ttl_seconds
        ]
        for key in expired_keys:
            del self._entries[key]

        if expired_keys:
            logger.debug("Evicted %d expired cache entries", len(expired_keys))

        if len(self._entries) < self._max_size:
            return

        # still full: drop the oldest-written half (at least one entry)
        to_remove = max(1, len(self._entries) // 2)
        oldest = sorted(self._entries.items(), key=lambda item: item[1].timestamp)[:to_remove]
        for key, _ in oldest:
            del self._entries[key]

        logger.warning(
            "Cache still full after expiry sweep; evicted %d oldest entries (size %d -> %d)",
            to_remove,
            size_before,
            len(self._entries),
        )
