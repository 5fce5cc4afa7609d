"""TTL cache for processed search results plus query frequency tracking."""

import copy
import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from models.search_result import DIYSearchResult
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    results: list[DIYSearchResult]
    timestamp: float
    query: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class QueryFrequencyRecord:
    count: int
    last_used: float


def normalize_query(query: str) -> str:
    return re.sub(r"\s+", " ", query.lower().strip())


class ResultCache:
    """
    In-memory result cache keyed by a search fingerprint.

    Entries older than the TTL are never returned. Stale entries are only
    swept when a write finds the cache at capacity; live entries are never
    evicted. Query frequency statistics live alongside for analytics.
    """

    def __init__(
        self,
        ttl_seconds: float = 30 * 60,
        max_entries: int = 1000,
        query_history_ttl_seconds: float = 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            ttl_seconds: Lifetime of a cached result set
            max_entries: Size at which a write triggers an expiry sweep
            query_history_ttl_seconds: Lifetime of an unused frequency record
            clock: Time source in seconds (injectable for tests)
        """
        self._cache: dict[str, CacheEntry] = {}
        self._query_history: dict[str, QueryFrequencyRecord] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._query_history_ttl = query_history_ttl_seconds
        self._clock = clock

    @staticmethod
    def make_key(
        query: str, resource_type: str, content_type: str, project_id: str | None = None
    ) -> str:
        """Fingerprint: normalized query + resource type + content type + project."""
        return f"{normalize_query(query)}:{resource_type}:{content_type}:{project_id or 'global'}"

    def _is_valid(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp < self._ttl

    def _cleanup(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._cache.items() if now - entry.timestamp >= self._ttl]
        for key in expired:
            del self._cache[key]
        if expired:
            logger.info(f"[Cache] Swept {len(expired)} expired entries")

    def get(
        self,
        query: str,
        resource_type: str,
        content_type: str,
        project_id: str | None = None,
    ) -> list[DIYSearchResult] | None:
        """
        Return cached results for the fingerprint, or None on miss/expiry.

        Args:
            query: Original (unoptimized) query text
            resource_type: Resource type value
            content_type: Content type value
            project_id: Short project identifier, None for global searches

        Returns:
            A deep copy of the cached result list, or None
        """
        key = self.make_key(query, resource_type, content_type, project_id)
        with self._lock:
            entry = self._cache.get(key)
            if entry is not None and self._is_valid(entry):
                logger.info(f"[Cache] Hit for query: '{query}'")
                return copy.deepcopy(entry.results)

        logger.info(f"[Cache] Miss for query: '{query}'")
        return None

    def set(
        self,
        query: str,
        resource_type: str,
        content_type: str,
        results: list[DIYSearchResult],
        metadata: dict[str, Any] | None = None,
        project_id: str | None = None,
    ) -> None:
        """Store a snapshot of ``results``; later caller mutation does not leak in."""
        key = self.make_key(query, resource_type, content_type, project_id)
        with self._lock:
            if len(self._cache) >= self._max_entries:
                self._cleanup()
            self._cache[key] = CacheEntry(
                results=copy.deepcopy(list(results)),
                timestamp=self._clock(),
                query=query,
                metadata=dict(metadata or {}),
            )
        logger.info(
            f"[Cache] Stored results for query: '{query}'",
            extra={"extra_fields": {"result_count": len(results), "cache_size": len(self._cache)}},
        )

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
        logger.info("[Cache] Cleared all entries")

    def track_query(self, query: str) -> None:
        """Count a query use; records unused for longer than the history TTL are dropped."""
        normalized = query.lower().strip()
        now = self._clock()
        with self._lock:
            record = self._query_history.get(normalized)
            if record is not None:
                record.count += 1
                record.last_used = now
            else:
                self._query_history[normalized] = QueryFrequencyRecord(count=1, last_used=now)

            cutoff = now - self._query_history_ttl
            for stale in [q for q, r in self._query_history.items() if r.last_used < cutoff]:
                del self._query_history[stale]

    def get_query_frequency(self, query: str) -> int:
        with self._lock:
            record = self._query_history.get(query.lower().strip())
            return record.count if record else 0

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            return {"size": len(self._cache), "query_history_size": len(self._query_history)}
