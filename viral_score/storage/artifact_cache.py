"""Persistent versioned cache for large binary artifacts.

Stores one blob per key in SQLite (via SQLAlchemy) so the model file
survives process restarts. An entry is only served when:
1. its stored version equals the cache's configured version (exact string match)
2. it was written less than ttl_ms ago (default 30 days)

Entries failing either check are deleted by the read that detects them, so
callers only ever see "hit" or "miss".
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from viral_score.storage.models import CacheEntry
from viral_score.storage.session import create_session_factory, get_database_url, init_db

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
CACHE_TTL_DAYS = 30
CACHE_TTL_MS = CACHE_TTL_DAYS * DAY_MS


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheInfo:
    """Metadata of a stored entry (blob excluded)."""
    key: str
    version: str
    timestamp: int
    size: int


class ArtifactCache:
    """Versioned, TTL-bounded key -> blob store.

    Writes are last-write-wins. Concurrent mutations of the same key are
    serialized by SQLite; the model loader's single-flight guard keeps it
    to one writer per key in practice.
    """

    def __init__(
        self,
        version: str,
        db_path: Optional[Path] = None,
        db_url: Optional[str] = None,
        ttl_ms: int = CACHE_TTL_MS,
        clock: Callable[[], int] = _now_ms
    ):
        """
        Initialize the artifact cache.

        Args:
            version: Current artifact version; entries with any other version are stale
            db_path: SQLite file location. Defaults to ~/.viral_score/artifacts.db
            db_url: Full SQLAlchemy URL (overrides db_path)
            ttl_ms: Maximum entry age in milliseconds
            clock: Returns the current time in ms since epoch
        """
        self.version = version
        self.ttl_ms = ttl_ms
        self._clock = clock

        self.db_url = db_url or get_database_url(db_path)
        self._engine = init_db(self.db_url)
        self._session_factory = create_session_factory(self._engine)

        logger.info(f"Artifact cache ready (version={version}, db={self.db_url})")

    def _session(self) -> Session:
        return self._session_factory()

    def _validation_failure(self, entry: CacheEntry) -> Optional[str]:
        """Reason the entry must be purged, or None if it is valid."""
        if entry.version != self.version:
            return f"version mismatch (stored={entry.version}, current={self.version})"
        age_ms = self._clock() - entry.timestamp
        if age_ms >= self.ttl_ms:
            return f"expired (age={age_ms / DAY_MS:.1f} days)"
        return None

    def get(self, key: str) -> Optional[bytes]:
        """
        Return the cached blob, or None on miss.

        Stale or expired entries are deleted before returning None.
        """
        with self._session() as session:
            entry = session.get(CacheEntry, key)
            if entry is None:
                logger.debug(f"Cache miss: {key}")
                return None

            reason = self._validation_failure(entry)
            if reason is not None:
                logger.info(f"Purging cached artifact '{key}': {reason}")
                session.delete(entry)
                session.commit()
                return None

            data = bytes(entry.data)

        logger.info(f"Cache hit: {key} ({len(data)} bytes, version={self.version})")
        return data

    def put(self, key: str, data: bytes) -> bool:
        """
        Store data under key, replacing any existing entry.

        Returns:
            True on success, False if the storage layer rejected the write
        """
        entry = CacheEntry(
            key=key,
            version=self.version,
            timestamp=self._clock(),
            size=len(data),
            data=bytes(data)
        )
        with self._session() as session:
            try:
                session.merge(entry)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Failed to cache artifact '{key}': {e}")
                return False

        logger.info(f"Cached artifact '{key}' ({len(data)} bytes, version={self.version})")
        return True

    def invalidate(self, key: str) -> None:
        """Remove the entry for key if present."""
        with self._session() as session:
            deleted = session.query(CacheEntry).filter(CacheEntry.key == key).delete()
            session.commit()

        if deleted:
            logger.info(f"Invalidated cached artifact '{key}'")

    def info(self, key: str) -> Optional[CacheInfo]:
        """
        Metadata for the stored entry without loading the blob.

        No validation is applied; a stale entry is reported until a get()
        purges it.
        """
        with self._session() as session:
            row = (
                session.query(CacheEntry.key, CacheEntry.version, CacheEntry.timestamp, CacheEntry.size)
                .filter(CacheEntry.key == key)
                .first()
            )

        if row is None:
            return None
        return CacheInfo(key=row.key, version=row.version, timestamp=row.timestamp, size=row.size)

    def clear(self) -> int:
        """Delete every entry. Returns the number of rows removed."""
        with self._session() as session:
            deleted = session.query(CacheEntry).delete()
            session.commit()

        logger.info(f"Artifact cache cleared ({deleted} entries)")
        return deleted

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dict with cache stats (count, size_mb, etc.)
        """
        with self._session() as session:
            count, total_size = session.query(
                func.count(CacheEntry.key),
                func.coalesce(func.sum(CacheEntry.size), 0)
            ).one()

        return {
            'count': int(count),
            'size_bytes': int(total_size),
            'size_mb': int(total_size) / (1024 * 1024),
            'version': self.version,
            'db_url': self.db_url
        }

    def close(self) -> None:
        """Dispose of pooled connections."""
        self._engine.dispose()
