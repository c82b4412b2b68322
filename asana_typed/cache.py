#!/usr/bin/env python3
"""
Asana Response Cache

Records the data of successful GET responses keyed by request path
(including the query string) and replays it while the entry is fresh.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Union

# Configure logging
logger = logging.getLogger(__name__)


class Cache(ABC):
    """
    Capability set consumed by the client.

    Implementations raise AsanaStorageError on failure. A client without a
    cache behaves as if every get() returned None.
    """

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Store a value, replacing any existing entry."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return a previously stored value, or None."""

    @abstractmethod
    def clear(self, key: str) -> None:
        """Remove a stored value if present."""

    def clear_path(self, path: str) -> None:
        """
        Remove the entries for path under every query string.

        Caches that cannot enumerate their keys only drop the bare path.
        """
        self.clear(path)


@dataclass(frozen=True)
class CacheEntry:
    value: bytes
    expires: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MapCache(Cache):
    """
    In-memory cache backed by a dict.

    Every entry expires a fixed duration after it was stored. Expired entries
    are evicted lazily when read. There is no locking: concurrent writers may
    race, but entries are immutable and replaced wholesale.
    """

    def __init__(
        self,
        expiry: Union[timedelta, float, int],
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not isinstance(expiry, timedelta):
            expiry = timedelta(seconds=expiry)
        self.expiry = expiry
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def put(self, key: str, value: bytes) -> None:
        self._entries[key] = CacheEntry(value=bytes(value), expires=self._clock() + self.expiry)

    def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires <= self._clock():
            logger.debug(f"Cache entry for {key} expired")
            self.clear(key)
            return None
        return entry.value

    def clear(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear_path(self, path: str) -> None:
        for key in [k for k in self._entries if k == path or k.startswith(f"{path}?")]:
            self.clear(key)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
