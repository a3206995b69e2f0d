"""
Time-bounded in-memory cache of decrypted data keys.

Entries are evicted lazily: an expired entry is only removed when it is next
looked up. An expiry of 0 never expires.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .crypto import SecureKey

DEFAULT_DATA_KEY_TTL: float = 15 * 60.0

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    """Decrypted data key and the monotonic time it stops being valid."""

    key: SecureKey
    expiry: float

    def is_valid(self, now: float) -> bool:
        return self.expiry == 0 or now < self.expiry


class DataKeyCache:
    """
    Data key name -> decrypted key bytes.

    All access to the underlying dict happens under a lock, so the cache can
    be shared between event loop tasks and threads. Concurrent misses for the
    same name may both fill the entry; the last writer wins and both values
    are the same key.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_DATA_KEY_TTL,
        clock: Clock = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, name: str) -> Optional[bytes]:
        """Return cached plaintext for ``name``, evicting it if expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                return None
            if not entry.is_valid(now):
                del self._entries[name]
                return None
            return entry.key.as_bytes()

    def put(self, name: str, plaintext: bytes, ttl: Optional[float] = None) -> None:
        """Store ``plaintext`` for ``name`` until now + ttl."""
        ttl = self._ttl if ttl is None else ttl
        entry = CacheEntry(key=SecureKey(plaintext), expiry=self._clock() + ttl)
        with self._lock:
            self._entries[name] = entry

    def remove(self, name: str) -> bool:
        with self._lock:
            return self._entries.pop(name, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
