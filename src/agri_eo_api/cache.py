"""In-process response cache with per-category expiry."""

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Payload = dict[str, Any]

KEY_PRECISION = 4
DEFAULT_AUTH_SLOT = "default"
CALLER_AUTH_SLOT = "caller"


def build_cache_key(
    category: str,
    lat: float,
    lon: float,
    date_value: date | str | None,
    resolution: str | int | None,
    *,
    caller_supplied: bool,
    variant: str | None = None,
) -> str:
    """Compose a deterministic cache key for one lookup.

    ``variant`` is appended only when set, for inputs that change the answer.
    """

    fmt = "{:." + str(KEY_PRECISION) + "f}"
    if isinstance(date_value, date):
        date_token = date_value.isoformat()
    else:
        date_token = date_value or "latest"
    auth_token = CALLER_AUTH_SLOT if caller_supplied else DEFAULT_AUTH_SLOT
    parts = [
        category,
        fmt.format(round(lat, KEY_PRECISION) + 0.0),
        fmt.format(round(lon, KEY_PRECISION) + 0.0),
        date_token,
        str(resolution if resolution is not None else "native"),
        auth_token,
    ]
    if variant:
        parts.append(variant)
    return "|".join(parts)


def category_of(key: str) -> str:
    return key.split("|", 1)[0]


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Payload
    fetched_at: float


class CacheStore(Protocol):
    """Get-if-fresh / put contract used by the gateway."""

    def get(self, key: str) -> Payload | None: ...

    def put(self, key: str, payload: Payload) -> None: ...

    def size(self) -> int: ...

    def clear(self) -> None: ...

    def stats(self) -> dict[str, Any]: ...


class InMemoryCacheStore:
    """Thread-safe map of cache entries.

    Stale entries are not swept; a read past the TTL is reported as a miss and
    the slot is overwritten by the next put. When ``max_entries`` is set the
    least recently used entry is evicted on overflow.
    """

    def __init__(
        self,
        *,
        default_ttl_seconds: float = 300.0,
        category_ttls: Mapping[str, float] | None = None,
        max_entries: int | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl_seconds
        self._category_ttls = dict(category_ttls or {})
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def ttl_for(self, key: str) -> float:
        return self._category_ttls.get(category_of(key), self._default_ttl)

    def get(self, key: str) -> Payload | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._clock() - entry.fetched_at >= self.ttl_for(key):
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return dict(entry.payload)

    def put(self, key: str, payload: Payload) -> None:
        entry = CacheEntry(key=key, payload=dict(payload), fetched_at=self._clock())
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("Evicted cache entry %s", evicted)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "maxEntries": self._max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "defaultTtlSeconds": self._default_ttl,
                "categoryTtlSeconds": dict(self._category_ttls),
            }
