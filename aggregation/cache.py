import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class CacheEntry:
    fingerprint: str
    value: Any
    stored_at_ms: float
    ttl_ms: int

    def is_fresh(self, now_ms: float) -> bool:
        return now_ms - self.stored_at_ms <= self.ttl_ms


class CacheStore:
    """In-memory TTL store for canonical results of one provider domain.

    Expiry is lazy: a stale entry is reported as absent on read but stays in
    the map until the same fingerprint is set again or the store is cleared.
    Mutation only happens on the event loop thread, so there is no lock.
    """

    def __init__(self, domain: str, clock: Callable[[], float] = monotonic_ms):
        self.domain = domain
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get_if_fresh(self, fingerprint: str) -> Optional[Any]:
        """Return the stored value, or None when missing or past its TTL."""
        entry = self._entries.get(fingerprint)
        if entry is None or not entry.is_fresh(self._clock()):
            return None
        return entry.value

    def get_entry(self, fingerprint: str) -> Optional[CacheEntry]:
        return self._entries.get(fingerprint)

    def set(self, fingerprint: str, value: Any, ttl_ms: int) -> CacheEntry:
        """Store value under fingerprint, replacing any previous entry."""
        entry = CacheEntry(
            fingerprint=fingerprint,
            value=value,
            stored_at_ms=self._clock(),
            ttl_ms=int(ttl_ms),
        )
        self._entries[fingerprint] = entry
        return entry

    def clear(self) -> int:
        """Drop every entry. Returns how many were held."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        fresh = sum(1 for entry in self._entries.values() if entry.is_fresh(now))
        return {
            "domain": self.domain,
            "entries": len(self._entries),
            "fresh": fresh,
            "stale": len(self._entries) - fresh,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: str) -> bool:
        return fingerprint in self._entries
