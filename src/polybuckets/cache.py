from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from polybuckets.interfaces import IListingCache
from zope.interface import implementer

import logging
import threading


logger = logging.getLogger(__name__)


def utcnow():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: object
    expiry: datetime

    def is_fresh(self, now):
        return self.expiry > now


@implementer(IListingCache)
class ListingCache:
    """In-memory TTL cache for object listings.

    Entries are keyed by ``{bucket}/{prefix}``. Reads never evict: a stale
    entry stays visible through get() until a sweep removes it, so callers
    decide hit or miss themselves. Background sweeps run on a daemon
    thread, one at a time and at most once per sweep_interval.
    """

    def __init__(self, clock=utcnow, sweep_interval=timedelta(seconds=60)):
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()
        self._sweeper_thread = None
        self._last_sweep = None
        self._closed = False

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def __contains__(self, key):
        with self._lock:
            return key in self._entries

    def now(self):
        return self._clock()

    def get(self, key):
        with self._lock:
            return self._entries.get(key)

    def put(self, key, payload, ttl):
        entry = CacheEntry(key=key, payload=payload, expiry=self._clock() + ttl)
        with self._lock:
            self._entries[key] = entry
        return entry

    def invalidate(self, key):
        with self._lock:
            removed = self._entries.pop(key, None)
        if removed is not None:
            logger.debug("Invalidated listing cache entry %s", key)

    def sweep(self, now=None):
        """Remove entries whose expiry is strictly before now."""
        if now is None:
            now = self._clock()
        with self._lock:
            expired = [
                key for key, entry in self._entries.items() if entry.expiry < now
            ]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Swept %d expired listing cache entries", len(expired))
        return len(expired)

    def request_sweep(self):
        """Start a background sweep if none is running and none ran recently."""
        now = self._clock()
        with self._lock:
            if self._closed:
                return False
            if self._sweeper_thread is not None and self._sweeper_thread.is_alive():
                return False
            if (
                self._last_sweep is not None
                and now - self._last_sweep < self.sweep_interval
            ):
                return False
            self._last_sweep = now
            t = threading.Thread(
                target=self._background_sweep,
                args=(now,),
                name="listing-cache-sweep",
                daemon=True,
            )
            self._sweeper_thread = t
            t.start()
        return True

    def _background_sweep(self, now):
        try:
            self.sweep(now)
        except Exception:
            logger.exception("Error during listing cache sweep")

    def wait_for_sweep(self, timeout=10):
        """Wait for a running background sweep to finish."""
        with self._lock:
            t = self._sweeper_thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=timeout)

    def close(self):
        with self._lock:
            self._closed = True
        self.wait_for_sweep()
