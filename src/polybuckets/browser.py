from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta
from polybuckets.formatting import format_size
from polybuckets.interfaces import IBrowsingService
from polybuckets.models import StorageObject
from polybuckets.paths import cache_key
from polybuckets.paths import normalize_prefix
from zope.interface import implementer

import logging


logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=60)


@dataclass(frozen=True)
class ListingResult:
    objects: list
    hit: bool
    expiry: datetime | None
    ttl: timedelta

    @property
    def cached_at(self):
        if self.expiry is None:
            return None
        return self.expiry - self.ttl


def to_storage_objects(page, prefix):
    """Turn a raw listing into directory entries followed by file entries.

    The content entry whose key equals the prefix itself is the directory
    marker object and is not listed.
    """
    objects = [
        StorageObject(
            name=common_prefix,
            short_name=common_prefix.removeprefix(prefix),
            is_directory=True,
        )
        for common_prefix in page.common_prefixes
    ]
    for obj in page.contents:
        if obj.key == prefix:
            continue
        objects.append(
            StorageObject(
                name=obj.key,
                short_name=obj.key.removeprefix(prefix),
                is_directory=False,
                size=format_size(obj.size),
                last_modified=obj.last_modified,
            )
        )
    return objects


@implementer(IBrowsingService)
class BrowsingService:
    """Answers bucket and prefix listings, serving prefixes from the cache.

    Holds no state of its own. Concurrent misses on the same key may each
    reach the gateway; the last put wins.
    """

    def __init__(self, gateway, cache, ttl=DEFAULT_TTL):
        self.ttl = ttl
        self._gateway = gateway
        self._cache = cache

    def list_buckets(self):
        return self._gateway.list_buckets()

    def list_objects(self, bucket, prefix="", force_refresh=False):
        prefix = normalize_prefix(prefix)
        key = cache_key(bucket, prefix)
        try:
            if force_refresh:
                self._cache.invalidate(key)

            entry = self._cache.get(key)
            if entry is not None and entry.is_fresh(self._cache.now()):
                return ListingResult(
                    objects=to_storage_objects(entry.payload, prefix),
                    hit=True,
                    expiry=entry.expiry,
                    ttl=self.ttl,
                )

            page = self._gateway.list_objects(bucket, prefix, delimiter="/")
            self._cache.put(key, page, self.ttl)
            logger.debug("Cached listing for %s", key)
            return ListingResult(
                objects=to_storage_objects(page, prefix),
                hit=False,
                expiry=None,
                ttl=self.ttl,
            )
        finally:
            self._cache.request_sweep()

    def get_object(self, bucket, key):
        return self._gateway.get_object(bucket, key)

    def close(self):
        close_cache = getattr(self._cache, "close", None)
        if close_cache is not None:
            close_cache()
