from zope.interface import Attribute
from zope.interface import Interface


class IStorageGateway(Interface):
    """Abstraction over S3-compatible object storage."""

    def list_buckets():
        """Return a list of BucketRecord."""

    def list_objects(bucket, prefix, delimiter="/"):
        """Return a ListingPage for one delimiter level under prefix."""

    def get_object(bucket, key):
        """Return a readable byte stream for the object body."""


class IListingCache(Interface):
    """In-memory TTL cache of raw listings keyed by ``bucket/prefix``."""

    def now():
        """Return the current time of the cache clock."""

    def get(key):
        """Return the CacheEntry for key, fresh or stale, or None."""

    def put(key, payload, ttl):
        """Store payload under key, expiring ttl from now."""

    def invalidate(key):
        """Drop the entry for key if present."""

    def sweep(now=None):
        """Remove entries that expired before now."""

    def request_sweep():
        """Start a background sweep unless one ran recently."""


class IBrowsingService(Interface):
    """Answers bucket and prefix listings through the cache."""

    ttl = Attribute("Lifetime of a cached listing (timedelta)")

    def list_buckets():
        """Return a list of BucketRecord."""

    def list_objects(bucket, prefix="", force_refresh=False):
        """Return a ListingResult for prefix in bucket."""

    def get_object(bucket, key):
        """Return a readable byte stream for the object body."""
