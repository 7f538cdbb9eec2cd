from datetime import timedelta
from polybuckets.cache import CacheEntry
from polybuckets.cache import ListingCache
from polybuckets.interfaces import IListingCache
from polybuckets.models import ListingPage

import pytest
import threading


TTL = timedelta(minutes=60)


@pytest.fixture
def cache(clock):
    c = ListingCache(clock=clock, sweep_interval=timedelta(seconds=60))
    yield c
    c.close()


def _page(*keys):
    return ListingPage(common_prefixes=tuple(keys))


class TestInterface:
    def test_interface_provided(self, cache):
        assert IListingCache.providedBy(cache)


class TestGetPut:
    def test_get_missing_returns_none(self, cache):
        assert cache.get("bucket/") is None

    def test_put_and_get_roundtrip(self, cache, clock):
        payload = _page("a/")
        cache.put("bucket/", payload, TTL)

        entry = cache.get("bucket/")
        assert isinstance(entry, CacheEntry)
        assert entry.payload is payload
        assert entry.key == "bucket/"
        assert entry.expiry == clock() + TTL
        assert entry.expiry > clock()
        assert entry.is_fresh(clock())

    def test_put_returns_entry(self, cache, clock):
        entry = cache.put("bucket/", _page(), TTL)
        assert entry.expiry == clock() + TTL

    def test_put_overwrites(self, cache, clock):
        cache.put("bucket/", _page("old/"), TTL)
        clock.advance(minutes=10)
        cache.put("bucket/", _page("new/"), TTL)

        entry = cache.get("bucket/")
        assert entry.payload.common_prefixes == ("new/",)
        assert entry.expiry == clock() + TTL
        assert len(cache) == 1

    def test_stale_entry_is_still_returned(self, cache, clock):
        cache.put("bucket/", _page("a/"), TTL)
        clock.advance(minutes=61)

        entry = cache.get("bucket/")
        assert entry is not None
        assert not entry.is_fresh(clock())

    def test_entry_at_expiry_is_not_fresh(self, cache, clock):
        cache.put("bucket/", _page(), TTL)
        clock.advance(minutes=60)
        assert not cache.get("bucket/").is_fresh(clock())

    def test_entries_are_immutable(self, cache):
        entry = cache.put("bucket/", _page(), TTL)
        with pytest.raises(AttributeError):
            entry.expiry = None


class TestInvalidate:
    def test_invalidate_removes_entry(self, cache):
        cache.put("bucket/a/", _page(), TTL)
        cache.invalidate("bucket/a/")
        assert cache.get("bucket/a/") is None
        assert "bucket/a/" not in cache

    def test_invalidate_missing_is_noop(self, cache):
        cache.invalidate("bucket/nothing/")
        assert len(cache) == 0

    def test_invalidate_leaves_other_keys(self, cache):
        cache.put("bucket/a/", _page(), TTL)
        cache.put("bucket/b/", _page(), TTL)
        cache.invalidate("bucket/a/")
        assert "bucket/b/" in cache


class TestSweep:
    def test_sweep_removes_exactly_expired(self, cache, clock):
        cache.put("bucket/short/", _page(), timedelta(minutes=1))
        cache.put("bucket/exact/", _page(), timedelta(minutes=5))
        cache.put("bucket/long/", _page(), timedelta(minutes=10))
        clock.advance(minutes=5)

        removed = cache.sweep(clock())

        assert removed == 1
        assert "bucket/short/" not in cache
        # expiry == now is not strictly before now
        assert "bucket/exact/" in cache
        assert "bucket/long/" in cache

    def test_sweep_defaults_to_clock(self, cache, clock):
        cache.put("bucket/", _page(), TTL)
        clock.advance(hours=2)
        assert cache.sweep() == 1
        assert len(cache) == 0

    def test_sweep_with_nothing_expired(self, cache, clock):
        cache.put("bucket/", _page(), TTL)
        assert cache.sweep(clock()) == 0
        assert "bucket/" in cache


class TestBackgroundSweep:
    def test_request_sweep_removes_expired(self, cache, clock):
        cache.put("bucket/old/", _page(), timedelta(minutes=1))
        cache.put("bucket/new/", _page(), TTL)
        clock.advance(minutes=2)

        assert cache.request_sweep() is True
        cache.wait_for_sweep()

        assert "bucket/old/" not in cache
        assert "bucket/new/" in cache

    def test_request_sweep_is_throttled(self, cache, clock):
        assert cache.request_sweep() is True
        cache.wait_for_sweep()
        assert cache.request_sweep() is False

        clock.advance(seconds=61)
        assert cache.request_sweep() is True
        cache.wait_for_sweep()

    def test_no_sweep_after_close(self, cache):
        cache.close()
        assert cache.request_sweep() is False

    def test_close_idempotent(self, cache):
        cache.close()
        cache.close()

    def test_wait_without_sweep(self, cache):
        cache.wait_for_sweep()


class TestConcurrency:
    def test_concurrent_access(self, clock):
        """Puts, gets, invalidations and sweeps from many threads."""
        cache = ListingCache(clock=clock, sweep_interval=timedelta(0))
        errors = []

        def worker(thread_id):
            try:
                for i in range(50):
                    key = f"bucket/{thread_id}/{i % 5}/"
                    cache.put(key, _page(), TTL)
                    cache.get(key)
                    if i % 7 == 0:
                        cache.invalidate(key)
                    cache.request_sweep()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(t,)) for t in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        cache.close()

        assert errors == [], f"Errors in threads: {errors}"
        assert len(cache) <= 8 * 5
