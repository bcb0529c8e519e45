"""Unit tests for the deduplicating hash batch cache."""

from __future__ import annotations

import pytest

from repgen.core.curation.cache import HashBatchCache


class TestHashBatchCache:
    def test_deduplicates_hashes(self):
        cache: HashBatchCache[str] = HashBatchCache(batch_size=10)
        cache.add("h1", "g1")
        cache.add("h1", "g2")
        cache.add("h2", "g3")
        assert len(cache) == 2
        assert cache.owners("h1") == ["g1", "g2"]
        assert "h2" in cache
        assert cache.pending == ["h1", "h2"]

    def test_is_full(self):
        cache: HashBatchCache[str] = HashBatchCache(batch_size=2)
        cache.add("h1", "g1")
        cache.add("h1", "g2")
        assert not cache.is_full
        cache.add("h2", "g3")
        assert cache.is_full

    def test_unbounded_never_full(self):
        cache: HashBatchCache[int] = HashBatchCache()
        for i in range(1000):
            cache.add(f"h{i}", i)
        assert not cache.is_full

    def test_flush_applies_to_every_owner(self):
        cache: HashBatchCache[str] = HashBatchCache(batch_size=10)
        cache.add("h1", "g1")
        cache.add("h1", "g2")
        cache.add("h2", "g3")
        requests = []

        def fetch(md5s):
            requests.append(list(md5s))
            return {"h1": "ACGT"}

        received = {}
        applied = cache.flush(fetch, received.__setitem__)
        assert applied == 2
        assert received == {"g1": "ACGT", "g2": "ACGT"}
        assert requests == [["h1", "h2"]]
        assert len(cache) == 0

    def test_empty_flush_does_not_fetch(self):
        cache: HashBatchCache[str] = HashBatchCache()

        def fetch(md5s):
            raise AssertionError("fetch called")

        assert cache.flush(fetch, lambda owner, seq: None) == 0

    def test_failed_fetch_keeps_pending(self):
        cache: HashBatchCache[str] = HashBatchCache()
        cache.add("h1", "g1")

        def fetch(md5s):
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            cache.flush(fetch, lambda owner, seq: None)
        assert cache.pending == ["h1"]
