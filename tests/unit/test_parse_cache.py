"""ParseCache unit tests.

메모리/파일 이중 캐시, 리비전 기반 키, TTL 만료, 통계를 확인합니다.
"""

from proposaliq.services.cache import ParseCache


class TestMakeKey:
    def test_revision_changes_key(self):
        first = ParseCache.make_key("p1", "2024-01-01T00:00:00")
        second = ParseCache.make_key("p1", "2024-01-02T00:00:00")
        assert first != second
        assert first.startswith("proposal_p1_")

    def test_same_revision_same_key(self):
        assert ParseCache.make_key("p1", "r") == ParseCache.make_key("p1", "r")


class TestParseCache:
    def test_set_then_get_hits_memory(self, parse_cache):
        parse_cache.set("k", {"value": 1})
        assert parse_cache.get("k") == {"value": 1}
        assert parse_cache.stats.hits == 1

    def test_miss_is_counted(self, parse_cache):
        assert parse_cache.get("missing") is None
        assert parse_cache.stats.misses == 1

    def test_file_cache_survives_new_instance(self, settings, tmp_path):
        first = ParseCache(cache_dir=tmp_path / "c", ttl_hours=1)
        first.set("k", {"sections": ["a"]})

        second = ParseCache(cache_dir=tmp_path / "c", ttl_hours=1)
        assert second.get("k") == {"sections": ["a"]}

    def test_expired_entry_is_evicted(self, parse_cache):
        parse_cache.set("k", {"value": 1}, ttl_hours=0)
        assert parse_cache.get("k") is None
        assert parse_cache.stats.evictions >= 1

    def test_invalidate_proposal_removes_all_revisions(self, parse_cache):
        parse_cache.set(ParseCache.make_key("p1", "a"), {"v": 1})
        parse_cache.set(ParseCache.make_key("p1", "b"), {"v": 2})
        parse_cache.set(ParseCache.make_key("p2", "a"), {"v": 3})

        assert parse_cache.invalidate_proposal("p1") > 0
        assert parse_cache.get(ParseCache.make_key("p1", "a")) is None
        assert parse_cache.get(ParseCache.make_key("p2", "a")) == {"v": 3}

    def test_stats_summary(self, parse_cache):
        parse_cache.set("k", 1)
        parse_cache.get("k")
        parse_cache.get("nope")
        summary = parse_cache.get_stats_summary()
        assert summary["hits"] == 1
        assert summary["misses"] == 1
        assert summary["hit_rate"] == 0.5
