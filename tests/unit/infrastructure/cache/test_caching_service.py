from pathlib import Path

from ocilaunch.domain.interfaces.cache import NullCache
from ocilaunch.domain.models.common import CacheKey
from ocilaunch.infrastructure.cache.caching_service import DiskCachingService

KEY = CacheKey("getAvailabilityDomains")


def test_get_returns_none_on_miss(disk_cache):
    service = DiskCachingService("unused", disk_cache=disk_cache)
    assert service.get(KEY) is None


def test_add_then_get(disk_cache):
    service = DiskCachingService("unused", disk_cache=disk_cache)
    domains = [{"name": "FeVO:EU-FRANKFURT-1-AD-1"}]

    service.add(domains, KEY)

    assert service.get(KEY) == domains


def test_values_persist_across_instances(tmp_path: Path):
    first = DiskCachingService(tmp_path / "lookups")
    first.add(["ad-1"], KEY)
    first.disk_cache.close()

    second = DiskCachingService(tmp_path / "lookups")
    try:
        assert second.get(KEY) == ["ad-1"]
    finally:
        second.disk_cache.close()


def test_null_cache_never_stores():
    cache = NullCache()
    cache.add("value", KEY)
    assert cache.get(KEY) is None
