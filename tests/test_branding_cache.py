"""
Tenant Resolution Cache Tests
測試 TTL、雙索引預熱、single-flight 與失效後不讀到舊資料
"""
import threading
import time

import pytest

from app.core.exceptions import UpstreamError
from app.models.branding import DomainStatus
from app.schemas.branding import BrandingConfigRead
from app.services.branding_cache import TenantResolutionCache


def _config(tenant_id="tenant-a", domain="shop.example.com", enabled=True,
            status=DomainStatus.ACTIVE, **fields) -> BrandingConfigRead:
    return BrandingConfigRead(
        tenant_id=tenant_id,
        enabled=enabled,
        custom_domain=domain,
        domain_status=status if domain else DomainStatus.NONE,
        **fields,
    )


class FakeStore:
    """In-memory store that counts queries and can hold a load open."""

    def __init__(self, *configs):
        self.rows = {c.tenant_id: c for c in configs}
        self.domain_calls = 0
        self.tenant_calls = 0
        self.gate = None
        self.entered = threading.Event()
        self.error = None

    def _wait(self):
        self.entered.set()
        if self.gate is not None:
            assert self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error

    def get_by_domain(self, domain):
        self.domain_calls += 1
        snapshot = dict(self.rows)
        self._wait()
        for row in snapshot.values():
            if row.custom_domain == domain and row.publicly_resolvable:
                return row
        return None

    def get_by_tenant(self, tenant_id):
        self.tenant_calls += 1
        row = self.rows.get(tenant_id)
        self._wait()
        return row


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


def test_hit_after_miss_costs_one_query(clock):
    store = FakeStore(_config())
    cache = TenantResolutionCache(store, ttl_seconds=300, clock=clock)

    assert cache.resolve_by_domain("shop.example.com").tenant_id == "tenant-a"
    assert cache.resolve_by_domain("SHOP.example.com:443").tenant_id == "tenant-a"
    assert store.domain_calls == 1


def test_negative_results_are_cached(clock):
    store = FakeStore()
    cache = TenantResolutionCache(store, clock=clock)

    assert cache.resolve_by_domain("unknown.example.com") is None
    assert cache.resolve_by_domain("unknown.example.com") is None
    assert store.domain_calls == 1


def test_empty_host_never_reaches_store(clock):
    store = FakeStore()
    cache = TenantResolutionCache(store, clock=clock)

    assert cache.resolve_by_domain("   ") is None
    assert store.domain_calls == 0


def test_entry_not_served_after_ttl(clock):
    store = FakeStore(_config(brand_name="v1"))
    cache = TenantResolutionCache(store, ttl_seconds=300, clock=clock)

    assert cache.resolve_by_domain("shop.example.com").brand_name == "v1"
    store.rows["tenant-a"] = _config(brand_name="v2")

    clock.now += 299.9
    assert cache.resolve_by_domain("shop.example.com").brand_name == "v1"

    clock.now += 0.1
    assert cache.resolve_by_domain("shop.example.com").brand_name == "v2"
    assert store.domain_calls == 2


def test_domain_hit_primes_tenant_index(clock):
    store = FakeStore(_config())
    cache = TenantResolutionCache(store, clock=clock)

    cache.resolve_by_domain("shop.example.com")
    assert cache.resolve_by_tenant("tenant-a").custom_domain == "shop.example.com"
    assert store.tenant_calls == 0


def test_tenant_hit_primes_domain_only_when_publicly_resolvable(clock):
    store = FakeStore(
        _config("tenant-a", "a.example.com"),
        _config("tenant-b", "b.example.com", enabled=False),
    )
    cache = TenantResolutionCache(store, clock=clock)

    cache.resolve_by_tenant("tenant-a")
    cache.resolve_by_tenant("tenant-b")
    assert cache.resolve_by_domain("a.example.com").tenant_id == "tenant-a"
    assert cache.resolve_by_domain("b.example.com") is None
    assert store.domain_calls == 1  # only b.example.com went to the store


def test_disabled_config_not_resolvable_by_domain_but_by_tenant(clock):
    store = FakeStore(_config(enabled=False))
    cache = TenantResolutionCache(store, clock=clock)

    assert cache.resolve_by_domain("shop.example.com") is None
    full = cache.resolve_by_tenant("tenant-a")
    assert full is not None and full.enabled is False


def test_invalidate_binding_drops_both_indexes(clock):
    store = FakeStore(_config(brand_name="v1"))
    cache = TenantResolutionCache(store, clock=clock)
    cache.resolve_by_domain("shop.example.com")

    store.rows["tenant-a"] = _config(brand_name="v2")
    cache.invalidate_binding("tenant-a", "shop.example.com")

    assert cache.resolve_by_domain("shop.example.com").brand_name == "v2"
    assert cache.resolve_by_tenant("tenant-a").brand_name == "v2"


def test_invalidate_domain_drops_owner_tenant_entry(clock):
    store = FakeStore(_config(brand_name="v1"))
    cache = TenantResolutionCache(store, clock=clock)
    cache.resolve_by_domain("shop.example.com")

    store.rows["tenant-a"] = _config(brand_name="v2")
    cache.invalidate_domain("https://shop.example.com/")

    assert cache.resolve_by_tenant("tenant-a").brand_name == "v2"


def test_invalidate_tenant_drops_domain_entries_primed_from_it(clock):
    store = FakeStore(_config(brand_name="v1"))
    cache = TenantResolutionCache(store, clock=clock)
    cache.resolve_by_tenant("tenant-a")

    store.rows["tenant-a"] = _config(brand_name="v2")
    cache.invalidate_tenant("tenant-a")

    assert cache.resolve_by_domain("shop.example.com").brand_name == "v2"


def test_single_flight_concurrent_misses(clock):
    store = FakeStore(_config())
    store.gate = threading.Event()
    cache = TenantResolutionCache(store, clock=clock)
    results = []

    def lookup():
        results.append(cache.resolve_by_domain("shop.example.com"))

    threads = [threading.Thread(target=lookup) for _ in range(20)]
    for t in threads:
        t.start()
    assert store.entered.wait(timeout=5)
    time.sleep(0.1)  # let the followers pile up on the in-flight load
    store.gate.set()
    for t in threads:
        t.join(timeout=5)

    assert store.domain_calls == 1
    assert len(results) == 20
    assert all(r is not None and r.tenant_id == "tenant-a" for r in results)


def test_loader_error_reaches_all_waiters_and_is_not_cached(clock):
    store = FakeStore(_config())
    store.gate = threading.Event()
    store.error = UpstreamError("down", operation="get_by_domain", key="shop.example.com")
    cache = TenantResolutionCache(store, clock=clock)
    errors = []

    def lookup():
        try:
            cache.resolve_by_domain("shop.example.com")
        except UpstreamError as e:
            errors.append(e)

    threads = [threading.Thread(target=lookup) for _ in range(5)]
    for t in threads:
        t.start()
    assert store.entered.wait(timeout=5)
    time.sleep(0.1)
    store.gate.set()
    for t in threads:
        t.join(timeout=5)

    assert len(errors) == 5
    store.error = None
    calls = store.domain_calls
    assert cache.resolve_by_domain("shop.example.com").tenant_id == "tenant-a"
    assert store.domain_calls == calls + 1


def test_load_started_before_write_does_not_populate(clock):
    """A read that began before an invalidation must not cache the pre-write value."""
    store = FakeStore(_config(brand_name="old"))
    store.gate = threading.Event()
    cache = TenantResolutionCache(store, clock=clock)
    seen = []

    reader = threading.Thread(target=lambda: seen.append(cache.resolve_by_tenant("tenant-a")))
    reader.start()
    assert store.entered.wait(timeout=5)

    # Write completes while the read is still in flight
    store.rows["tenant-a"] = _config(brand_name="new")
    cache.invalidate_binding("tenant-a", "shop.example.com")
    store.gate.set()
    reader.join(timeout=5)

    assert seen[0].brand_name == "old"  # the in-flight caller sees its own read
    assert cache.resolve_by_tenant("tenant-a").brand_name == "new"
    assert cache.resolve_by_domain("shop.example.com").brand_name == "new"


def test_clear_and_stats(clock):
    store = FakeStore(_config())
    cache = TenantResolutionCache(store, ttl_seconds=60, clock=clock)
    cache.resolve_by_domain("shop.example.com")

    stats = cache.stats()
    assert stats["domains"] == 1 and stats["tenants"] == 1
    assert stats["ttl_seconds"] == 60

    cache.clear()
    assert cache.stats()["domains"] == 0
    cache.resolve_by_domain("shop.example.com")
    assert store.domain_calls == 2
