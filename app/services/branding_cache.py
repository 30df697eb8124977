"""
Tenant Resolution Cache

In-memory, TTL-bounded, read-through cache in front of the BrandingStore,
keyed two ways: normalized domain → config and tenant id → config. A load
for either key primes both maps, since one config carries both keys.

Concurrency model:
  - one lock guards only O(1) dict operations; it is never held across a
    store round trip
  - concurrent misses for the same key share one in-flight Future
    (single-flight), so a burst of first requests costs one query
  - every invalidation advances an epoch and detaches the in-flight load for
    the invalidated key; a load only populates the cache if the epoch has
    not moved since it began, so a load that started before a write cannot
    repopulate the cache with the pre-write value
"""
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from app.middleware.metrics import CACHE_LOADS, CACHE_LOOKUPS
from app.schemas.branding import BrandingConfigRead
from app.services.branding_store import BrandingStore
from app.services.domain_normalizer import normalize

logger = logging.getLogger("branding.cache")

DEFAULT_TTL_SECONDS = 300.0   # 5 分鐘

DOMAIN = "domain"
TENANT = "tenant"

_Key = Tuple[str, str]


@dataclass(frozen=True)
class CacheEntry:
    value: Optional[BrandingConfigRead]
    expires_at: float


class TenantResolutionCache:
    def __init__(
        self,
        store: BrandingStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        load_timeout: Optional[float] = None,
    ):
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock
        self._load_timeout = load_timeout
        self._lock = threading.Lock()
        self._by_domain: Dict[str, CacheEntry] = {}
        self._by_tenant: Dict[str, CacheEntry] = {}
        self._inflight: Dict[_Key, Future] = {}
        self._epoch = 0

    # ═══════════════════════════════════════════
    #  Lookups
    # ═══════════════════════════════════════════

    def resolve_by_domain(self, domain: str) -> Optional[BrandingConfigRead]:
        """Publicly resolvable config bound to ``domain`` (enabled + ACTIVE)."""
        key = normalize(domain)
        if not key:
            return None
        return self._resolve((DOMAIN, key), self._store.get_by_domain)

    def resolve_by_tenant(self, tenant_id: str) -> Optional[BrandingConfigRead]:
        """The tenant's own config, regardless of ``enabled``."""
        return self._resolve((TENANT, tenant_id), self._store.get_by_tenant)

    def _resolve(self, key: _Key, loader: Callable[[str], Optional[BrandingConfigRead]]):
        index, ident = key
        with self._lock:
            entries = self._map(index)
            entry = entries.get(ident)
            if entry is not None:
                if self._clock() < entry.expires_at:
                    CACHE_LOOKUPS.labels(index=index, result="hit").inc()
                    return entry.value
                del entries[ident]

            CACHE_LOOKUPS.labels(index=index, result="miss").inc()
            flight = self._inflight.get(key)
            leader = flight is None
            if leader:
                flight = Future()
                self._inflight[key] = flight
                epoch = self._epoch

        if not leader:
            # 同一 key 已有載入中的請求，等待其結果
            return flight.result(timeout=self._load_timeout)

        try:
            value = loader(ident)
        except BaseException as e:
            CACHE_LOADS.labels(index=index, outcome="error").inc()
            with self._lock:
                if self._inflight.get(key) is flight:
                    del self._inflight[key]
            flight.set_exception(e)
            logger.warning("Branding load failed for %s %s: %s", index, ident, e)
            raise

        CACHE_LOADS.labels(index=index, outcome="ok").inc()
        with self._lock:
            if self._inflight.get(key) is flight:
                del self._inflight[key]
            if self._epoch == epoch:
                self._populate(key, value)
            else:
                logger.debug("Discarding stale load for %s %s", index, ident)
        flight.set_result(value)
        return value

    def _populate(self, key: _Key, value: Optional[BrandingConfigRead]) -> None:
        """Store ``value`` under ``key`` and prime the other index. Lock held."""
        index, ident = key
        entry = CacheEntry(value=value, expires_at=self._clock() + self._ttl)
        self._map(index)[ident] = entry
        if value is None:
            return
        if index == DOMAIN:
            # A domain hit is the tenant's full record
            self._by_tenant[value.tenant_id] = entry
        elif value.publicly_resolvable:
            self._by_domain[value.custom_domain] = entry

    def _map(self, index: str) -> Dict[str, CacheEntry]:
        return self._by_domain if index == DOMAIN else self._by_tenant

    # ═══════════════════════════════════════════
    #  Invalidation
    # ═══════════════════════════════════════════

    def invalidate_tenant(self, tenant_id: str) -> None:
        with self._lock:
            self._invalidate_locked((TENANT, tenant_id))

    def invalidate_domain(self, domain: str) -> None:
        key = normalize(domain)
        with self._lock:
            self._invalidate_locked((DOMAIN, key))

    def invalidate_binding(self, tenant_id: str, *domains: Optional[str]) -> None:
        """Invalidate a tenant and every domain it was or is bound to, atomically."""
        with self._lock:
            self._invalidate_locked((TENANT, tenant_id))
            for domain in domains:
                if domain:
                    self._invalidate_locked((DOMAIN, normalize(domain)))
        logger.debug("Invalidated branding cache for tenant %s domains %s", tenant_id, domains)

    def _invalidate_locked(self, key: _Key) -> None:
        index, ident = key
        removed = self._map(index).pop(ident, None)
        self._epoch += 1
        # Later callers must not join a load that began before this write
        self._inflight.pop(key, None)
        if index == DOMAIN:
            if removed is not None and removed.value is not None:
                # The owner's tenant entry may have been primed from this domain
                self._by_tenant.pop(removed.value.tenant_id, None)
        else:
            # Domain entries primed from this tenant's record go too
            stale = [d for d, e in self._by_domain.items()
                     if e.value is not None and e.value.tenant_id == ident]
            for d in stale:
                del self._by_domain[d]

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._by_domain.clear()
            self._by_tenant.clear()
            self._inflight.clear()

    def stats(self) -> dict:
        with self._lock:
            return {
                "domains": len(self._by_domain),
                "tenants": len(self._by_tenant),
                "inflight": len(self._inflight),
                "ttl_seconds": self._ttl,
            }
