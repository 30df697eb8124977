"""
Component wiring: one store handle, injected into everything that needs it.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.services.branding import BrandingService
from app.services.branding_cache import TenantResolutionCache
from app.services.branding_store import BrandingStore
from app.services.dns_verification import CnameVerifier, DnsCnameVerifier
from app.services.domain_lifecycle import DomainLifecycleManager
from app.services.tls_provisioning import LoggingTlsProvisioner, TlsProvisioner, WebhookTlsProvisioner

logger = logging.getLogger("branding")


@dataclass
class BrandingComponents:
    store: BrandingStore
    cache: TenantResolutionCache
    service: BrandingService
    domains: DomainLifecycleManager
    platform_hosts: frozenset
    tls: TlsProvisioner

    def close(self) -> None:
        if isinstance(self.tls, WebhookTlsProvisioner):
            self.tls.shutdown()


def build_components(
    session_factory: sessionmaker,
    settings: Settings,
    *,
    verifier: Optional[CnameVerifier] = None,
    tls: Optional[TlsProvisioner] = None,
    **lifecycle_overrides,
) -> BrandingComponents:
    store = BrandingStore(session_factory)
    cache = TenantResolutionCache(store, ttl_seconds=settings.BRANDING_CACHE_TTL_SECONDS)

    if verifier is None:
        verifier = DnsCnameVerifier(settings.dns_nameservers)
    if tls is None:
        if settings.TLS_PROVISIONING_WEBHOOK_URL:
            tls = WebhookTlsProvisioner(settings.TLS_PROVISIONING_WEBHOOK_URL)
        else:
            tls = LoggingTlsProvisioner()

    lifecycle_kwargs = dict(
        cname_base=settings.BRANDING_CNAME_BASE,
        verification_window=timedelta(hours=settings.DOMAIN_VERIFICATION_WINDOW_HOURS),
        verify_timeout=settings.DOMAIN_VERIFY_TIMEOUT_SECONDS,
        verify_attempts=settings.DOMAIN_VERIFY_ATTEMPTS,
        verify_interval=settings.DOMAIN_VERIFY_INTERVAL_SECONDS,
    )
    lifecycle_kwargs.update(lifecycle_overrides)
    domains = DomainLifecycleManager(store, cache, verifier, tls, **lifecycle_kwargs)
    service = BrandingService(store, cache, domains)

    logger.info(
        "Branding components ready (cache TTL %.0fs, CNAME base %s, TLS %s)",
        settings.BRANDING_CACHE_TTL_SECONDS, settings.BRANDING_CNAME_BASE, type(tls).__name__,
    )
    return BrandingComponents(
        store=store,
        cache=cache,
        service=service,
        domains=domains,
        platform_hosts=frozenset(settings.platform_hosts),
        tls=tls,
    )
