"""
Custom Domain Lifecycle

State machine for a tenant's custom domain:

    NONE ──set_domain──▶ PENDING ──verify_domain──▶ ACTIVE
                           │  ▲
                           │  └──── set_domain ──── FAILED / ACTIVE
                           └──(window expired)──▶ FAILED

The PENDING state and its verification record live in the store, never in
memory, so verification can be retried after a restart. Every transition
invalidates the resolution cache for the tenant and for the old and new
domain before returning.
"""
import hashlib
import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from tenacity import Retrying, retry_if_result, stop_after_attempt, stop_after_delay, wait_fixed

from app.core.exceptions import NotFoundError, ValidationError
from app.logging_config import log_context
from app.models.branding import DomainStatus
from app.schemas.branding import BrandingConfigRead, BrandingWrite, DomainStatusResult, DomainVerificationRecord
from app.services.branding_cache import TenantResolutionCache
from app.services.branding_store import BrandingStore
from app.services.dns_verification import CnameVerifier
from app.services.domain_normalizer import normalize
from app.services.tls_provisioning import TlsProvisioner

logger = logging.getLogger("branding.domain")

_HOSTNAME = re.compile(
    r"^(?=.{4,253}$)(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z0-9-]{2,63}$"
)
_SLUG_STRIP = re.compile(r"[^a-z0-9-]+")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DomainLifecycleManager:
    def __init__(
        self,
        store: BrandingStore,
        cache: TenantResolutionCache,
        verifier: CnameVerifier,
        tls_provisioner: TlsProvisioner,
        *,
        cname_base: str,
        verification_window: timedelta = timedelta(hours=72),
        verify_timeout: float = 10.0,
        verify_attempts: int = 3,
        verify_interval: float = 1.0,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._store = store
        self._cache = cache
        self._verifier = verifier
        self._tls = tls_provisioner
        self.cname_base = cname_base.strip().rstrip(".").lower()
        self.verification_window = verification_window
        self.verify_timeout = verify_timeout
        self.verify_attempts = max(1, verify_attempts)
        self.verify_interval = verify_interval
        self._clock = clock
        self._sleep = sleep

    # ═══════════════════════════════════════════
    #  Helpers
    # ═══════════════════════════════════════════

    def expected_target(self, tenant_id: str) -> str:
        """Deterministic CNAME target for a tenant, e.g. ``<tenant>.branding-proxy.example``."""
        slug = _SLUG_STRIP.sub("-", tenant_id.lower()).strip("-")
        if not slug or len(slug) > 63:
            slug = hashlib.sha256(tenant_id.encode()).hexdigest()[:32]
        return f"{slug}.{self.cname_base}"

    def validate_domain(self, raw: Optional[str]) -> str:
        if raw is None or not raw.strip():
            raise ValidationError("Custom domain must not be empty")
        domain = normalize(raw)
        if not _HOSTNAME.match(domain):
            raise ValidationError(f"Invalid domain format: {raw.strip()}")
        if domain == self.cname_base or domain.endswith("." + self.cname_base):
            raise ValidationError(f"Domains under {self.cname_base} cannot be used as custom domains")
        return domain

    def prepare_binding(self, tenant_id: str, raw_domain: Optional[str]) -> DomainVerificationRecord:
        """Validate and normalize ``raw_domain`` and build a fresh verification record."""
        domain = self.validate_domain(raw_domain)
        now = self._clock()
        return DomainVerificationRecord(
            expected_host=domain,
            expected_value=self.expected_target(tenant_id),
            record_type="CNAME",
            requested_at=now,
            expires_at=now + self.verification_window,
        )

    def invalidate(self, tenant_id: str, write: BrandingWrite) -> None:
        self._cache.invalidate_binding(tenant_id, *write.touched_domains())

    @staticmethod
    def _result(tenant_id: str, snap: Optional[BrandingConfigRead], message: str = "") -> DomainStatusResult:
        if snap is None:
            return DomainStatusResult(tenant_id=tenant_id, message=message)
        return DomainStatusResult(
            tenant_id=tenant_id,
            custom_domain=snap.custom_domain,
            domain_status=snap.domain_status,
            record=snap.verification_record,
            message=message,
        )

    # ═══════════════════════════════════════════
    #  Transitions
    # ═══════════════════════════════════════════

    def set_domain(self, tenant_id: str, raw_domain: Optional[str]) -> DomainVerificationRecord:
        """Bind a domain (→ PENDING) and return the CNAME record to publish.

        Raises ValidationError for empty / malformed input and ConflictError
        when another tenant holds the domain. Re-binding the tenant's own
        ACTIVE domain leaves it ACTIVE.
        """
        binding = self.prepare_binding(tenant_id, raw_domain)
        write = self._store.upsert(tenant_id, {}, binding=binding)
        self.invalidate(tenant_id, write)

        after = write.after
        logger.info(
            "Custom domain %s set for tenant %s (%s)",
            binding.expected_host, tenant_id, after.domain_status.value,
        )
        return after.verification_record or binding

    def verify_domain(self, tenant_id: str, timeout: Optional[float] = None) -> DomainStatusResult:
        """Check the tenant's PENDING domain against DNS.

        Not PENDING → returns the current state unchanged. Confirmed →
        ACTIVE and the TLS provisioning trigger fires. Unconfirmed → stays
        PENDING inside the verification window, FAILED after it.
        """
        current = self._store.get_by_tenant(tenant_id)
        if current is None:
            raise NotFoundError("No branding config for tenant", details={"tenant_id": tenant_id})
        if current.domain_status != DomainStatus.PENDING:
            return self._result(tenant_id, current, f"Domain status is {current.domain_status.value}")

        domain = current.custom_domain
        record = current.verification_record
        target = record.expected_value if record else self.expected_target(tenant_id)
        with log_context(tenant_id=tenant_id, domain=domain):
            verified = self._poll_cname(domain, target, timeout or self.verify_timeout)

        checked_at = self._clock()
        if verified:
            status = DomainStatus.ACTIVE
        elif record is not None and checked_at >= record.expires_at:
            status = DomainStatus.FAILED
        else:
            status = DomainStatus.PENDING

        write = self._store.record_verification(
            tenant_id,
            domain,
            status=status,
            checked_at=checked_at,
            verified_at=checked_at if verified else None,
        )
        if write is None:
            # 驗證期間網域已被變更或清除，以目前狀態為準
            latest = self._store.get_by_tenant(tenant_id)
            logger.info("Domain %s changed during verification for tenant %s", domain, tenant_id)
            return self._result(tenant_id, latest, "Domain binding changed during verification")
        self.invalidate(tenant_id, write)

        if status == DomainStatus.ACTIVE:
            logger.info("Domain %s verified for tenant %s", domain, tenant_id)
            self._request_tls(tenant_id, domain)
            message = "Domain verified"
        elif status == DomainStatus.FAILED:
            logger.info("Domain %s verification window expired for tenant %s", domain, tenant_id)
            message = "Verification window expired; set the domain again to restart verification"
        else:
            message = f"CNAME {domain} → {target} not found yet"
        return self._result(tenant_id, write.after, message)

    def clear_domain(self, tenant_id: str) -> DomainStatusResult:
        """Unbind the domain (→ NONE). Idempotent."""
        write = self._store.clear_domain(tenant_id)
        self.invalidate(tenant_id, write)
        if write.before is not None and write.before.custom_domain:
            logger.info("Custom domain %s cleared for tenant %s", write.before.custom_domain, tenant_id)
        return self._result(tenant_id, write.after, "Custom domain cleared")

    def get_domain(self, tenant_id: str) -> DomainStatusResult:
        return self._result(tenant_id, self._cache.resolve_by_tenant(tenant_id))

    # ═══════════════════════════════════════════
    #  External capabilities
    # ═══════════════════════════════════════════

    def _poll_cname(self, domain: str, target: str, timeout: float) -> bool:
        """Bounded polling: at most ``verify_attempts`` lookups within ``timeout`` seconds."""
        per_attempt = max(timeout / self.verify_attempts, 0.5)
        retryer = Retrying(
            stop=stop_after_attempt(self.verify_attempts) | stop_after_delay(timeout),
            wait=wait_fixed(self.verify_interval),
            retry=retry_if_result(lambda ok: ok is False),
            retry_error_callback=lambda state: state.outcome.result(),
            sleep=self._sleep,
            reraise=True,
        )
        return retryer(self._verifier.check_cname, domain, target, per_attempt)

    def _request_tls(self, tenant_id: str, domain: str) -> None:
        try:
            self._tls.request_certificate(tenant_id, domain)
        except Exception:
            logger.exception("TLS provisioning trigger failed for %s", domain)
