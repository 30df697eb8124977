"""
Branding Service

Owner-facing read / partial update / delete of a tenant's BrandingConfig.
Validates input before it reaches the store and invalidates the resolution
cache after every successful write, before returning.
"""
import logging
import re
from typing import Optional

from app.core.exceptions import ValidationError
from app.schemas.branding import BrandingConfigRead, BrandingUpdate, BrandingWrite
from app.services.branding_cache import TenantResolutionCache
from app.services.branding_store import BrandingStore
from app.services.domain_lifecycle import DomainLifecycleManager

logger = logging.getLogger("branding.service")

HEX_COLOR = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
# Family names, quotes and commas only; the value is written into a stylesheet
FONT_FAMILY = re.compile(r"^[A-Za-z0-9 ,'\"_-]{1,200}$")

_COLOR_FIELDS = ("primary_color", "secondary_color")
_NOT_NULL_FIELDS = ("enabled", "hide_branding")


def validate_hex_color(field: str, value: Optional[str]) -> None:
    if value is not None and not HEX_COLOR.match(value):
        raise ValidationError(
            f"Invalid hex color for {field}: {value!r}",
            details={"field": field, "value": value},
        )


def validate_font_family(value: Optional[str]) -> None:
    if value is not None and not FONT_FAMILY.match(value):
        raise ValidationError(
            f"Invalid font family: {value!r}",
            details={"field": "font_family", "value": value},
        )


class BrandingService:
    def __init__(self, store: BrandingStore, cache: TenantResolutionCache, domains: DomainLifecycleManager):
        self._store = store
        self._cache = cache
        self._domains = domains

    def get_for_owner(self, tenant_id: str) -> BrandingConfigRead:
        """The tenant's full config, or an unsaved default one."""
        config = self._cache.resolve_by_tenant(tenant_id)
        if config is None:
            return BrandingConfigRead(tenant_id=tenant_id)
        return config

    def update(self, tenant_id: str, patch: BrandingUpdate) -> BrandingConfigRead:
        """Apply only the fields present in ``patch``.

        ``customDomain`` set to a domain starts a new verification (→ PENDING);
        set to null or "" it clears the binding.
        """
        fields = patch.model_dump(exclude_unset=True)

        for field in _COLOR_FIELDS:
            if field in fields:
                validate_hex_color(field, fields[field])
        if "font_family" in fields:
            validate_font_family(fields["font_family"])
        for field in _NOT_NULL_FIELDS:
            if field in fields and fields[field] is None:
                raise ValidationError(f"{field} must not be null", details={"field": field})

        binding = None
        clear_domain = False
        if "custom_domain" in fields:
            raw_domain = fields.pop("custom_domain")
            if raw_domain is None or not raw_domain.strip():
                clear_domain = True
            else:
                binding = self._domains.prepare_binding(tenant_id, raw_domain)

        write = self._store.upsert(tenant_id, fields, binding=binding, clear_domain=clear_domain)
        self._invalidate(tenant_id, write)
        logger.info("Branding updated for tenant %s (%s)", tenant_id, ", ".join(sorted(fields)) or "-")
        return write.after

    def delete(self, tenant_id: str) -> Optional[BrandingConfigRead]:
        deleted = self._store.delete(tenant_id)
        self._invalidate(tenant_id, BrandingWrite(before=deleted))
        return deleted

    def _invalidate(self, tenant_id: str, write: BrandingWrite) -> None:
        self._cache.invalidate_binding(tenant_id, *write.touched_domains())
