from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from app.models.branding import DomainStatus


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Properties the owner may change via PUT /theme (partial update)
class BrandingUpdate(_CamelModel):
    enabled: Optional[bool] = None
    brand_name: Optional[str] = None
    header_text: Optional[str] = None
    footer_text: Optional[str] = None
    support_email: Optional[str] = None
    privacy_policy_url: Optional[str] = None
    terms_of_service_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    font_family: Optional[str] = None
    help_center_url: Optional[str] = None
    hide_branding: Optional[bool] = None
    custom_domain: Optional[str] = None


# ── Domain lifecycle ──

class DomainCreate(_CamelModel):
    domain: str


class DomainVerificationRecord(_CamelModel):
    """The CNAME record a tenant must publish to prove control of a domain."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    expected_host: str
    expected_value: str
    record_type: str = "CNAME"
    requested_at: datetime
    verified_at: Optional[datetime] = None
    expires_at: datetime


class DomainStatusResult(_CamelModel):
    tenant_id: str
    custom_domain: Optional[str] = None
    domain_status: DomainStatus = DomainStatus.NONE
    record: Optional[DomainVerificationRecord] = None
    message: str = ""


# ── Stored config ──

class BrandingConfigRead(_CamelModel):
    """Immutable snapshot of a stored row; safe to share across threads."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )

    id: Optional[UUID] = None
    tenant_id: str
    enabled: bool = False
    brand_name: Optional[str] = None
    header_text: Optional[str] = None
    footer_text: Optional[str] = None
    support_email: Optional[str] = None
    privacy_policy_url: Optional[str] = None
    terms_of_service_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    font_family: Optional[str] = None
    help_center_url: Optional[str] = None
    hide_branding: bool = False
    custom_domain: Optional[str] = None
    domain_status: DomainStatus = DomainStatus.NONE
    verification_host: Optional[str] = None
    verification_value: Optional[str] = None
    verification_record_type: Optional[str] = None
    verification_requested_at: Optional[datetime] = None
    verification_expires_at: Optional[datetime] = None
    domain_verified_at: Optional[datetime] = None
    domain_last_checked_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator(
        "verification_requested_at",
        "verification_expires_at",
        "domain_verified_at",
        "domain_last_checked_at",
        "created_at",
        "updated_at",
    )
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @property
    def publicly_resolvable(self) -> bool:
        """Enabled and bound to a verified domain."""
        return (
            self.enabled
            and self.custom_domain is not None
            and self.domain_status == DomainStatus.ACTIVE
        )

    @property
    def verification_record(self) -> Optional[DomainVerificationRecord]:
        if not (self.verification_host and self.verification_value
                and self.verification_requested_at and self.verification_expires_at):
            return None
        return DomainVerificationRecord(
            expected_host=self.verification_host,
            expected_value=self.verification_value,
            record_type=self.verification_record_type or "CNAME",
            requested_at=self.verification_requested_at,
            verified_at=self.domain_verified_at,
            expires_at=self.verification_expires_at,
        )


class BrandingWrite(BaseModel):
    """Result of a store mutation: the row before and after the write."""
    model_config = ConfigDict(frozen=True)

    before: Optional[BrandingConfigRead] = None
    after: Optional[BrandingConfigRead] = None

    def touched_domains(self) -> list[str]:
        domains = []
        for snap in (self.before, self.after):
            if snap is not None and snap.custom_domain and snap.custom_domain not in domains:
                domains.append(snap.custom_domain)
        return domains


# ── Client theme (public subset consumed by the browser) ──

class ClientTheme(_CamelModel):
    primary_color: str
    secondary_color: str
    font_family: str
    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    header_text: Optional[str] = None
    footer_text: Optional[str] = None
    help_center_url: Optional[str] = None
    hide_branding: bool = False
