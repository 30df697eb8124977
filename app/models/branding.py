"""
Tenant Branding Model

One row per tenant. The custom domain binding and its pending DNS
verification record live on the same row so that a PENDING verification
survives a process restart.
"""
import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String, Uuid, func

from app.db.base_class import Base


class DomainStatus(str, enum.Enum):
    NONE = "NONE"
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


class BrandingConfig(Base):
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    tenant_id = Column(String(64), unique=True, nullable=False, index=True)
    enabled = Column(Boolean, nullable=False, default=False)

    # ── Presentation ──
    brand_name = Column(String(100), nullable=True)
    header_text = Column(String(200), nullable=True)
    footer_text = Column(String(500), nullable=True)
    support_email = Column(String(255), nullable=True)
    privacy_policy_url = Column(String(500), nullable=True)
    terms_of_service_url = Column(String(500), nullable=True)
    primary_color = Column(String(7), nullable=True)       # #abc / #aabbcc
    secondary_color = Column(String(7), nullable=True)
    logo_url = Column(String(500), nullable=True)
    favicon_url = Column(String(500), nullable=True)
    font_family = Column(String(200), nullable=True)     # CSS font-family list
    help_center_url = Column(String(500), nullable=True)
    hide_branding = Column(Boolean, nullable=False, default=False)

    # ── Custom domain (stored normalized) ──
    custom_domain = Column(String(255), unique=True, nullable=True, index=True)
    domain_status = Column(
        Enum(DomainStatus, name="domain_status", native_enum=False, length=16),
        nullable=False,
        default=DomainStatus.NONE,
    )

    # ── DNS verification record ──
    verification_host = Column(String(255), nullable=True)
    verification_value = Column(String(255), nullable=True)
    verification_record_type = Column(String(16), nullable=True)
    verification_requested_at = Column(DateTime(timezone=True), nullable=True)
    verification_expires_at = Column(DateTime(timezone=True), nullable=True)
    domain_verified_at = Column(DateTime(timezone=True), nullable=True)
    domain_last_checked_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return (
            f"<BrandingConfig(tenant_id={self.tenant_id!r}, "
            f"custom_domain={self.custom_domain!r}, domain_status={self.domain_status!r})>"
        )
