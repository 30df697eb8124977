from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.models.branding import BrandingConfig, DomainStatus


def get_by_tenant(db: Session, tenant_id: str) -> Optional[BrandingConfig]:
    return db.query(BrandingConfig).filter(BrandingConfig.tenant_id == tenant_id).first()


def get_by_domain(db: Session, domain: str) -> Optional[BrandingConfig]:
    """Publicly resolvable config for a normalized domain (enabled + verified only)."""
    return db.query(BrandingConfig).filter(
        BrandingConfig.custom_domain == domain,
        BrandingConfig.enabled == True,  # noqa: E712
        BrandingConfig.domain_status == DomainStatus.ACTIVE,
    ).first()


def get_domain_holder(db: Session, domain: str, *, exclude_tenant_id: Optional[str] = None) -> Optional[BrandingConfig]:
    """Any row bound to ``domain``, regardless of status."""
    query = db.query(BrandingConfig).filter(BrandingConfig.custom_domain == domain)
    if exclude_tenant_id is not None:
        query = query.filter(BrandingConfig.tenant_id != exclude_tenant_id)
    return query.first()


def get_or_build(db: Session, tenant_id: str) -> BrandingConfig:
    """Existing row, or a new pending row with defaults (upsert-on-first-use)."""
    db_obj = get_by_tenant(db, tenant_id)
    if db_obj is None:
        db_obj = BrandingConfig(
            tenant_id=tenant_id,
            enabled=False,
            hide_branding=False,
            domain_status=DomainStatus.NONE,
        )
        db.add(db_obj)
    return db_obj


def apply_fields(db_obj: BrandingConfig, update_data: Dict[str, Any]) -> BrandingConfig:
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    return db_obj


def bind_domain(db_obj: BrandingConfig, domain: str, *, host: str, value: str,
                requested_at: datetime, expires_at: datetime) -> BrandingConfig:
    db_obj.custom_domain = domain
    db_obj.domain_status = DomainStatus.PENDING
    db_obj.verification_host = host
    db_obj.verification_value = value
    db_obj.verification_record_type = "CNAME"
    db_obj.verification_requested_at = requested_at
    db_obj.verification_expires_at = expires_at
    db_obj.domain_verified_at = None
    db_obj.domain_last_checked_at = None
    return db_obj


def unbind_domain(db_obj: BrandingConfig) -> BrandingConfig:
    db_obj.custom_domain = None
    db_obj.domain_status = DomainStatus.NONE
    db_obj.verification_host = None
    db_obj.verification_value = None
    db_obj.verification_record_type = None
    db_obj.verification_requested_at = None
    db_obj.verification_expires_at = None
    db_obj.domain_verified_at = None
    db_obj.domain_last_checked_at = None
    return db_obj


def remove(db: Session, db_obj: BrandingConfig) -> None:
    db.delete(db_obj)
