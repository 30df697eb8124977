"""
Branding Store

The single owned handle over persisted BrandingConfig rows. Every method
runs in its own session / transaction and returns immutable snapshots, so
results can be handed to the resolution cache and shared across threads.

Domain uniqueness is enforced twice: a pre-check that excludes the caller's
own row (for a precise error) and the unique index on ``custom_domain``,
whose IntegrityError on commit is mapped to ConflictError so that exactly
one of two racing claimants wins.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.core.exceptions import ConflictError, UpstreamError
from app.crud import crud_branding
from app.models.branding import BrandingConfig, DomainStatus
from app.schemas.branding import BrandingConfigRead, BrandingWrite, DomainVerificationRecord

logger = logging.getLogger("branding.store")


def _snapshot(db_obj: Optional[BrandingConfig]) -> Optional[BrandingConfigRead]:
    if db_obj is None:
        return None
    return BrandingConfigRead.model_validate(db_obj)


def _check_domain_invariant(db_obj: BrandingConfig) -> None:
    if (db_obj.custom_domain is None) != (db_obj.domain_status == DomainStatus.NONE):
        raise RuntimeError(
            f"domain_status {db_obj.domain_status} inconsistent with "
            f"custom_domain {db_obj.custom_domain!r} for tenant {db_obj.tenant_id}"
        )


class BrandingStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # ── Reads ──

    def get_by_tenant(self, tenant_id: str) -> Optional[BrandingConfigRead]:
        with self._session("get_by_tenant", tenant_id) as db:
            return _snapshot(crud_branding.get_by_tenant(db, tenant_id))

    def get_by_domain(self, domain: str) -> Optional[BrandingConfigRead]:
        with self._session("get_by_domain", domain) as db:
            return _snapshot(crud_branding.get_by_domain(db, domain))

    # ── Writes ──

    def upsert(
        self,
        tenant_id: str,
        fields: Dict[str, Any],
        *,
        binding: Optional[DomainVerificationRecord] = None,
        clear_domain: bool = False,
    ) -> BrandingWrite:
        """Apply a partial update, creating the row on first write.

        ``binding`` moves the row to PENDING on ``binding.expected_host``
        unless that domain is already ACTIVE for this tenant; ``clear_domain``
        drops the binding. Both happen in the same transaction as ``fields``.
        """
        with self._session("upsert", tenant_id) as db:
            db_obj = crud_branding.get_or_build(db, tenant_id)
            before = _snapshot(db_obj) if db_obj.id is not None else None

            crud_branding.apply_fields(db_obj, fields)
            if clear_domain:
                crud_branding.unbind_domain(db_obj)
            elif binding is not None:
                domain = binding.expected_host
                unchanged = (
                    db_obj.custom_domain == domain
                    and db_obj.domain_status == DomainStatus.ACTIVE
                )
                if not unchanged:
                    holder = crud_branding.get_domain_holder(db, domain, exclude_tenant_id=tenant_id)
                    if holder is not None:
                        raise ConflictError(
                            f"Custom domain {domain} is already in use",
                            details={"domain": domain},
                        )
                    crud_branding.bind_domain(
                        db_obj,
                        domain,
                        host=binding.expected_host,
                        value=binding.expected_value,
                        requested_at=binding.requested_at,
                        expires_at=binding.expires_at,
                    )

            _check_domain_invariant(db_obj)
            after = self._commit(db, db_obj, tenant_id, binding.expected_host if binding else None)
            return BrandingWrite(before=before, after=after)

    def clear_domain(self, tenant_id: str) -> BrandingWrite:
        """Drop the domain binding; never creates a row."""
        with self._session("clear_domain", tenant_id) as db:
            db_obj = crud_branding.get_by_tenant(db, tenant_id)
            if db_obj is None:
                return BrandingWrite()
            before = _snapshot(db_obj)
            if db_obj.custom_domain is None and db_obj.domain_status == DomainStatus.NONE:
                return BrandingWrite(before=before, after=before)
            crud_branding.unbind_domain(db_obj)
            after = self._commit(db, db_obj, tenant_id, None)
            return BrandingWrite(before=before, after=after)

    def record_verification(
        self,
        tenant_id: str,
        domain: str,
        *,
        status: DomainStatus,
        checked_at: datetime,
        verified_at: Optional[datetime] = None,
    ) -> Optional[BrandingWrite]:
        """Store a verification verdict for ``domain``.

        Compare-and-set: applied only while the row is still PENDING on the
        same domain. Returns None when the binding changed underneath.
        """
        with self._session("record_verification", tenant_id) as db:
            db_obj = crud_branding.get_by_tenant(db, tenant_id)
            if (
                db_obj is None
                or db_obj.custom_domain != domain
                or db_obj.domain_status != DomainStatus.PENDING
            ):
                return None
            before = _snapshot(db_obj)
            db_obj.domain_status = status
            db_obj.domain_last_checked_at = checked_at
            if verified_at is not None:
                db_obj.domain_verified_at = verified_at
            _check_domain_invariant(db_obj)
            after = self._commit(db, db_obj, tenant_id, domain)
            return BrandingWrite(before=before, after=after)

    def delete(self, tenant_id: str) -> Optional[BrandingConfigRead]:
        """Delete the tenant's row; returns what was deleted (for invalidation)."""
        with self._session("delete", tenant_id) as db:
            db_obj = crud_branding.get_by_tenant(db, tenant_id)
            if db_obj is None:
                return None
            deleted = _snapshot(db_obj)
            crud_branding.remove(db, db_obj)
            db.commit()
            logger.info("Branding config deleted for tenant %s", tenant_id)
            return deleted

    # ── Internals ──

    def _commit(self, db: Session, db_obj: BrandingConfig, tenant_id: str,
                domain: Optional[str]) -> BrandingConfigRead:
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if domain and crud_branding.get_domain_holder(db, domain, exclude_tenant_id=tenant_id):
                logger.info("Domain %s claimed concurrently by another tenant", domain)
                raise ConflictError(
                    f"Custom domain {domain} is already in use",
                    details={"domain": domain},
                ) from e
            raise ConflictError(
                "Branding config was modified concurrently, please retry",
                details={"tenant_id": tenant_id},
            ) from e
        db.refresh(db_obj)
        return _snapshot(db_obj)

    def _session(self, operation: str, key: str) -> "_StoreSession":
        return _StoreSession(self._session_factory, operation, key)


class _StoreSession:
    """Session context that maps driver / connection failures to UpstreamError."""

    def __init__(self, session_factory: sessionmaker, operation: str, key: str):
        self._session_factory = session_factory
        self.operation = operation
        self.key = key
        self._db: Optional[Session] = None

    def __enter__(self) -> Session:
        self._db = self._session_factory()
        return self._db

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc is not None:
                self._db.rollback()
        finally:
            self._db.close()
        if isinstance(exc, SQLAlchemyError) and not isinstance(exc, IntegrityError):
            logger.error("Branding store %s failed for %s: %s", self.operation, self.key, exc)
            raise UpstreamError(
                "Branding store unavailable", operation=self.operation, key=self.key
            ) from exc
        return False
