"""
Custom Domain API

Tenant owner / admin can:
  1. Bind a custom domain and get the CNAME record to publish
  2. Trigger DNS verification (PENDING → ACTIVE / FAILED)
  3. Inspect or clear the binding
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status

from app.api import deps
from app.api.deps import TenantPrincipal
from app.schemas.branding import DomainCreate, DomainStatusResult, DomainVerificationRecord
from app.services.domain_lifecycle import DomainLifecycleManager

router = APIRouter()


@router.get("/domain", response_model=DomainStatusResult)
def read_domain(
    principal: TenantPrincipal = Depends(deps.require_branding_admin),
    domains: DomainLifecycleManager = Depends(deps.get_domain_manager),
) -> Any:
    return domains.get_domain(principal.tenant_id)


@router.post("/domain", response_model=DomainVerificationRecord, status_code=status.HTTP_201_CREATED)
def set_domain(
    body: DomainCreate,
    principal: TenantPrincipal = Depends(deps.require_branding_admin),
    domains: DomainLifecycleManager = Depends(deps.get_domain_manager),
) -> Any:
    """綁定自訂網域，回傳需設定的 CNAME 記錄"""
    return domains.set_domain(principal.tenant_id, body.domain)


@router.post("/domain/verify", response_model=DomainStatusResult)
def verify_domain(
    timeout: Optional[float] = Query(None, gt=0, le=60, description="Overall verification deadline in seconds"),
    principal: TenantPrincipal = Depends(deps.require_branding_admin),
    domains: DomainLifecycleManager = Depends(deps.get_domain_manager),
) -> Any:
    return domains.verify_domain(principal.tenant_id, timeout=timeout)


@router.delete("/domain", response_model=DomainStatusResult)
def clear_domain(
    principal: TenantPrincipal = Depends(deps.require_branding_admin),
    domains: DomainLifecycleManager = Depends(deps.get_domain_manager),
) -> Any:
    return domains.clear_domain(principal.tenant_id)
