"""
FastAPI dependencies: component access, bearer-token auth and the resolved
branding of the current request.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.config import settings
from app.middleware.branding import ResolvedBranding, resolved_branding_ctx
from app.services.branding import BrandingService
from app.services.components import BrandingComponents
from app.services.domain_lifecycle import DomainLifecycleManager

logger = logging.getLogger("branding.auth")

# auto_error=False: GET /theme is public when no token is sent
reusable_bearer = HTTPBearer(auto_error=False)

BRANDING_ADMIN_ROLES = ["owner", "admin"]


@dataclass(frozen=True)
class TenantPrincipal:
    user_id: str
    tenant_id: str
    role: str
    is_superuser: bool = False


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> TenantPrincipal:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info("Rejected bearer token: %s", e)
        raise _credentials_exception()

    user_id = payload.get("sub")
    tenant_id = payload.get("tenant_id")
    if not user_id or not tenant_id:
        raise _credentials_exception("Token missing sub / tenant_id claim")
    return TenantPrincipal(
        user_id=str(user_id),
        tenant_id=str(tenant_id),
        role=str(payload.get("role", "")),
        is_superuser=bool(payload.get("is_superuser", False)),
    )


def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(reusable_bearer),
) -> Optional[TenantPrincipal]:
    if credentials is None:
        return None
    return decode_token(credentials.credentials)


def get_principal_or_anonymous(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(reusable_bearer),
) -> Optional[TenantPrincipal]:
    """For public reads: an expired or foreign token is treated as no token."""
    if credentials is None:
        return None
    try:
        return decode_token(credentials.credentials)
    except HTTPException:
        logger.info("Serving public theme to a request with an unusable bearer token")
        return None


def get_current_principal(
    principal: Optional[TenantPrincipal] = Depends(get_optional_principal),
) -> TenantPrincipal:
    if principal is None:
        raise _credentials_exception("Not authenticated")
    return principal


class RoleChecker:
    """
    角色檢查器
    使用方式:
        @router.put("/theme")
        def endpoint(principal: TenantPrincipal = Depends(require_branding_admin)):
            ...
    """

    def __init__(self, allowed_roles: List[str]):
        self.allowed_roles = allowed_roles

    def __call__(self, principal: TenantPrincipal = Depends(get_current_principal)) -> TenantPrincipal:
        if principal.is_superuser:
            return principal  # Superuser bypasses role checks
        if principal.role not in self.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This operation requires one of the roles: {', '.join(self.allowed_roles)}",
            )
        return principal


require_branding_admin = RoleChecker(BRANDING_ADMIN_ROLES)


def get_components(request: Request) -> BrandingComponents:
    return request.app.state.components


def get_branding_service(components: BrandingComponents = Depends(get_components)) -> BrandingService:
    return components.service


def get_domain_manager(components: BrandingComponents = Depends(get_components)) -> DomainLifecycleManager:
    return components.domains


async def get_resolved_branding() -> Optional[ResolvedBranding]:
    """Branding resolved from the request host by BrandingResolutionMiddleware, if any."""
    return resolved_branding_ctx.get()
