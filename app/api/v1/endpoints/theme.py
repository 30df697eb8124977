"""
Theme API

GET /theme is public: without a bearer token it returns the client theme of
the branding resolved from the request host (or the default theme). With a
token it returns the caller tenant's full config; a token that no longer
decodes is ignored rather than rejected.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Response, status

from app.api import deps
from app.api.deps import TenantPrincipal
from app.middleware.branding import ResolvedBranding
from app.schemas.branding import BrandingConfigRead, BrandingUpdate
from app.services.branding import BrandingService
from app.services.theme import render_stylesheet, to_client_theme

router = APIRouter()


@router.get("/theme", response_model=None)
def read_theme(
    principal: Optional[TenantPrincipal] = Depends(deps.get_principal_or_anonymous),
    resolved: Optional[ResolvedBranding] = Depends(deps.get_resolved_branding),
    service: BrandingService = Depends(deps.get_branding_service),
) -> Any:
    if principal is not None:
        config = service.get_for_owner(principal.tenant_id)
        return config.model_dump(mode="json", by_alias=True)
    theme = to_client_theme(resolved.config if resolved else None)
    return theme.model_dump(mode="json", by_alias=True)


@router.get("/theme.css")
def read_theme_stylesheet(
    resolved: Optional[ResolvedBranding] = Depends(deps.get_resolved_branding),
) -> Response:
    """CSS custom properties for the resolved theme (``--brand-primary`` ...)."""
    theme = to_client_theme(resolved.config if resolved else None)
    return Response(
        content=render_stylesheet(theme),
        media_type="text/css",
        headers={"Cache-Control": "public, max-age=300"},
    )


@router.put("/theme", response_model=BrandingConfigRead)
def update_theme(
    body: BrandingUpdate,
    principal: TenantPrincipal = Depends(deps.require_branding_admin),
    service: BrandingService = Depends(deps.get_branding_service),
) -> Any:
    """Partial update; only the fields present in the body are written."""
    return service.update(principal.tenant_id, body)


@router.delete("/theme", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_theme(
    principal: TenantPrincipal = Depends(deps.require_branding_admin),
    service: BrandingService = Depends(deps.get_branding_service),
) -> Response:
    service.delete(principal.tenant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
