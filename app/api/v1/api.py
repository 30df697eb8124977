from fastapi import APIRouter

from app.api.v1.endpoints import domains, theme

api_router = APIRouter()
api_router.include_router(theme.router, tags=["branding"])
api_router.include_router(domains.router, tags=["custom-domain"])
