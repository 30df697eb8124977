"""
Branding Resolution Middleware

Resolves the tenant branding bound to the request's host (X-Forwarded-Host,
else Host) through the resolution cache and publishes it as a typed
``ResolvedBranding`` in a request-scoped ContextVar. Handlers read it via
the ``get_resolved_branding`` dependency.

Fail-open: a cache / store failure is logged and the request continues
without branding. Branding is never a reason for a request to fail.
"""

import logging
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterable, Optional

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.logging_config import log_context
from app.schemas.branding import BrandingConfigRead
from app.services.branding_cache import TenantResolutionCache
from app.services.domain_normalizer import normalize

logger = logging.getLogger("branding.middleware")


@dataclass(frozen=True)
class ResolvedBranding:
    tenant_id: str
    domain: str
    config: BrandingConfigRead


resolved_branding_ctx: ContextVar[Optional[ResolvedBranding]] = ContextVar("resolved_branding", default=None)


def extract_host(headers: Headers) -> Optional[str]:
    """Effective host: first X-Forwarded-Host entry, else Host."""
    forwarded = headers.get("x-forwarded-host", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    host = headers.get("host", "")
    return host.strip() or None


class BrandingResolutionMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, cache: TenantResolutionCache, platform_hosts: Iterable[str] = ()):
        super().__init__(app)
        self.cache = cache
        self.platform_hosts = frozenset(h.lower() for h in platform_hosts)

    async def dispatch(self, request: Request, call_next) -> Response:
        resolved = await self._resolve(request)
        if resolved is None:
            return await call_next(request)

        token = resolved_branding_ctx.set(resolved)
        try:
            with log_context(tenant_id=resolved.tenant_id, domain=resolved.domain):
                response = await call_next(request)
        finally:
            resolved_branding_ctx.reset(token)
        response.headers["X-Branding-Tenant"] = resolved.tenant_id
        return response

    async def _resolve(self, request: Request) -> Optional[ResolvedBranding]:
        host = extract_host(request.headers)
        if not host:
            return None
        domain = normalize(host)
        if not domain or domain in self.platform_hosts or domain.strip("[]") in self.platform_hosts:
            return None

        try:
            config = await run_in_threadpool(self.cache.resolve_by_domain, domain)
        except Exception as e:
            operation = getattr(e, "operation", "resolve_by_domain")
            logger.warning("Branding resolution failed for %s (%s): %s", domain, operation, e)
            return None

        if config is None:
            return None
        logger.debug("Resolved %s → tenant %s", domain, config.tenant_id)
        return ResolvedBranding(tenant_id=config.tenant_id, domain=domain, config=config)
