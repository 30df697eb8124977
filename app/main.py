from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_exception_handlers
from app.api.v1.api import api_router
from app.config import settings
from app.db.session import SessionLocal
from app.logging_config import setup_logging
from app.middleware.branding import BrandingResolutionMiddleware
from app.middleware.metrics import PrometheusMiddleware, metrics_endpoint, set_app_info
from app.middleware.request_logging import RequestLoggingMiddleware
from app.services.components import BrandingComponents, build_components

# ── Initialize structured logging ──
setup_logging()


def create_app(components: Optional[BrandingComponents] = None) -> FastAPI:
    if components is None:
        components = build_components(SessionLocal, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        components.close()

    app = FastAPI(
        title=settings.APP_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )
    app.state.components = components

    # Set all CORS enabled origins
    cors_origins = ["http://localhost:3000", "http://localhost:3001", "http://localhost:8000"]
    if settings.BACKEND_CORS_ORIGINS:
        cors_origins.extend([origin.strip() for origin in settings.BACKEND_CORS_ORIGINS.split(",") if origin.strip()])

    # Branding resolution – resolves tenant branding from X-Forwarded-Host / Host
    app.add_middleware(
        BrandingResolutionMiddleware,
        cache=components.cache,
        platform_hosts=components.platform_hosts,
    )

    # Request logging middleware – request ID, timing, context
    app.add_middleware(RequestLoggingMiddleware)

    # Prometheus metrics middleware – request count, latency, in-progress
    app.add_middleware(PrometheusMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "env": settings.APP_ENV, "cache": components.cache.stats()}

    # Prometheus metrics endpoint
    app.add_route("/metrics", metrics_endpoint)
    set_app_info(version="1.0.0", env=settings.APP_ENV)

    return app


app = create_app()
