"""
Maps service-layer BrandingError subclasses to HTTP responses.

Body shape: ``{"detail": <message>, "code": <machine code>}``.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.exceptions import BrandingError, UpstreamError, ValidationError

logger = logging.getLogger("branding.api")


async def branding_error_handler(request: Request, exc: BrandingError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        logger.error(
            "Upstream failure on %s %s: %s (operation=%s key=%s)",
            request.method, request.url.path, exc.message, exc.operation, exc.key,
        )
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={
            "detail": "Invalid request body",
            "code": ValidationError.code,
            "errors": jsonable_encoder(exc.errors()),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BrandingError, branding_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
