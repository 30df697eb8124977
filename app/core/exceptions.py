"""
Branding domain errors.

Services raise these, never HTTPException; the API layer maps them to
responses in app.api.error_handlers.
"""
from typing import Any, Dict, Optional

from fastapi import status


class BrandingError(Exception):
    code: str = "branding_error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or self.__class__.__name__)
        if code is not None:
            self.code = code
        self.message = message or self.__class__.__name__
        self.details = details


class ValidationError(BrandingError):
    """Bad hex color, empty domain, malformed input."""
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(BrandingError):
    """Custom domain already bound to another tenant."""
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(BrandingError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamError(BrandingError):
    """Store or DNS unavailable. Carries the operation and key for logging."""
    code = "upstream_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: str = "",
        *,
        operation: str = "",
        key: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            details={"operation": operation, "key": key} if operation else None,
        )
        self.operation = operation
        self.key = key
