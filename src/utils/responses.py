"""
Standard JSON response helpers
"""

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from src.utils.exceptions import (
    AuthorizationError,
    HitTagsServiceError,
    RateLimitExceededError,
)


def success_response(
    status_code: int,
    message: str,
    data: Any = None,
) -> JSONResponse:
    """Wrap a successful payload"""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"message": message, "data": data}),
    )


def error_response(
    status_code: int,
    message: str,
    extra: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Error body shared by every guarded endpoint: {"error": message}"""
    content = {"error": message}
    if extra:
        content.update(extra)

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(content),
        headers=headers,
    )


def exception_response(exc: HitTagsServiceError) -> JSONResponse:
    """Map a service error onto its status code and client-safe body"""
    extra = None
    headers = None

    if isinstance(exc, AuthorizationError) and exc.required_scope:
        extra = {
            "required_scope": exc.required_scope,
            "your_scopes": exc.granted_scopes or [],
        }

    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after)}
        if exc.status is not None:
            extra = {"rate_limit": exc.status.as_dict()}

    return error_response(
        status_code=exc.status_code,
        message=exc.message,
        extra=extra,
        headers=headers,
    )
