"""
API Key Gateway Middleware

Fronts every public API path. Per request, in order:

1. extract the key id and secret from the headers
2. validate them against the key store
3. enforce the key's origin and IP allow-lists
4. admit the request against the key's hourly and daily quota
5. attach an AuthContext and run the route
6. record usage and add rate-limit headers, whatever the outcome

Any failure short-circuits to a {"error": ...} response. A store error
while authorizing denies the request; it never lets it through.
"""

import logging
import time
from typing import Iterable, Optional, Tuple

from fastapi import status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.db.session import get_session_factory
from src.models.api_key_model import APIKey
from src.services.api_keys_service import api_key_service
from src.services.rate_limit_service import rate_limit_service
from src.utils.auth import AuthContext
from src.utils.config import GATEWAY_EXEMPT_PATHS, GUARDED_PATH_PREFIXES
from src.utils.exceptions import (
    AuthenticationError,
    AuthorizationError,
    HitTagsServiceError,
)
from src.utils.network import get_client_ip, is_ip_allowed, is_origin_allowed
from src.utils.responses import error_response, exception_response

logger = logging.getLogger(__name__)


def extract_api_credentials(request: Request) -> Tuple[Optional[str], Optional[str]]:
    """
    Read (key_id, secret) from ``Authorization: Bearer <id>:<secret>`` or
    from the X-API-Key / X-API-Secret header pair
    """
    authorization = request.headers.get("authorization")
    if authorization and authorization[:7].lower() == "bearer ":
        token = authorization[7:].strip()
        for separator in (":", "."):
            if separator in token:
                key_id, secret = token.split(separator, 1)
                return key_id or None, secret or None
        return token or None, None

    return request.headers.get("x-api-key"), request.headers.get("x-api-secret")


def check_allow_lists(api_key: APIKey, request: Request) -> None:
    """
    Raises:
        AuthorizationError: If the client IP or Origin is not allowed
    """
    client_ip = get_client_ip(request)
    if not is_ip_allowed(api_key.ip_whitelist, client_ip):
        logger.warning(f"API key {api_key.id} used from non-whitelisted IP {client_ip}")
        raise AuthorizationError("IP address not whitelisted")

    origin = request.headers.get("origin")
    if not is_origin_allowed(api_key.allowed_origins, origin):
        logger.warning(f"API key {api_key.id} used from disallowed origin {origin}")
        raise AuthorizationError("Origin not allowed")


class APIGatewayMiddleware(BaseHTTPMiddleware):
    """API key authentication, allow-lists, admission and usage accounting"""

    def __init__(
        self,
        app,
        guarded_prefixes: Iterable[str] = GUARDED_PATH_PREFIXES,
        exempt_paths: Iterable[str] = GATEWAY_EXEMPT_PATHS,
    ):
        super().__init__(app)
        self.guarded_prefixes = tuple(guarded_prefixes)
        self.exempt_paths = frozenset(exempt_paths)

    def is_guarded(self, path: str) -> bool:
        if path in self.exempt_paths:
            return False

        return any(
            path == prefix or path.startswith(prefix + "/")
            for prefix in self.guarded_prefixes
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS" or not self.is_guarded(request.url.path):
            return await call_next(request)

        start_time = time.monotonic()
        session_factory = get_session_factory()
        key_id, secret = extract_api_credentials(request)
        api_key = None
        admitted = False

        try:
            if not key_id or not secret:
                raise AuthenticationError("Missing API credentials")

            async with session_factory() as db:
                api_key = await api_key_service.validate_api_key(db, key_id, secret)
                check_allow_lists(api_key, request)
                await rate_limit_service.check_admission(db, api_key)

            admitted = True
        except HitTagsServiceError as e:
            response = exception_response(e)
        except Exception as e:
            logger.error(
                f"Could not authorize request to {request.url.path}: {str(e)}",
                exc_info=True,
            )
            response = error_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                message="Authentication failed",
            )

        if admitted:
            request.state.auth_context = AuthContext.from_api_key(api_key)
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    f"Unhandled exception: {str(e)} - Path: {request.url.path}",
                    exc_info=True,
                )
                response = error_response(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    message="An internal error occurred. Please try again later.",
                )

        if key_id:
            async with session_factory() as db:
                await rate_limit_service.record_usage(
                    db,
                    key_id=key_id,
                    request=request,
                    status_code=response.status_code,
                    start_time=start_time,
                    admitted=admitted,
                )
                if api_key is not None:
                    await rate_limit_service.add_rate_limit_headers(response, db, api_key)

        return response
