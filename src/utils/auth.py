"""
Authentication Dependencies for FastAPI

Two credentials exist:
- dashboard session JWTs, used by the developer routes that manage keys
- API keys, checked by the gateway middleware before any public API route
  runs; routes read the resulting AuthContext from the request
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import get_db
from src.db.users_repository import get_user_repository
from src.models.api_key_model import APIKey
from src.models.user_model import User
from src.utils.exceptions import AuthenticationError
from src.utils.scopes import require_scope
from src.utils.security import decode_jwt_token

logger = logging.getLogger(__name__)


bearer_scheme = HTTPBearer(
    auto_error=False,
    scheme_name="Bearer",
    description="Dashboard JWT, or `<api_key_id>:<secret>` on the public API",
)

# Documented for Swagger; the gateway middleware reads the headers itself
api_key_scheme = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,
    scheme_name="API Key",
    description="API key id (format: hk_...), sent together with X-API-Secret",
)
api_secret_scheme = APIKeyHeader(
    name="X-API-Secret",
    auto_error=False,
    scheme_name="API Secret",
    description="API key secret, shown once when the key was created",
)


@dataclass(frozen=True)
class AuthContext:
    """
    Request-scoped result of API key authentication

    Produced by the gateway middleware and read-only for route handlers.
    """

    user_id: str
    api_key: APIKey
    granted_scopes: FrozenSet[str]

    @classmethod
    def from_api_key(cls, api_key: APIKey) -> "AuthContext":
        return cls(
            user_id=api_key.user_id,
            api_key=api_key,
            granted_scopes=frozenset(api_key.scopes or []),
        )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current dashboard user from JWT token"""
    if not credentials:
        raise AuthenticationError("Authentication required")

    payload = decode_jwt_token(credentials.credentials)

    if not payload:
        raise AuthenticationError("Invalid or expired session token")

    user = await get_user_repository(db).get_by_id(payload.get("user_id"))

    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is inactive")

    logger.debug(f"Authenticated user {user.id} via JWT")
    return user


def get_auth_context(
    request: Request,
    _key_id: Optional[str] = Depends(api_key_scheme),
    _secret: Optional[str] = Depends(api_secret_scheme),
) -> AuthContext:
    """AuthContext attached by the gateway middleware"""
    context = getattr(request.state, "auth_context", None)

    if context is None:
        # Route mounted outside the gateway's guarded prefixes
        logger.error(f"No API key context for {request.url.path}")
        raise AuthenticationError()

    return context


def scope_required(scope: str):
    """
    Dependency enforcing that the request's API key holds ``scope``

    Scopes are flat: each endpoint names exactly the capability it needs.
    """

    def check_scope(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        decision = require_scope(context.api_key, scope)

        if not decision.allowed:
            logger.warning(
                f"API key {context.api_key.id} missing scope '{scope}' "
                f"(has: {sorted(context.granted_scopes)})"
            )
            raise decision.error

        return context

    return check_scope
