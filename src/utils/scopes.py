"""
API Scopes

Scopes form a flat set. Holding write:bookmarks says nothing about
read:bookmarks; every capability has to be granted on its own.
"""

from dataclasses import dataclass
from typing import Optional

from src.utils.exceptions import AuthorizationError

READ_BOOKMARKS = "read:bookmarks"
WRITE_BOOKMARKS = "write:bookmarks"
DELETE_BOOKMARKS = "delete:bookmarks"
READ_COLLECTIONS = "read:collections"
WRITE_COLLECTIONS = "write:collections"
DELETE_COLLECTIONS = "delete:collections"
READ_TAGS = "read:tags"
WRITE_TAGS = "write:tags"
READ_USER = "read:user"
READ_ANALYTICS = "read:analytics"
ADMIN_WEBHOOKS = "admin:webhooks"
ADMIN_API_KEYS = "admin:api_keys"

API_SCOPES = {
    READ_BOOKMARKS: "Read bookmarks",
    WRITE_BOOKMARKS: "Create and update bookmarks",
    DELETE_BOOKMARKS: "Delete bookmarks",
    READ_COLLECTIONS: "Read collections",
    WRITE_COLLECTIONS: "Create and update collections",
    DELETE_COLLECTIONS: "Delete collections",
    READ_TAGS: "Read tags",
    WRITE_TAGS: "Create and update tags",
    READ_USER: "Read user profile",
    READ_ANALYTICS: "Read analytics data",
    ADMIN_WEBHOOKS: "Manage webhooks",
    ADMIN_API_KEYS: "Manage API keys",
}


@dataclass(frozen=True)
class ScopeDecision:
    allowed: bool
    error: Optional[AuthorizationError] = None


def unknown_scopes(scopes) -> list:
    """Scopes in the given collection that are not recognised"""
    return [scope for scope in scopes if scope not in API_SCOPES]


def require_scope(key, required_scope: str) -> ScopeDecision:
    """
    Decide whether a validated key grants required_scope

    Args:
        key: APIKey record (anything with a ``scopes`` attribute)
        required_scope: capability the endpoint needs

    Returns:
        ScopeDecision; on deny, ``error`` names the missing scope
    """
    granted = list(key.scopes or [])

    if required_scope in granted:
        return ScopeDecision(allowed=True)

    return ScopeDecision(
        allowed=False,
        error=AuthorizationError(
            message=f"This endpoint requires the '{required_scope}' scope",
            required_scope=required_scope,
            granted_scopes=granted,
        ),
    )
