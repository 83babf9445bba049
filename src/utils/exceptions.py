"""
Custom Error Classes for Better Error Handling

Every error carries the HTTP status it maps to and a message that is safe
to show to API clients.
"""

from typing import Optional


class HitTagsServiceError(Exception):
    """Base exception for the HitTags API"""

    status_code = 500
    default_message = "An internal error occurred. Please try again later."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(HitTagsServiceError):
    """Credential missing, malformed, unknown, revoked or expired"""

    status_code = 401
    default_message = "Invalid or expired API key"


class AuthorizationError(HitTagsServiceError):
    """Valid credential lacking a scope or failing an allow-list check"""

    status_code = 403
    default_message = "Forbidden"

    def __init__(
        self,
        message: Optional[str] = None,
        required_scope: Optional[str] = None,
        granted_scopes: Optional[list] = None,
    ):
        super().__init__(message)
        self.required_scope = required_scope
        self.granted_scopes = granted_scopes


class RateLimitExceededError(HitTagsServiceError):
    """Admission denied by the key's hourly or daily quota"""

    status_code = 429
    default_message = "Rate limit exceeded"

    def __init__(self, retry_after: int, status=None, message: Optional[str] = None):
        super().__init__(message)
        self.retry_after = retry_after
        self.status = status


class ValidationError(HitTagsServiceError):
    """Malformed key-management or resource request"""

    status_code = 400
    default_message = "Invalid request"


class NotFoundError(HitTagsServiceError):
    """Resource does not exist or is not owned by the caller"""

    status_code = 404
    default_message = "Not found"
