"""
API Key Management Routes (dashboard session required)
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import get_db
from src.models.user_model import User
from src.routes.docs.api_key_routes_docs import (
    api_key_stats_responses,
    create_api_key_responses,
    list_api_keys_responses,
    revoke_api_key_responses,
)
from src.schemas.api_keys_schemas import APIKeyCreate
from src.services.api_keys_service import api_key_service
from src.utils.auth import get_current_user
from src.utils.exceptions import NotFoundError, ValidationError
from src.utils.responses import error_response, exception_response, success_response
from src.utils.security import parse_expiry

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, responses=create_api_key_responses)
async def create_api_key(
    request: APIKeyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a new API key

    The response is the only time the secret is shown. Authenticate public
    API calls with `Authorization: Bearer <id>:<secret>` or the
    `X-API-Key` / `X-API-Secret` headers.

    **Expiry:** either an absolute `expires_at` or one of the `expiry`
    shortcuts `1H`, `1D`, `1M`, `1Y`. Omit both for a key that never expires.
    """
    expires_at = request.expires_at
    if expires_at is None and request.expiry:
        expires_at = parse_expiry(request.expiry)

    try:
        result = await api_key_service.create_api_key(
            db=db,
            owner_id=current_user.id,
            name=request.name,
            scopes=request.scopes,
            rate_limit_per_hour=request.rate_limit_per_hour,
            rate_limit_per_day=request.rate_limit_per_day,
            expires_at=expires_at,
            allowed_origins=request.allowed_origins,
            ip_whitelist=request.ip_whitelist,
            description=request.description,
        )
        return success_response(
            status_code=status.HTTP_201_CREATED,
            message="API key created successfully",
            data=result,
        )
    except ValidationError as e:
        logger.warning(
            f"API key creation validation failed for user {current_user.id}: {e.message}"
        )
        return exception_response(e)
    except Exception as e:
        logger.error(
            f"Failed to create API key for user {current_user.id}: {str(e)}",
            exc_info=True,
        )
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to create API key. Please try again",
        )


@router.get("", responses=list_api_keys_responses)
async def list_api_keys(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Get all API keys for the current user, revoked ones included
    Returns key metadata (never the secret)
    """
    try:
        api_keys = await api_key_service.list_api_keys(db=db, owner_id=current_user.id)
        return success_response(
            status_code=status.HTTP_200_OK,
            message="API keys retrieved successfully",
            data={"api_keys": api_keys, "count": len(api_keys)},
        )
    except Exception as e:
        logger.error(
            f"Failed to list API keys for user {current_user.id}: {str(e)}",
            exc_info=True,
        )
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to retrieve API keys",
        )


@router.delete("/{key_id}", responses=revoke_api_key_responses)
async def revoke_api_key(
    key_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Revoke an API key
    Once revoked, the key cannot be used anymore; it stays listed
    """
    try:
        result = await api_key_service.revoke_api_key(
            db=db, owner_id=current_user.id, key_id=key_id
        )
        return success_response(
            status_code=status.HTTP_200_OK,
            message="API key revoked successfully",
            data=result,
        )
    except NotFoundError as e:
        logger.warning(f"API key {key_id} not found for revocation by {current_user.id}")
        return exception_response(e)
    except Exception as e:
        logger.error(
            f"Failed to revoke API key for user {current_user.id}: {str(e)}",
            exc_info=True,
        )
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to revoke API key. Please try again",
        )


@router.get("/{key_id}/stats", responses=api_key_stats_responses)
async def get_api_key_stats(
    key_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Usage statistics of one key: totals, latency, error rate and the
    100 most recent requests
    """
    try:
        stats = await api_key_service.get_usage_stats(
            db=db, owner_id=current_user.id, key_id=key_id
        )
        return success_response(
            status_code=status.HTTP_200_OK,
            message="API key stats retrieved successfully",
            data=stats,
        )
    except NotFoundError as e:
        return exception_response(e)
    except Exception as e:
        logger.error(
            f"Failed to load stats of API key {key_id}: {str(e)}", exc_info=True
        )
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to fetch API key stats",
        )
