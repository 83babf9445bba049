"""
API Key Service - Business Logic for API Key Management
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.api_keys_repository import get_api_key_repository
from src.db.usage_repository import get_usage_repository
from src.models.api_key_model import APIKey
from src.schemas.api_keys_schemas import (
    APIKeyCreated,
    APIKeyInfo,
    APIKeyStatsResponse,
    UsageRecordInfo,
    UsageStats,
)
from src.utils import config
from src.utils.exceptions import AuthenticationError, NotFoundError, ValidationError
from src.utils.scopes import unknown_scopes
from src.utils.security import (
    generate_api_key_id,
    generate_api_key_secret,
    hash_api_key_secret,
    verify_api_key_secret,
)

logger = logging.getLogger(__name__)


class APIKeyService:
    """Service for API key operations"""

    MAX_RETRY_ATTEMPTS = 5
    STATS_SAMPLE_SIZE = 1000
    RECENT_REQUESTS_LIMIT = 100

    async def create_api_key(
        self,
        db: AsyncSession,
        owner_id: str,
        name: str,
        scopes: List[str],
        rate_limit_per_hour: Optional[int] = None,
        rate_limit_per_day: Optional[int] = None,
        expires_at: Optional[datetime] = None,
        allowed_origins: Optional[List[str]] = None,
        ip_whitelist: Optional[List[str]] = None,
        description: Optional[str] = None,
    ) -> APIKeyCreated:
        """
        Create a new API key for a user

        Args:
            db: Database session
            owner_id: ID of the owning user
            name: Key name
            scopes: Capabilities granted to the key
            rate_limit_per_hour: Hourly quota (defaults from config)
            rate_limit_per_day: Daily quota (defaults from config)
            expires_at: Optional expiry, must be in the future
            allowed_origins: Optional Origin allow-list
            ip_whitelist: Optional client IP allow-list
            description: Optional free text

        Returns:
            APIKeyCreated carrying the plaintext secret, the only time it is exposed

        Raises:
            ValidationError: If scopes are empty or unknown, limits are not
                positive, expiry is in the past, or the key quota is reached
        """
        scopes = list(dict.fromkeys(scopes or []))
        if not scopes:
            raise ValidationError("At least one scope is required")

        invalid = unknown_scopes(scopes)
        if invalid:
            raise ValidationError(f"Unknown scope(s): {', '.join(invalid)}")

        if rate_limit_per_hour is None:
            rate_limit_per_hour = config.DEFAULT_RATE_LIMIT_PER_HOUR
        if rate_limit_per_day is None:
            rate_limit_per_day = config.DEFAULT_RATE_LIMIT_PER_DAY

        if rate_limit_per_hour <= 0 or rate_limit_per_day <= 0:
            raise ValidationError("Rate limits must be positive integers")

        if expires_at is not None:
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= datetime.now(timezone.utc):
                raise ValidationError("expires_at must be in the future")

        repo = get_api_key_repository(db)

        active_count = await repo.count_active_keys(owner_id)
        if active_count >= config.MAX_API_KEYS_PER_USER:
            raise ValidationError(
                f"Maximum of {config.MAX_API_KEYS_PER_USER} active API keys allowed per user"
            )

        secret = generate_api_key_secret()
        secret_hash = hash_api_key_secret(secret)

        for attempt in range(self.MAX_RETRY_ATTEMPTS):
            api_key = APIKey(
                id=generate_api_key_id(),
                user_id=owner_id,
                name=name,
                description=description,
                secret_hash=secret_hash,
                scopes=scopes,
                rate_limit_per_hour=rate_limit_per_hour,
                rate_limit_per_day=rate_limit_per_day,
                expires_at=expires_at,
                allowed_origins=allowed_origins or None,
                ip_whitelist=ip_whitelist or None,
                is_revoked=False,
                created_at=datetime.now(timezone.utc),
            )
            try:
                async with db.begin_nested():
                    db.add(api_key)
                break
            except IntegrityError:
                # retry only when the generated id is already taken
                if await repo.get_by_id(api_key.id) is None:
                    raise
                logger.warning(f"API key id collision, retrying (attempt {attempt + 1})")
                if attempt == self.MAX_RETRY_ATTEMPTS - 1:
                    raise ValidationError(
                        "Failed to generate unique API key after multiple attempts"
                    )

        await db.commit()

        logger.info(f"API key {api_key.id} created for user {owner_id}")

        info = APIKeyInfo.model_validate(api_key)
        return APIKeyCreated(**info.model_dump(), secret=secret)

    async def list_api_keys(self, db: AsyncSession, owner_id: str) -> List[APIKeyInfo]:
        """
        All keys of a user, revoked ones included, without secret material
        """
        keys = await get_api_key_repository(db).get_user_keys(owner_id)
        return [APIKeyInfo.model_validate(key) for key in keys]

    async def revoke_api_key(
        self, db: AsyncSession, owner_id: str, key_id: str
    ) -> APIKeyInfo:
        """
        Revoke an API key

        Revoking twice is a no-op. Keys are never hard-deleted because usage
        history refers to them.

        Raises:
            NotFoundError: If the key does not exist or belongs to someone else
        """
        repo = get_api_key_repository(db)
        api_key = await repo.get_owned(key_id, owner_id)

        if not api_key:
            raise NotFoundError("API key not found")

        if not api_key.is_revoked:
            await repo.update(api_key, is_revoked=True)
            await db.commit()
            logger.info(f"API key {key_id} revoked by user {owner_id}")

        return APIKeyInfo.model_validate(api_key)

    async def validate_api_key(
        self, db: AsyncSession, presented_id: str, presented_secret: str
    ) -> APIKey:
        """
        Check a presented (id, secret) pair against the key store

        Every failure raises the same AuthenticationError so callers cannot
        tell an unknown id from a wrong secret.

        Raises:
            AuthenticationError: If the key is missing, revoked, expired or
                the secret does not match
        """
        if not presented_id or not presented_secret:
            raise AuthenticationError()

        api_key = await get_api_key_repository(db).get_by_id(presented_id)

        if api_key is None:
            logger.info(f"Rejected unknown API key id {presented_id}")
            raise AuthenticationError()

        if api_key.is_revoked:
            logger.info(f"Rejected revoked API key {api_key.id}")
            raise AuthenticationError()

        if api_key.is_expired():
            logger.info(f"Rejected expired API key {api_key.id}")
            raise AuthenticationError()

        if not verify_api_key_secret(presented_secret, api_key.secret_hash):
            logger.warning(f"Secret mismatch for API key {api_key.id}")
            raise AuthenticationError()

        return api_key

    async def get_usage_stats(
        self, db: AsyncSession, owner_id: str, key_id: str
    ) -> APIKeyStatsResponse:
        """
        Usage summary of one key for its owner

        Raises:
            NotFoundError: If the key does not exist or belongs to someone else
        """
        api_key = await get_api_key_repository(db).get_owned(key_id, owner_id)
        if not api_key:
            raise NotFoundError("API key not found")

        usage = get_usage_repository(db)
        now = datetime.now(timezone.utc)
        one_day_ago = now - timedelta(days=1)
        one_week_ago = now - timedelta(days=7)

        total_requests = await usage.count(key_id)
        requests_today = await usage.count(key_id, since=one_day_ago)
        requests_this_week = await usage.count(key_id, since=one_week_ago)
        sample = await usage.latency_and_status_since(
            key_id, one_week_ago, limit=self.STATS_SAMPLE_SIZE
        )

        avg_response_time = 0
        error_rate = 0.0
        if sample:
            avg_response_time = round(sum(latency or 0 for latency, _ in sample) / len(sample))
            errors = sum(1 for _, status_code in sample if status_code >= 400)
            error_rate = round(errors / len(sample) * 100, 2)

        recent = await usage.recent(key_id, limit=self.RECENT_REQUESTS_LIMIT)

        return APIKeyStatsResponse(
            api_key_id=api_key.id,
            name=api_key.name,
            stats=UsageStats(
                total_requests=total_requests,
                requests_today=requests_today,
                requests_this_week=requests_this_week,
                avg_response_time=avg_response_time,
                error_rate=error_rate,
            ),
            recent_requests=[UsageRecordInfo.model_validate(r) for r in recent],
        )


api_key_service = APIKeyService()
