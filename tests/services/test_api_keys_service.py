"""
API Key Service Tests
Creation rules, listing without secret material, revocation and validation
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from src.models.api_key_model import APIKey
from src.services.api_keys_service import APIKeyService
from src.utils import config
from src.utils.exceptions import AuthenticationError, NotFoundError, ValidationError
from src.utils.security import hash_api_key_secret


class TestCreateAPIKey:
    """Key creation against a mocked session"""

    @pytest.fixture
    def api_key_service(self):
        return APIKeyService()

    @pytest.mark.asyncio
    async def test_create_api_key_success(self, api_key_service, mock_db_session):
        """Secret is returned once and only its hash is stored"""
        mock_db_session.execute.return_value.scalar.return_value = 0

        result = await api_key_service.create_api_key(
            db=mock_db_session,
            owner_id="user123",
            name="zapier",
            scopes=["read:bookmarks", "write:bookmarks"],
            rate_limit_per_hour=50,
        )

        assert result.id.startswith("hk_")
        assert len(result.secret) == 96
        assert result.scopes == ["read:bookmarks", "write:bookmarks"]
        assert result.rate_limit_per_hour == 50
        assert result.rate_limit_per_day == config.DEFAULT_RATE_LIMIT_PER_DAY

        stored = mock_db_session.add.call_args[0][0]
        assert isinstance(stored, APIKey)
        assert stored.secret_hash == hash_api_key_secret(result.secret)
        assert result.secret not in stored.secret_hash
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_api_key_empty_scopes(self, api_key_service, mock_db_session):
        with pytest.raises(ValidationError, match="At least one scope is required"):
            await api_key_service.create_api_key(
                db=mock_db_session, owner_id="user123", name="empty", scopes=[]
            )

        mock_db_session.add.assert_not_called()
        mock_db_session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_api_key_unknown_scope(self, api_key_service, mock_db_session):
        with pytest.raises(ValidationError, match="admin:everything"):
            await api_key_service.create_api_key(
                db=mock_db_session,
                owner_id="user123",
                name="bad",
                scopes=["read:bookmarks", "admin:everything"],
            )

    @pytest.mark.asyncio
    async def test_create_api_key_rejects_non_positive_limits(
        self, api_key_service, mock_db_session
    ):
        with pytest.raises(ValidationError, match="positive"):
            await api_key_service.create_api_key(
                db=mock_db_session,
                owner_id="user123",
                name="zero",
                scopes=["read:bookmarks"],
                rate_limit_per_hour=0,
            )

    @pytest.mark.asyncio
    async def test_create_api_key_rejects_past_expiry(self, api_key_service, mock_db_session):
        with pytest.raises(ValidationError, match="expires_at must be in the future"):
            await api_key_service.create_api_key(
                db=mock_db_session,
                owner_id="user123",
                name="stale",
                scopes=["read:bookmarks"],
                expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
            )

    @pytest.mark.asyncio
    async def test_create_api_key_max_limit_reached(self, api_key_service, mock_db_session):
        """The per-user cap on active keys is enforced"""
        mock_db_session.execute.return_value.scalar.return_value = config.MAX_API_KEYS_PER_USER

        with pytest.raises(ValidationError, match="Maximum of"):
            await api_key_service.create_api_key(
                db=mock_db_session,
                owner_id="user123",
                name="one too many",
                scopes=["read:bookmarks"],
            )

        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_api_key_retries_on_id_collision(
        self, api_key_service, mock_db_session
    ):
        """A generated id that already exists is replaced and the insert retried"""
        mock_db_session.execute.return_value.scalar.return_value = 0
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = Mock(spec=APIKey)
        mock_db_session.begin_nested.return_value.__aexit__ = AsyncMock(
            side_effect=[IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")), None]
        )

        result = await api_key_service.create_api_key(
            db=mock_db_session, owner_id="user123", name="retry", scopes=["read:bookmarks"]
        )

        assert mock_db_session.begin_nested.call_count == 2
        assert result.id == mock_db_session.add.call_args[0][0].id
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_api_key_other_integrity_errors_propagate(
        self, api_key_service, mock_db_session
    ):
        """A failure unrelated to the generated id is not retried"""
        mock_db_session.execute.return_value.scalar.return_value = 0
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = None
        mock_db_session.begin_nested.return_value.__aexit__ = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
        )

        with pytest.raises(IntegrityError, match="FOREIGN KEY"):
            await api_key_service.create_api_key(
                db=mock_db_session, owner_id="ghost", name="orphan", scopes=["read:bookmarks"]
            )

        assert mock_db_session.begin_nested.call_count == 1
        mock_db_session.commit.assert_not_called()


class TestKeyLifecycle:
    """Listing, revocation and validation against a real database"""

    @pytest.fixture
    def api_key_service(self):
        return APIKeyService()

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_owner_and_hides_secret(
        self, api_key_service, db, user, other_user
    ):
        created = await api_key_service.create_api_key(
            db=db, owner_id=user.id, name="mine", scopes=["read:bookmarks"]
        )

        own = await api_key_service.list_api_keys(db, user.id)
        theirs = await api_key_service.list_api_keys(db, other_user.id)

        assert [k.id for k in own] == [created.id]
        assert theirs == []

        dumped = own[0].model_dump()
        assert "secret" not in dumped
        assert "secret_hash" not in dumped
        assert created.secret not in str(dumped)

    @pytest.mark.asyncio
    async def test_validate_api_key_success(self, api_key_service, db, user):
        created = await api_key_service.create_api_key(
            db=db, owner_id=user.id, name="valid", scopes=["read:bookmarks"]
        )

        api_key = await api_key_service.validate_api_key(db, created.id, created.secret)

        assert api_key.id == created.id
        assert api_key.user_id == user.id

    @pytest.mark.asyncio
    async def test_validate_api_key_wrong_secret(self, api_key_service, db, user):
        created = await api_key_service.create_api_key(
            db=db, owner_id=user.id, name="valid", scopes=["read:bookmarks"]
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await api_key_service.validate_api_key(db, created.id, created.secret + "x")

        assert exc_info.value.message == "Invalid or expired API key"

    @pytest.mark.asyncio
    async def test_validate_api_key_unknown_id(self, api_key_service, db):
        with pytest.raises(AuthenticationError) as exc_info:
            await api_key_service.validate_api_key(db, "hk_doesnotexist", "secret")

        assert exc_info.value.message == "Invalid or expired API key"

    @pytest.mark.asyncio
    async def test_validate_api_key_expired(self, api_key_service, db, user):
        created = await api_key_service.create_api_key(
            db=db,
            owner_id=user.id,
            name="short lived",
            scopes=["read:bookmarks"],
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )
        api_key = await db.get(APIKey, created.id)
        api_key.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        await db.commit()

        with pytest.raises(AuthenticationError):
            await api_key_service.validate_api_key(db, created.id, created.secret)

    @pytest.mark.asyncio
    async def test_revoked_key_fails_validation_but_stays_listed(
        self, api_key_service, db, user
    ):
        created = await api_key_service.create_api_key(
            db=db, owner_id=user.id, name="to revoke", scopes=["read:bookmarks"]
        )

        revoked = await api_key_service.revoke_api_key(db, user.id, created.id)
        assert revoked.is_revoked is True

        with pytest.raises(AuthenticationError):
            await api_key_service.validate_api_key(db, created.id, created.secret)

        listed = await api_key_service.list_api_keys(db, user.id)
        assert [(k.id, k.is_revoked) for k in listed] == [(created.id, True)]

    @pytest.mark.asyncio
    async def test_revoke_twice_is_a_no_op(self, api_key_service, db, user):
        created = await api_key_service.create_api_key(
            db=db, owner_id=user.id, name="twice", scopes=["read:bookmarks"]
        )

        await api_key_service.revoke_api_key(db, user.id, created.id)
        again = await api_key_service.revoke_api_key(db, user.id, created.id)

        assert again.is_revoked is True

    @pytest.mark.asyncio
    async def test_revoke_someone_elses_key_is_not_found(
        self, api_key_service, db, user, other_user
    ):
        created = await api_key_service.create_api_key(
            db=db, owner_id=user.id, name="mine", scopes=["read:bookmarks"]
        )

        with pytest.raises(NotFoundError, match="API key not found"):
            await api_key_service.revoke_api_key(db, other_user.id, created.id)

        api_key = await db.get(APIKey, created.id)
        assert api_key.is_revoked is False

    @pytest.mark.asyncio
    async def test_revoked_keys_do_not_count_towards_quota(
        self, api_key_service, db, user, monkeypatch
    ):
        monkeypatch.setattr(config, "MAX_API_KEYS_PER_USER", 1)

        first = await api_key_service.create_api_key(
            db=db, owner_id=user.id, name="first", scopes=["read:bookmarks"]
        )
        with pytest.raises(ValidationError):
            await api_key_service.create_api_key(
                db=db, owner_id=user.id, name="second", scopes=["read:bookmarks"]
            )

        await api_key_service.revoke_api_key(db, user.id, first.id)
        second = await api_key_service.create_api_key(
            db=db, owner_id=user.id, name="second", scopes=["read:bookmarks"]
        )

        count = await db.execute(select(func.count(APIKey.id)))
        assert second.id != first.id
        assert count.scalar() == 2

    @pytest.mark.asyncio
    async def test_usage_stats_of_unused_key(self, api_key_service, db, user):
        created = await api_key_service.create_api_key(
            db=db, owner_id=user.id, name="quiet", scopes=["read:bookmarks"]
        )

        stats = await api_key_service.get_usage_stats(db, user.id, created.id)

        assert stats.api_key_id == created.id
        assert stats.stats.total_requests == 0
        assert stats.stats.error_rate == 0.0
        assert stats.recent_requests == []
