"""
API Key Model

Only the SHA-256 hash of the secret is persisted. Keys are soft-deleted
through is_revoked so that usage history keeps pointing at a real record.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from src.db.session import Base


def _utcnow():
    return datetime.now(timezone.utc)


class APIKey(Base):
    __tablename__ = "api_keys"

    id = Column(String(40), primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    secret_hash = Column(String(64), nullable=False)
    scopes = Column(JSON, nullable=False, default=list)
    rate_limit_per_hour = Column(Integer, nullable=False, default=1000)
    rate_limit_per_day = Column(Integer, nullable=False, default=10000)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
    allowed_origins = Column(JSON, nullable=True)
    ip_whitelist = Column(JSON, nullable=True)
    is_revoked = Column(Boolean, nullable=False, default=False)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="api_keys")

    def is_expired(self, now: datetime = None) -> bool:
        if self.expires_at is None:
            return False

        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at

        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        return expires_at <= now

    def __repr__(self) -> str:
        return f"<APIKey id={self.id} user={self.user_id} revoked={self.is_revoked}>"
