"""
API Usage Model

One row per request attempt presented with an API key id, rejected
attempts included. Rows are never updated.

api_key_id is not a foreign key: attempts carrying an id that
does not exist are recorded too.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String

from src.db.session import Base


class APIUsage(Base):
    __tablename__ = "api_usage"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    api_key_id = Column(String(64), nullable=False)
    method = Column(String(10), nullable=False)
    route = Column(String, nullable=False)
    http_status = Column(Integer, nullable=False)
    latency_ms = Column(Integer, nullable=False, default=0)
    ip_address = Column(String(64), nullable=True)
    admitted = Column(Boolean, nullable=False, default=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_api_usage_key_created", "api_key_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<APIUsage key={self.api_key_id} {self.method} {self.route} "
            f"status={self.http_status}>"
        )
