"""
Pydantic Schemas for API Key Request/Response Validation

Scope membership is checked by the key service rather than here so that
bad scopes surface as a 400 ValidationError like every other key-management
failure.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class APIKeyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    scopes: List[str] = Field(default_factory=list)
    rate_limit_per_hour: Optional[int] = None
    rate_limit_per_day: Optional[int] = None
    expires_at: Optional[datetime] = None
    expiry: Optional[str] = Field(None, pattern="^(1H|1D|1M|1Y)$")
    allowed_origins: Optional[List[str]] = None
    ip_whitelist: Optional[List[str]] = None


class APIKeyInfo(BaseModel):
    """Information about an API key (never the secret or its hash)"""

    id: str
    name: str
    description: Optional[str] = None
    scopes: List[str]
    rate_limit_per_hour: int
    rate_limit_per_day: int
    expires_at: Optional[datetime] = None
    allowed_origins: Optional[List[str]] = None
    ip_whitelist: Optional[List[str]] = None
    is_revoked: bool
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class APIKeyCreated(APIKeyInfo):
    """Returned once, at creation; the only place the secret ever appears"""

    secret: str
    warning: str = "Store the secret securely. It will not be shown again."


class UsageRecordInfo(BaseModel):
    method: str
    route: str
    http_status: int
    latency_ms: int
    ip_address: Optional[str] = None
    admitted: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UsageStats(BaseModel):
    total_requests: int
    requests_today: int
    requests_this_week: int
    avg_response_time: int
    error_rate: float


class APIKeyStatsResponse(BaseModel):
    api_key_id: str
    name: str
    stats: UsageStats
    recent_requests: List[UsageRecordInfo]
