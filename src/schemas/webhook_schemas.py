"""
Pydantic Schemas for Webhook Subscriptions
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WebhookCreate(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    events: List[str] = Field(default_factory=list)
    description: Optional[str] = Field(None, max_length=200)


class WebhookInfo(BaseModel):
    id: str
    url: str
    events: List[str]
    description: Optional[str] = None
    is_active: bool
    failed_attempts: int
    last_success_at: Optional[datetime] = None
    last_failure_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WebhookCreated(WebhookInfo):
    """Creation response; the signing secret is only returned here"""

    secret: str


class ZapierHookSubscribe(BaseModel):
    target_url: Optional[str] = None
