"""
Pydantic Schemas for Bookmark and Collection Resources
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BookmarkCreate(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    collection_id: Optional[str] = None
    is_public: bool = False


class BookmarkUpdate(BaseModel):
    url: Optional[str] = Field(None, min_length=1, max_length=2048)
    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    collection_id: Optional[str] = None
    is_public: Optional[bool] = None

    @field_validator("url", "tags", "is_public")
    def reject_null(cls, v, info):
        # omitted fields keep their value; only an explicit null reaches here
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class BookmarkOut(BaseModel):
    id: str
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    collection_id: Optional[str] = None
    is_public: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CollectionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_public: bool = False


class CollectionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_public: Optional[bool] = None

    @field_validator("name", "is_public")
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class CollectionOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_public: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool
