from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime


class CamelModel(BaseModel):
    """JSON bodies use camelCase (targetUrl, customSlug, ...), Python uses snake_case"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ShortUrlCreate(CamelModel):
    # Presence and scheme are checked by URLService
    target_url: Optional[str] = Field(None, description="Destination, must start with https://")
    custom_slug: Optional[str] = Field(None, description="Optional custom slug (4-200 chars)")


class ShortUrlRename(CamelModel):
    id: Optional[str] = None
    new_slug: Optional[str] = Field(None, description="New slug (4-10 chars)")


class ClickRecordRequest(CamelModel):
    slug: Optional[str] = None
    referrer: Optional[str] = None
    user_agent: Optional[str] = None


class ShortUrlCreated(CamelModel):
    slug: str
    short_url: str
    target_url: str
    created_at: datetime


class ShortUrlResponse(CamelModel):
    """Record as returned by get-by-id and list"""
    id: str
    slug: str
    target_url: str
    clicks: int
    created_at: datetime


class ShortUrlRenamed(ShortUrlResponse):
    short_url: str


class ClickRecordResponse(CamelModel):
    success: bool = True
