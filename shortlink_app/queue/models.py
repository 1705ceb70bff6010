"""
Data models for queue messages.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClickEvent(BaseModel):
    """
    Event model for click recording.

    Published by the redirect endpoint when a slug resolves.
    Carries only what the click recorder needs.
    """

    slug: str = Field(..., description="The slug that was followed")
    timestamp: datetime = Field(default_factory=utcnow, description="When the click happened")

    # Request metadata, passed through unvalidated
    referrer: Optional[str] = Field(None, description="HTTP referer header")
    user_agent: Optional[str] = Field(None, description="User agent string")

    # Set by the queue on consume, used for acknowledgment
    message_id: Optional[str] = Field(None, exclude=True)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "slug": "AbCdEf",
                "timestamp": "2025-10-29T10:30:00+00:00",
                "referrer": "https://twitter.com",
                "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0",
            }
        }
    )
