import uuid

from sqlalchemy import Column, Integer, String
from shortlink_app.database.connection import Base
from shortlink_app.database.types import UTCDateTime, utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class ShortUrl(Base):
    """
    A slug pointing at a target URL.

    The slug column carries a unique constraint: it is the store-level
    guarantee that two concurrent creations can never share a slug.
    clicks is only ever changed by the click recorder.
    """
    __tablename__ = "short_urls"

    id = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String(200), unique=True, nullable=False, index=True)
    target_url = Column(String, nullable=False)
    clicks = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<ShortUrl(id={self.id}, slug='{self.slug}', clicks={self.clicks})>"
