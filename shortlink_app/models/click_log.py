from sqlalchemy import Column, String, ForeignKey
from shortlink_app.database.connection import Base
from shortlink_app.database.types import UTCDateTime, utcnow
from shortlink_app.models.short_url import new_id


class ClickLog(Base):
    """
    One raw click event (append-only).

    Rows are never updated. Aggregation happens outside this service.
    """
    __tablename__ = "click_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    short_url_id = Column(String(36), ForeignKey("short_urls.id"), nullable=False, index=True)
    # Captured as-is from the request, no validation
    referrer = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
