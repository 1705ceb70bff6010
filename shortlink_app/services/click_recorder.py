"""
Click recording.

Records one click as a single transaction: the aggregate counter on
ShortUrl and a new ClickLog row are committed together or not at all,
so counters and logs never drift apart under concurrent clicks.
"""

import logging
from typing import Optional

from sqlalchemy import update

from shortlink_app.database.connection import SessionLocal
from shortlink_app.models import ClickLog, ShortUrl

logger = logging.getLogger(__name__)


class ClickRecorder:
    """
    Fire-and-forget click recorder.

    record() never raises. A missing slug is a silent no-op (the link may
    have been renamed between redirect and recording), and store failures
    end in a log entry. Either way the redirect has already been answered.
    """

    def __init__(self, session_factory=SessionLocal):
        """
        Args:
            session_factory: Callable returning a new SQLAlchemy session
        """
        self.session_factory = session_factory

    def record(
        self,
        slug: str,
        referrer: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> None:
        if not slug:
            return

        try:
            # Closing the session rolls back anything left uncommitted
            with self.session_factory() as db:
                url_id = db.query(ShortUrl.id).filter(ShortUrl.slug == slug).scalar()
                if url_id is None:
                    logger.debug("Click for unknown slug %s ignored", slug)
                    return

                # Increment in SQL so concurrent recorders never lose an update
                db.execute(
                    update(ShortUrl)
                    .where(ShortUrl.id == url_id)
                    .values(clicks=ShortUrl.clicks + 1)
                )
                db.add(ClickLog(
                    short_url_id=url_id,
                    referrer=referrer or None,
                    user_agent=user_agent or None,
                ))
                db.commit()

        except Exception:
            logger.exception("Failed to record click for slug %s", slug)
