"""
Redirect resolution.

Flow (optimized for latency):
1. Look up the target URL by slug (one indexed query)
2. Publish a ClickEvent to the click queue from a detached task
3. Caller answers with 302 immediately

The click worker drains the queue and runs the ClickRecorder, so
recording latency or failure never reaches the client.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from shortlink_app.config import settings
from shortlink_app.models import ShortUrl
from shortlink_app.queue.models import ClickEvent
from shortlink_app.queue.strategies import QueueStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedirectResult:
    """Outcome of a slug lookup. target_url is None when the slug is unknown."""
    target_url: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.target_url is not None


NOT_FOUND = RedirectResult()

# Strong references to in-flight dispatch tasks, the loop only keeps weak ones
_dispatch_tasks = set()


class RedirectResolver:
    """
    Maps slugs to target URLs and schedules click recording on hits.

    Lookup errors propagate (the route answers 500). Dispatch errors never do.
    """

    def __init__(self, db: Session, queue: QueueStrategy, queue_name: str = settings.queue_name):
        self.db = db
        self.queue = queue
        self.queue_name = queue_name

    async def resolve(
        self,
        slug: Optional[str],
        referrer: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> RedirectResult:
        if not slug:
            return NOT_FOUND

        target_url = self.db.query(ShortUrl.target_url).filter(ShortUrl.slug == slug).scalar()
        if target_url is None:
            return NOT_FOUND

        self.dispatch_click(ClickEvent(slug=slug, referrer=referrer, user_agent=user_agent))
        return RedirectResult(target_url=target_url)

    def dispatch_click(self, event: ClickEvent) -> None:
        """
        Publish the event from a detached task and return at once.

        A slow or broken queue backend cannot hold up the redirect.
        """
        task = asyncio.create_task(self._publish(event))
        _dispatch_tasks.add(task)
        task.add_done_callback(_dispatch_tasks.discard)

    async def _publish(self, event: ClickEvent) -> None:
        try:
            published = await self.queue.publish(self.queue_name, event)
        except Exception:
            logger.exception("Click dispatch failed for slug %s", event.slug)
            return
        if not published:
            logger.warning("Click for slug %s was not queued", event.slug)
