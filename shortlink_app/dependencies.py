"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of the click queue, slug generator
and click recorder, plus per-request services built on a DB session.
Tests swap any of them through app.dependency_overrides.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from shortlink_app.config import settings
from shortlink_app.database.connection import get_db
from shortlink_app.queue.factory import QueueBackend, QueueFactory
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.services.click_recorder import ClickRecorder
from shortlink_app.services.redirect_resolver import RedirectResolver
from shortlink_app.services.slug_generator import RandomSlugGenerator, SlugGenerator
from shortlink_app.services.url_service import URLService


@lru_cache()
def get_queue() -> QueueStrategy:
    """Click queue (singleton), backend chosen by settings.queue_backend"""
    backend = QueueBackend(settings.queue_backend)
    return QueueFactory.create(backend)


@lru_cache()
def get_slug_generator() -> SlugGenerator:
    return RandomSlugGenerator()


@lru_cache()
def get_click_recorder() -> ClickRecorder:
    """Recorder opening its own sessions (singleton)"""
    return ClickRecorder()


def get_url_service(
    db: Session = Depends(get_db),
    generator: SlugGenerator = Depends(get_slug_generator)
) -> URLService:
    return URLService(db=db, generator=generator)


def get_redirect_resolver(
    db: Session = Depends(get_db),
    queue: QueueStrategy = Depends(get_queue)
) -> RedirectResolver:
    return RedirectResolver(db=db, queue=queue)
