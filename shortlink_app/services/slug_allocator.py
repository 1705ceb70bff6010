"""
Slug allocation: turns a custom slug request, or nothing, into a slug that
is free in the store at the time of the check.

The allocator only reads. Persisting the slug is the caller's job, and the
check-then-write window is closed by the unique constraint on ShortUrl.slug
(see URLService).
"""

import logging
import re
from typing import Optional

from sqlalchemy.orm import Session

from shortlink_app.config import settings
from shortlink_app.errors import ExhaustedRetries, InvalidFormat, NotFound, SlugTaken
from shortlink_app.models import ShortUrl
from shortlink_app.services.slug_generator import SlugGenerator

logger = logging.getLogger(__name__)

SLUG_CHARSET = "A-Za-z0-9_-"


def slug_pattern(min_length: int, max_length: int) -> "re.Pattern[str]":
    return re.compile(rf"^[{SLUG_CHARSET}]{{{min_length},{max_length}}}$")


CUSTOM_SLUG_RE = slug_pattern(4, settings.custom_slug_max_length)
RENAME_SLUG_RE = slug_pattern(4, settings.rename_slug_max_length)


class SlugAllocator:
    """
    Allocates slugs for new and renamed short URLs.

    Args:
        db: Database session used for existence checks
        generator: Strategy that produces random candidates
        length: Length of generated slugs
        max_attempts: Number of generated candidates tried before giving up
    """

    def __init__(
        self,
        db: Session,
        generator: SlugGenerator,
        length: int = settings.slug_length,
        max_attempts: int = settings.max_slug_attempts
    ):
        self.db = db
        self.generator = generator
        self.length = length
        self.max_attempts = max_attempts

    def allocate(self, requested_slug: Optional[str] = None) -> str:
        """
        Return a free slug.

        A requested slug is validated and returned unchanged. Without one,
        random candidates are drawn until a free one is found.

        Raises:
            InvalidFormat: requested slug breaks the 4-200 [A-Za-z0-9_-] rule
            SlugTaken: requested slug already exists
            ExhaustedRetries: every generated candidate collided
        """
        if requested_slug:
            if not CUSTOM_SLUG_RE.fullmatch(requested_slug):
                raise InvalidFormat(
                    f"Custom slug must be 4-{settings.custom_slug_max_length} characters "
                    "and contain only letters, numbers, dashes, and underscores"
                )
            if self._find(requested_slug) is not None:
                raise SlugTaken(requested_slug)
            return requested_slug

        for attempt in range(1, self.max_attempts + 1):
            candidate = self.generator.generate(self.length)
            if self._find(candidate) is None:
                return candidate
            logger.debug("Slug collision on attempt %d: %s", attempt, candidate)

        logger.error(
            "Slug space pressure: %d generated slugs of length %d all collided",
            self.max_attempts, self.length
        )
        raise ExhaustedRetries(self.max_attempts)

    def reallocate(self, url_id: str, new_slug: str) -> str:
        """
        Validate a rename of record `url_id` to `new_slug`.

        Renaming a record to its current slug is allowed.

        Raises:
            InvalidFormat: new slug breaks the 4-10 [A-Za-z0-9_-] rule
            NotFound: no record with this id
            SlugTaken: another record owns the slug
        """
        if not RENAME_SLUG_RE.fullmatch(new_slug or ""):
            raise InvalidFormat(
                f"Slug must be 4-{settings.rename_slug_max_length} characters "
                "and contain only letters, numbers, dashes, and underscores"
            )

        if self.db.get(ShortUrl, url_id) is None:
            raise NotFound("URL not found")

        owner = self._find(new_slug)
        if owner is not None and owner.id != url_id:
            raise SlugTaken(new_slug)

        return new_slug

    def _find(self, slug: str) -> Optional[ShortUrl]:
        return self.db.query(ShortUrl).filter(ShortUrl.slug == slug).first()
