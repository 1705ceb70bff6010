import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.errors import Internal, InvalidFormat, NotFound, SlugTaken
from shortlink_app.models import ShortUrl
from shortlink_app.services.slug_allocator import SlugAllocator
from shortlink_app.services.slug_generator import SlugGenerator

logger = logging.getLogger(__name__)

TARGET_URL_SCHEME = "https://"


class URLService:
    """
    Management operations on short URLs: create, rename, get and list.

    Slug choice is delegated to SlugAllocator. The allocator's existence
    check and our INSERT/UPDATE are two separate statements, so a
    concurrent request can take the slug in between. The unique constraint
    on short_urls.slug catches that at commit time and we report it as
    SlugTaken, the same error the pre-check would have raised.
    """

    def __init__(self, db: Session, generator: SlugGenerator):
        """
        Args:
            db: Database session
            generator: Slug generator strategy used for random slugs
        """
        self.db = db
        self.allocator = SlugAllocator(db, generator)

    def create_short_url(self, target_url: Optional[str], custom_slug: Optional[str] = None) -> ShortUrl:
        """
        Create a short URL with a custom or generated slug.

        Raises:
            InvalidFormat: missing or non-https target, malformed custom slug
            SlugTaken: custom slug in use (pre-check or write-time conflict)
            ExhaustedRetries: no free generated slug found
        """
        if not target_url:
            raise InvalidFormat("Target URL is required")
        if not target_url.startswith(TARGET_URL_SCHEME):
            raise InvalidFormat(f"Target URL must start with {TARGET_URL_SCHEME}")

        slug = self.allocator.allocate(custom_slug)

        url = ShortUrl(slug=slug, target_url=target_url, clicks=0)
        self.db.add(url)
        self._commit_slug(slug)
        self.db.refresh(url)

        logger.info("Created short URL %s -> %s", url.slug, url.target_url)
        return url

    def rename(self, url_id: Optional[str], new_slug: Optional[str]) -> ShortUrl:
        """
        Change the slug of an existing record.

        Renaming to the record's own slug is a no-op that succeeds.

        Raises:
            InvalidFormat: missing id/slug or slug breaks the 4-10 rule
            NotFound: unknown id
            SlugTaken: slug owned by another record
        """
        if not url_id:
            raise InvalidFormat("URL ID is required")
        if not new_slug:
            raise InvalidFormat("New slug is required")

        slug = self.allocator.reallocate(url_id, new_slug)

        url = self.db.get(ShortUrl, url_id, populate_existing=True)
        if url.slug != slug:
            old_slug = url.slug
            url.slug = slug
            self._commit_slug(slug)
            self.db.refresh(url)
            logger.info("Renamed short URL %s: %s -> %s", url.id, old_slug, slug)

        return url

    def get_by_id(self, url_id: str) -> ShortUrl:
        # Clicks change behind this session's back (click worker)
        url = self.db.get(ShortUrl, url_id, populate_existing=True)
        if url is None:
            raise NotFound("URL not found")
        return url

    def list_urls(self, limit: int = 50) -> List[ShortUrl]:
        """Most recently created first"""
        return (
            self.db.query(ShortUrl)
            .populate_existing()
            .order_by(ShortUrl.created_at.desc(), ShortUrl.id)
            .limit(limit)
            .all()
        )

    def _commit_slug(self, slug: str) -> None:
        """Commit, turning a unique-constraint violation into SlugTaken and other store errors into Internal"""
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Slug %s taken by a concurrent write", slug)
            raise SlugTaken(slug)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise Internal(f"Failed to store slug {slug}") from e
