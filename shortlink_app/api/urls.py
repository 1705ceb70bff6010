import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Request, status

from shortlink_app.auth import require_principal
from shortlink_app.config import settings
from shortlink_app.dependencies import get_click_recorder, get_url_service
from shortlink_app.schemas.short_url import (
    ClickRecordRequest,
    ClickRecordResponse,
    ShortUrlCreate,
    ShortUrlCreated,
    ShortUrlRename,
    ShortUrlRenamed,
    ShortUrlResponse,
)
from shortlink_app.services.click_recorder import ClickRecorder
from shortlink_app.services.url_service import URLService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/urls", tags=["urls"])


def build_short_url(request: Request, slug: str) -> str:
    """<scheme>://<host>/r/<slug>, honouring X-Forwarded-Proto behind a proxy"""
    if settings.public_base_url:
        return f"{settings.public_base_url.rstrip('/')}/r/{slug}"
    scheme = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{scheme}://{host}/r/{slug}"


@router.post("/create", response_model=ShortUrlCreated, status_code=status.HTTP_201_CREATED)
async def create_short_url(
    payload: ShortUrlCreate,
    request: Request,
    url_service: URLService = Depends(get_url_service),
    principal: str = Depends(require_principal)
):
    """Create a short URL with a custom or random slug"""
    url = url_service.create_short_url(payload.target_url, payload.custom_slug)
    logger.info("Principal %s created slug %s", principal, url.slug)
    return ShortUrlCreated(
        slug=url.slug,
        short_url=build_short_url(request, url.slug),
        target_url=url.target_url,
        created_at=url.created_at,
    )


@router.patch("/update", response_model=ShortUrlRenamed)
async def rename_short_url(
    payload: ShortUrlRename,
    request: Request,
    url_service: URLService = Depends(get_url_service),
    principal: str = Depends(require_principal)
):
    """Change the slug of an existing short URL"""
    url = url_service.rename(payload.id, payload.new_slug)
    return ShortUrlRenamed(
        id=url.id,
        slug=url.slug,
        short_url=build_short_url(request, url.slug),
        target_url=url.target_url,
        clicks=url.clicks,
        created_at=url.created_at,
    )


@router.post("/stats", response_model=ClickRecordResponse)
async def record_click(
    request: Request,
    recorder: ClickRecorder = Depends(get_click_recorder)
):
    """
    Record a click directly.

    Always answers {"success": true}: malformed bodies, unknown slugs and
    store failures are all absorbed here.
    """
    try:
        payload = ClickRecordRequest.model_validate(await request.json())
    except Exception:
        logger.warning("Ignoring malformed click record request")
        return ClickRecordResponse()

    if payload.slug:
        await asyncio.to_thread(recorder.record, payload.slug, payload.referrer, payload.user_agent)
    return ClickRecordResponse()


@router.get("", response_model=List[ShortUrlResponse])
async def list_short_urls(
    limit: int = Query(50, ge=1, le=100),
    url_service: URLService = Depends(get_url_service),
    principal: str = Depends(require_principal)
):
    """Short URLs, newest first"""
    return url_service.list_urls(limit)


@router.get("/{url_id}", response_model=ShortUrlResponse)
async def get_short_url(
    url_id: str,
    url_service: URLService = Depends(get_url_service),
    principal: str = Depends(require_principal)
):
    return url_service.get_by_id(url_id)
