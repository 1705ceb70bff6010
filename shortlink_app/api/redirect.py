from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import PlainTextResponse

from shortlink_app.dependencies import get_redirect_resolver
from shortlink_app.services.redirect_resolver import RedirectResolver

router = APIRouter(tags=["redirect"])


def location_header(target_url: str) -> str:
    """
    Header value for a stored target.

    Printable ASCII passes through untouched. Everything else (spaces,
    control characters, non-ASCII) is percent-encoded as UTF-8.
    """
    return "".join(c if "!" <= c <= "~" else quote(c, safe="") for c in target_url)


def not_found() -> PlainTextResponse:
    return PlainTextResponse("Not Found", status_code=status.HTTP_404_NOT_FOUND)


@router.get("/r")
async def redirect_without_slug():
    return not_found()


@router.get("/r/{slug_path:path}")
async def redirect_to_target(
    slug_path: str,
    request: Request,
    resolver: RedirectResolver = Depends(get_redirect_resolver)
):
    """
    Redirect to the target URL.

    Only the first path segment is the slug (/r/abc/anything -> "abc").
    The click is queued before the response is returned, but recording
    happens in the click worker: the client never waits on it.
    A lookup failure propagates to the generic 500 handler.
    """
    slug = slug_path.split("/", 1)[0]

    result = await resolver.resolve(
        slug,
        referrer=request.headers.get("referer"),
        user_agent=request.headers.get("user-agent"),
    )

    if not result.found:
        return not_found()

    # RedirectResponse would re-quote characters such as | and ^
    return Response(
        status_code=status.HTTP_302_FOUND,
        headers={"location": location_header(result.target_url)},
    )
