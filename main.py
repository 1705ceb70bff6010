import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shortlink_app.config import settings
from shortlink_app.database.connection import engine, Base
from shortlink_app.api import urls, redirect
from shortlink_app.click_processor.click_worker import ClickWorker
from shortlink_app.dependencies import get_click_recorder, get_queue
from shortlink_app.errors import ShortlinkError

# Import models to ensure they're registered with Base
from shortlink_app.models import ShortUrl, ClickLog  # noqa: F401

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("shortlink")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)

    worker_task = None
    if settings.click_worker_in_process:
        # Honour overrides so the worker drains the same queue the routes publish to
        queue_provider = app.dependency_overrides.get(get_queue, get_queue)
        worker = ClickWorker(queue=queue_provider(), recorder=get_click_recorder())
        worker_task = asyncio.create_task(worker.start())

    yield

    if worker_task is not None:
        worker.stop()
        worker_task.cancel()
        try:
            await worker_task
        except asyncio.CancelledError:
            pass


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Slug-based URL redirector with decoupled click recording",
    debug=settings.debug,
    lifespan=lifespan,
)


@app.exception_handler(ShortlinkError)
async def shortlink_error_handler(request: Request, exc: ShortlinkError):
    """Client errors keep their message, server errors get a generic one"""
    if exc.expose:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
    logger.error(
        "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message,
        exc_info=exc,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": type(exc).public_message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else "Invalid request body"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(urls.router, prefix="/api")
app.include_router(redirect.router)
