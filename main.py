import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from shortlink_app.config import settings
from shortlink_app.database.connection import engine, Base
from shortlink_app.api.v1 import urls, redirect
from shortlink_app.dependencies import get_cache
from shortlink_app.exceptions import (
    ConflictError,
    InvalidPageError,
    NotFoundError,
    RetriesExhaustedError,
    ShortLinkError,
    TransientIOError,
)
from shortlink_app.hit_processor.view_aggregator import ViewAggregator
from shortlink_app.logging_config import setup_logging

# Import models to ensure they're registered with Base
from shortlink_app.models import ShortURL  # noqa: F401

logger = logging.getLogger("shortlink_app.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    cache = get_cache()

    aggregator = None
    aggregator_task = None
    if settings.run_view_aggregator:
        aggregator = ViewAggregator(cache=cache)
        aggregator_task = asyncio.create_task(aggregator.start())

    yield

    # Shutdown: uvicorn has already drained in-flight requests
    try:
        if aggregator_task is not None:
            aggregator.stop()
            await aggregator_task
    finally:
        await cache.close()
        engine.dispose()
        logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A URL shortener with cached redirects and aggregated view counts",
    debug=settings.debug,
    lifespan=lifespan
)


######## Domain errors -> HTTP

ERROR_STATUS = {
    ConflictError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    RetriesExhaustedError: status.HTTP_503_SERVICE_UNAVAILABLE,
    TransientIOError: status.HTTP_503_SERVICE_UNAVAILABLE,
    InvalidPageError: status.HTTP_400_BAD_REQUEST,
}


@app.exception_handler(ShortLinkError)
async def short_link_error_handler(request: Request, exc: ShortLinkError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


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


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=settings.shutdown_grace_period,
    )
