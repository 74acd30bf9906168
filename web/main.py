"""
FastAPI web application for the WooCommerce order origin tracker.
"""
import os
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.responses import ORJSONResponse, JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from web.config import STATIC_DIR, VERSION, WEB_HOST, WEB_PORT
from web.routes import api, pages
from web.routes.api._deps import limiter
from web.middleware import RequestLoggingMiddleware, RequestTimeoutMiddleware, FirstTouchMiddleware
from origin_tracker.store import get_store, close_store
from origin_tracker.config import validate_config, ConfigurationError
from origin_tracker.observability import setup_logging, get_logger, correlation_context

# Configure structured logging
# Use JSON format in production (LOG_FORMAT=json), human-readable otherwise
log_format = os.getenv("LOG_FORMAT", "text")
log_level = os.getenv("LOG_LEVEL", "INFO")
setup_logging(level=log_level, json_format=(log_format == "json"))
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Order Origin Tracker",
    description="First-touch order attribution and origin reports for WooCommerce",
    version=VERSION,
    default_response_class=ORJSONResponse
)

# Add rate limiter to app state
app.state.limiter = limiter

# Custom rate limit exceeded handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)}")
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "detail": "Too many requests. Please try again later.",
            "retry_after": exc.detail
        }
    )

# Server-side first touch for storefront page loads
app.add_middleware(FirstTouchMiddleware)

# Add request logging middleware (adds correlation IDs and timing)
app.add_middleware(RequestLoggingMiddleware)

# Add request timeout middleware (prevents long-running requests)
# Must be AFTER logging so correlation_id is set when timeout fires
app.add_middleware(RequestTimeoutMiddleware)

# Add Gzip compression (min 500 bytes to compress)
app.add_middleware(GZipMiddleware, minimum_size=500)

# Mount static files
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

# Include routers
app.include_router(pages.router)
app.include_router(api.router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    logger.info("Order origin tracker starting...")

    # Validate configuration early - fail fast with clear errors
    try:
        validate_config()
        logger.info("Configuration validated")
    except ConfigurationError as e:
        logger.critical(f"Configuration error: {e}")
        raise SystemExit(1)

    with correlation_context("startup"):
        try:
            store = await get_store()
            stats = await store.get_stats()
            logger.info(
                f"Order store ready: {stats['orders']} orders, "
                f"{stats['hpos_orders']} HPOS orders, "
                f"{stats['attribution_rows']} attribution rows, "
                f"{stats['db_size_mb']} MB"
            )
        except Exception as e:
            logger.error(f"Order store initialization failed: {e}", exc_info=True)
            raise  # Fail fast - the store is required

    logger.info("Order origin tracker ready")


@app.on_event("shutdown")
async def shutdown_event():
    try:
        await close_store()
        logger.info("Order store closed")
    except Exception as e:
        logger.warning(f"Error closing order store: {e}")
    logger.info("Order origin tracker stopped")


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("web.main:app", host=WEB_HOST, port=WEB_PORT, log_config=None)
