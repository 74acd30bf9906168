"""Health check, metrics and store stats endpoints."""
import asyncio
import time

from fastapi import APIRouter, Request

from origin_tracker.observability import get_correlation_id, metrics, Timer
from web.config import VERSION
from web.schemas import HealthResponse, MetricsResponse
from ._deps import limiter, get_store, get_report_service, get_logger, START_TIME

router = APIRouter()
logger = get_logger(__name__)

# Health check stats cache (60 second TTL)
_stats_cache: dict = {"data": None, "expires_at": 0}
_stats_cache_lock = asyncio.Lock()
_STATS_CACHE_TTL = 60


@router.get("/health", response_model=HealthResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint for load balancer monitoring."""
    uptime_seconds = int(time.time() - START_TIME)

    now = time.time()
    async with _stats_cache_lock:
        if _stats_cache["data"] and now < _stats_cache["expires_at"]:
            store_stats = _stats_cache["data"]
            store_status = "connected"
            db_latency_ms = 0.0
        else:
            db_latency_ms = None
            try:
                with Timer("health_check_db") as timer:
                    store = await get_store()
                    store_stats = await store.get_stats()
                store_status = "connected"
                db_latency_ms = round(timer.elapsed_ms, 2)
                _stats_cache["data"] = store_stats
                _stats_cache["expires_at"] = now + _STATS_CACHE_TTL
            except Exception as e:
                store_stats = None
                store_status = f"error: {e}"

    scheme = None
    if store_stats:
        try:
            service = await get_report_service()
            scheme = (await service.selector.select()).scheme.value
        except Exception as e:
            logger.debug(f"Could not select attribution scheme: {e}")

    return {
        "status": "healthy" if store_stats else "degraded",
        "version": VERSION,
        "uptime_seconds": uptime_seconds,
        "correlation_id": get_correlation_id(),
        "store": {
            "status": store_status,
            "latency_ms": db_latency_ms,
            **(store_stats or {})
        },
        "scheme": scheme,
    }


@router.get("/store/stats")
@limiter.limit("60/minute")
async def get_store_stats(request: Request):
    """Order store statistics plus per-scheme availability counts."""
    try:
        store = await get_store()
        stats = await store.get_stats()
        service = await get_report_service()
        return {
            "status": "connected",
            **stats,
            "connection": store.get_connection_info(),
            "availability": await service.availability(),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}


@router.get("/metrics", response_model=MetricsResponse)
@limiter.limit("60/minute")
async def get_metrics_endpoint(request: Request):
    """Get application metrics."""
    return {
        "uptime_seconds": int(time.time() - START_TIME),
        "correlation_id": get_correlation_id(),
        **metrics.get_stats(),
    }
