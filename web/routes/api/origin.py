"""First-touch origin resolution and the checkout hook that persists it."""
from typing import Optional
from urllib.parse import unquote

from fastapi import APIRouter, Query, Request, HTTPException

from origin_tracker.config import config
from origin_tracker.first_touch import resolve_origin_from_url
from origin_tracker.repositories import OrderOriginRepository
from web.config import STORE_HOST
from web.schemas import OriginResolveResponse, SaveOriginRequest, SaveOriginResponse
from ._deps import limiter, get_store, get_logger, OrderNotFoundError

router = APIRouter()
logger = get_logger(__name__)


@router.get("/origin/resolve", response_model=OriginResolveResponse)
@limiter.limit("120/minute")
async def resolve_origin(
    request: Request,
    url: str = Query(..., max_length=4096),
    referrer: Optional[str] = Query(None, max_length=4096),
    host: Optional[str] = Query(None, max_length=255),
):
    """Origin label for a landing page view, used by tracker.js."""
    origin = resolve_origin_from_url(url, referrer, host or STORE_HOST or None)
    return {
        "origin": origin,
        "cookie_name": config.tracker.cookie_name,
        "max_age_seconds": config.tracker.cookie_max_age_seconds,
    }


@router.post("/checkout/orders/{order_id}/origin", response_model=SaveOriginResponse)
@limiter.limit("60/minute")
async def save_order_origin(request: Request, order_id: int, body: Optional[SaveOriginRequest] = None):
    """
    Order-creation hook.

    Saves the origin from the request body, or from the first-touch
    cookie when the body carries none.
    """
    origin = body.origin if body and body.origin else None
    if not origin:
        cookie = request.cookies.get(config.tracker.cookie_name)
        origin = unquote(cookie) if cookie else None

    store = await get_store()
    repository = OrderOriginRepository(store)
    try:
        saved = await repository.save_origin(order_id, origin)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "order_id": order_id,
        "saved": saved,
        "origin": await repository.get_origin(order_id) if saved else None,
    }
