"""Per-order origin detail and the recent-orders debug list."""
from fastapi import APIRouter, Query, Request, HTTPException

from origin_tracker.repositories import OrderOriginRepository
from ._deps import limiter, get_store, OrderNotFoundError, ValidationError

router = APIRouter()


@router.get("/orders/recent")
@limiter.limit("30/minute")
async def get_recent_orders(request: Request, limit: int = Query(10, ge=1, le=100)):
    """Latest orders with their raw origin value."""
    store = await get_store()
    try:
        orders = await OrderOriginRepository(store).recent_orders(limit)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"orders": orders, "count": len(orders)}


@router.get("/orders/{order_id}/origin")
@limiter.limit("60/minute")
async def get_order_origin(request: Request, order_id: int):
    """Attribution row, custom origin and parsed PYS data for one order."""
    store = await get_store()
    try:
        return await OrderOriginRepository(store).get_order_detail(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
