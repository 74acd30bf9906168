"""Operator settings: ad spend per period and the manual date override."""
from fastapi import APIRouter, Request, HTTPException

from origin_tracker.models import AdSpendEntry
from web.schemas import AdSpendRequest, DateOverrideRequest, DateOverrideResponse
from ._deps import (
    limiter, get_report_service, get_logger,
    validate_ad_spend, validate_date_override, validate_date_range, validate_date_range_key,
    ValidationError,
)

router = APIRouter()
logger = get_logger(__name__)


@router.get("/ad-spend")
@limiter.limit("60/minute")
async def get_ad_spend(request: Request):
    """Stored ad spend per date-range key."""
    service = await get_report_service()
    spend = await service.settings.get_ad_spend_map()
    return {"ad_spend": {key: float(value) for key, value in sorted(spend.items())}}


@router.post("/ad-spend")
@limiter.limit("30/minute")
async def save_ad_spend(request: Request, body: AdSpendRequest):
    """Store the ad spend for one report period."""
    try:
        if body.date_range_key:
            key = validate_date_range_key(body.date_range_key)
        else:
            start, end = validate_date_range(body.start_date, body.end_date)
            key = AdSpendEntry.make_key(start.isoformat(), end.isoformat())
        amount = validate_ad_spend(body.amount)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    service = await get_report_service()
    await service.settings.set_ad_spend(key, amount)
    return {"success": True, "date_range_key": key, "amount": float(amount)}


@router.get("/settings/date-override", response_model=DateOverrideResponse)
@limiter.limit("60/minute")
async def get_date_override(request: Request):
    """Current manual date override and the resulting "today"."""
    service = await get_report_service()
    override = await service.settings.get_date_override()
    today, date_source = await service.resolve_today()
    return {
        "date": override.isoformat() if override else None,
        "today": today.isoformat(),
        "date_source": date_source,
    }


@router.post("/settings/date-override", response_model=DateOverrideResponse)
@limiter.limit("30/minute")
async def set_date_override(request: Request, body: DateOverrideRequest):
    """Set the manual date override, or clear it with an empty date."""
    try:
        value = validate_date_override(body.date)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    service = await get_report_service()
    if value is None:
        await service.settings.clear_date_override()
    else:
        await service.settings.set_date_override(value)

    today, date_source = await service.resolve_today()
    return {
        "date": value.isoformat() if value else None,
        "today": today.isoformat(),
        "date_source": date_source,
    }
