"""Origin report endpoint."""
from typing import Optional

from fastapi import APIRouter, Request, HTTPException

from origin_tracker.exceptions import QueryTimeoutError, StoreError
from origin_tracker.models import UTMFilters
from web.config import REPORT_RATE_LIMIT
from web.schemas import ReportRequest, ReportResponse
from ._deps import (
    limiter, get_report_service, get_logger,
    validate_filter_values,
    ValidationError,
)

router = APIRouter()
logger = get_logger(__name__)


def _filters_from_request(body: ReportRequest) -> UTMFilters:
    return UTMFilters(
        sources=validate_filter_values(body.utm_sources, "utm_sources"),
        mediums=validate_filter_values(body.utm_mediums, "utm_mediums"),
        campaigns=validate_filter_values(body.utm_campaigns, "utm_campaigns"),
        terms=validate_filter_values(body.utm_terms, "utm_terms"),
        contents=validate_filter_values(body.utm_contents, "utm_contents"),
    )


@router.post("/report", response_model=ReportResponse)
@limiter.limit(REPORT_RATE_LIMIT)
async def build_origin_report(request: Request, body: Optional[ReportRequest] = None):
    """
    Orders grouped by origin for a date range.

    Without dates the report covers the last 3 days through today.
    A single-day report for today counts every order of the day.
    """
    body = body or ReportRequest()
    try:
        filters = _filters_from_request(body)
        service = await get_report_service()
        return await service.build_report(body.start_date, body.end_date, filters, period=body.period)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QueryTimeoutError as e:
        logger.error(f"Report query timed out: {e}")
        raise HTTPException(status_code=504, detail=str(e))
    except StoreError as e:
        logger.error(f"Report storage error: {e}")
        raise HTTPException(status_code=503, detail=str(e))
