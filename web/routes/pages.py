"""
Storefront-facing routes: the first-touch tracker script.
"""
from fastapi import APIRouter
from fastapi.responses import FileResponse

from web.config import TRACKER_SCRIPT

router = APIRouter(tags=["pages"])


@router.get("/tracker.js", include_in_schema=False)
async def tracker_script():
    """Browser script that records the first-touch origin cookie."""
    return FileResponse(
        TRACKER_SCRIPT,
        media_type="application/javascript",
        headers={"Cache-Control": "public, max-age=3600"},
    )
