"""
Web surface configuration.
"""
import os
from pathlib import Path

from origin_tracker.config import config, VERSION

# Web server settings
WEB_HOST = config.web.host
WEB_PORT = config.web.port
REPORT_RATE_LIMIT = f"{config.web.rate_limit_per_minute}/minute"

# Paths
BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"
TRACKER_SCRIPT = STATIC_DIR / "tracker.js"

# Paths treated as storefront pages by the first-touch middleware
# (API, static assets and docs never record an origin)
FIRST_TOUCH_EXCLUDED_PREFIXES = ("/api", "/static", "/docs", "/openapi.json", "/redoc", "/tracker.js")

# File requests that are never storefront pages, even under an allowed path
FIRST_TOUCH_ASSET_SUFFIXES = (
    ".ico", ".txt", ".xml", ".js", ".css", ".map", ".json",
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".woff", ".woff2",
)

# Storefront hostname used when a request carries no Host header
STORE_HOST = os.getenv("STORE_HOST", "")

__all__ = [
    "VERSION",
    "WEB_HOST",
    "WEB_PORT",
    "REPORT_RATE_LIMIT",
    "STATIC_DIR",
    "TRACKER_SCRIPT",
    "FIRST_TOUCH_EXCLUDED_PREFIXES",
    "FIRST_TOUCH_ASSET_SUFFIXES",
    "STORE_HOST",
]
