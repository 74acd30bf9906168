"""Shared dependencies for API route modules."""
import time

from slowapi import Limiter
from slowapi.util import get_remote_address

from origin_tracker.exceptions import OrderNotFoundError, ValidationError
from origin_tracker.observability import get_logger
from origin_tracker.store import get_store
from origin_tracker.validators import (
    validate_ad_spend,
    validate_date_override,
    validate_date_range,
    validate_date_range_key,
    validate_filter_values,
)
from web.services.report_service import get_report_service

# Shared limiter instance
limiter = Limiter(key_func=get_remote_address)

# Track startup time for uptime calculation
START_TIME = time.time()
