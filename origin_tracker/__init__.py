"""
WooCommerce order origin tracker.

This package contains the attribution logic used by the web/ package:
- first_touch: Landing-page origin resolution
- pys: PixelYourSite blob parsing
- classifier: Raw labels and origin normalization
- aggregator: Origin buckets with the FB ADS adjustment
- roas: Facebook ads return on ad spend
- repositories: Storage scheme readers and selection
- config: Centralized configuration
"""

# Import in dependency order
from origin_tracker.exceptions import (
    OriginTrackerError,
    StoreError,
    OrderNotFoundError,
    ValidationError,
    QueryTimeoutError,
)

from origin_tracker.config import config

from origin_tracker.models import (
    AttributionRecord,
    OriginBucket,
    UTMFilters,
    SourceType,
    StorageScheme,
)

from origin_tracker.first_touch import resolve_origin, FirstTouchRecorder
from origin_tracker.pys import parse_pys_enrich_data
from origin_tracker.classifier import normalize_origin, classify
from origin_tracker.aggregator import Aggregator
from origin_tracker.roas import compute_roas, RoasCalculator

__all__ = [
    # Exceptions
    "OriginTrackerError",
    "StoreError",
    "OrderNotFoundError",
    "ValidationError",
    "QueryTimeoutError",
    # Config
    "config",
    # Models
    "AttributionRecord",
    "OriginBucket",
    "UTMFilters",
    "SourceType",
    "StorageScheme",
    # Attribution
    "resolve_origin",
    "FirstTouchRecorder",
    "parse_pys_enrich_data",
    "normalize_origin",
    "classify",
    "Aggregator",
    "compute_roas",
    "RoasCalculator",
]
