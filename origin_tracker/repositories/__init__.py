"""
Attribution read/write access, one module per storage scheme.

- WcAttributionSource: dedicated wc_order_attribution table
- WcOrdersMetaSource: HPOS wc_orders_meta
- PostMetaSource: `_wc_order_attribution_utm_*` post meta
- PysEnrichSource: PixelYourSite pys_enrich_data blobs
- LegacyOriginSource: `_order_origin` field written at checkout
- TodayOrdersReader: every order of one day with merged attribution
- OrderOriginRepository: checkout write hook and order detail
"""
from origin_tracker.repositories.base import AttributionSource
from origin_tracker.repositories.wc_attribution import WcAttributionSource
from origin_tracker.repositories.wc_orders_meta import WcOrdersMetaSource
from origin_tracker.repositories.post_meta import PostMetaSource
from origin_tracker.repositories.pys_enrich import PysEnrichSource
from origin_tracker.repositories.legacy_origin import LegacyOriginSource
from origin_tracker.repositories.selector import SourceSelector, select_scheme, build_sources
from origin_tracker.repositories.today import TodayOrdersReader
from origin_tracker.repositories.orders import OrderOriginRepository

__all__ = [
    "AttributionSource",
    "WcAttributionSource",
    "WcOrdersMetaSource",
    "PostMetaSource",
    "PysEnrichSource",
    "LegacyOriginSource",
    "SourceSelector",
    "select_scheme",
    "build_sources",
    "TodayOrdersReader",
    "OrderOriginRepository",
]
