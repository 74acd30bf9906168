"""Pick the storage scheme that drives a report run.

Priority: dedicated attribution table, HPOS order meta, post meta UTM
fields, PYS blobs, then the legacy origin field. The choice is made
fresh for every report.
"""
from typing import Dict, List, Mapping, Optional, Sequence

from origin_tracker.models import StorageScheme
from origin_tracker.observability import get_logger, metrics
from origin_tracker.repositories.base import AttributionSource
from origin_tracker.repositories.legacy_origin import LegacyOriginSource
from origin_tracker.repositories.post_meta import PostMetaSource
from origin_tracker.repositories.pys_enrich import PysEnrichSource
from origin_tracker.repositories.wc_attribution import WcAttributionSource
from origin_tracker.repositories.wc_orders_meta import WcOrdersMetaSource
from origin_tracker.store import OriginStore

logger = get_logger(__name__)

SCHEME_PRIORITY: List[StorageScheme] = [
    StorageScheme.WC_ATTRIBUTION,
    StorageScheme.WC_ORDERS_META,
    StorageScheme.POST_META,
    StorageScheme.PYS_ENRICH,
    StorageScheme.LEGACY_ORIGIN,
]

SOURCE_CLASSES = {
    StorageScheme.WC_ATTRIBUTION: WcAttributionSource,
    StorageScheme.WC_ORDERS_META: WcOrdersMetaSource,
    StorageScheme.POST_META: PostMetaSource,
    StorageScheme.PYS_ENRICH: PysEnrichSource,
    StorageScheme.LEGACY_ORIGIN: LegacyOriginSource,
}


def select_scheme(counts: Mapping[StorageScheme, int]) -> StorageScheme:
    """
    Choose a scheme from per-scheme availability counts.

    Missing entries count as zero. The legacy origin field is returned
    when nothing else has rows, even if it is empty too.
    """
    for scheme in SCHEME_PRIORITY[:-1]:
        if counts.get(scheme, 0) > 0:
            return scheme
    return StorageScheme.LEGACY_ORIGIN


def build_sources(store: OriginStore, excluded_statuses: Sequence[str] = None) -> List[AttributionSource]:
    """One source per scheme, in priority order."""
    return [SOURCE_CLASSES[scheme](store, excluded_statuses) for scheme in SCHEME_PRIORITY]


class SourceSelector:
    """Finds the first attribution source with data."""

    def __init__(self, store: OriginStore, sources: Optional[Sequence[AttributionSource]] = None):
        self.store = store
        self.sources = list(sources) if sources is not None else build_sources(store)

    async def availability(self) -> Dict[StorageScheme, int]:
        """Availability count for every scheme."""
        return {source.scheme: await source.availability() for source in self.sources}

    async def select(self) -> AttributionSource:
        """Source of the highest-priority scheme holding data."""
        scheme = select_scheme(await self.availability())
        logger.info(f"Attribution source selected: {scheme.value}")
        metrics.record_scheme(scheme.value)
        return self.source_for(scheme)

    def source_for(self, scheme: StorageScheme) -> AttributionSource:
        for source in self.sources:
            if source.scheme is scheme:
                return source
        return SOURCE_CLASSES[scheme](self.store)
