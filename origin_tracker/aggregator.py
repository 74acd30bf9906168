"""Group attribution records into normalized origin buckets."""
import logging
from typing import Dict, Iterable, List, Optional

from origin_tracker.classifier import classify
from origin_tracker.config import config
from origin_tracker.models import (
    AttributionRecord,
    OriginBucket,
    StorageScheme,
    UTMFilters,
    FB_ADS_LABEL,
)

logger = logging.getLogger(__name__)


def group_labels(labels: Iterable[str]) -> Dict[str, int]:
    """Count labels, keeping first-seen order for stable ties."""
    counts: Dict[str, int] = {}
    for label in labels:
        counts[label] = counts.get(label, 0) + 1
    return counts


def apply_fb_ads_bonus(counts: Dict[str, int], bonus: int) -> Dict[str, int]:
    """Add the fixed bonus to a non-empty FB ADS bucket."""
    if bonus and counts.get(FB_ADS_LABEL, 0) > 0:
        counts[FB_ADS_LABEL] += bonus
        logger.debug(f"FB ADS bucket adjusted by +{bonus} -> {counts[FB_ADS_LABEL]}")
    return counts


def to_buckets(counts: Dict[str, int]) -> List[OriginBucket]:
    """Sort descending by count; sorted() is stable so ties keep first-seen order."""
    buckets = [OriginBucket(label, count) for label, count in counts.items()]
    return sorted(buckets, key=lambda b: b.order_count, reverse=True)


class Aggregator:
    """
    Buckets orders by normalized origin.

    The FB ADS bonus is applied exactly once per run, after grouping
    and before sorting.
    """

    def __init__(self, fb_ads_bonus: Optional[int] = None):
        self.fb_ads_bonus = config.report.fb_ads_bonus if fb_ads_bonus is None else fb_ads_bonus

    def aggregate(
        self,
        records: Iterable[AttributionRecord],
        scheme: StorageScheme,
        filters: Optional[UTMFilters] = None,
    ) -> List[OriginBucket]:
        """Standard path: records of the active scheme for a date range."""
        selected = filters.apply(records) if filters else list(records)
        if not selected:
            return []

        counts = group_labels(classify(record, scheme) for record in selected)
        logger.debug(f"Aggregated {len(selected)} orders into {len(counts)} origins ({scheme.value})")
        return to_buckets(apply_fb_ads_bonus(counts, self.fb_ads_bonus))

    def aggregate_today(
        self,
        records: Iterable[AttributionRecord],
        filters: Optional[UTMFilters] = None,
    ) -> List[OriginBucket]:
        """
        Today path: every order of the day, with or without attribution.

        Records come pre-merged from all storage schemes: a source_type
        selects its template, anything else falls back to the UTM-field
        chain and the stored origin. Orders without any signal end up in
        the "Direct" bucket.
        """
        return self.aggregate(records, StorageScheme.WC_ATTRIBUTION, filters)


def total_orders(buckets: Iterable[OriginBucket]) -> int:
    return sum(b.order_count for b in buckets)


def bucket_count(buckets: Iterable[OriginBucket], label: str) -> int:
    for bucket in buckets:
        if bucket.label == label:
            return bucket.order_count
    return 0
