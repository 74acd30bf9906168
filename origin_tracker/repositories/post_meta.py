"""Order post meta source (`_wc_order_attribution_utm_*` fields)."""
from typing import Dict, List

from origin_tracker.filters import DateRange
from origin_tracker.models import AttributionRecord, StorageScheme, UTM_DIMENSIONS
from origin_tracker.repositories.base import AttributionSource, clean, range_bounds

ATTRIBUTION_PREFIX = "_wc_order_attribution_"
UTM_META_KEYS = {d: f"{ATTRIBUTION_PREFIX}utm_{d}" for d in UTM_DIMENSIONS}


class PostMetaSource(AttributionSource):
    """UTM fields written to postmeta by WooCommerce 8.5+."""

    scheme = StorageScheme.POST_META

    async def availability(self) -> int:
        utm_source_count = await self.store._fetch_scalar(
            "SELECT COUNT(*) FROM postmeta WHERE meta_key = ?",
            [UTM_META_KEYS["source"]],
        )
        attribution_count = await self.store._fetch_scalar(
            "SELECT COUNT(*) FROM postmeta WHERE meta_key LIKE ?",
            [f"{ATTRIBUTION_PREFIX}%"],
        )
        return max(utm_source_count, attribution_count)

    async def _fetch_records(self, date_range: DateRange) -> List[AttributionRecord]:
        status_sql, status_params = self.status_filter("p.post_status")
        pivot = ",\n".join(
            f"MAX(CASE WHEN m.meta_key = '{key}' THEN m.meta_value END) AS utm_{d}"
            for d, key in UTM_META_KEYS.items()
        )
        key_params = list(UTM_META_KEYS.values())
        rows = await self.store._fetch_all(
            f"""
            SELECT p.id, p.post_date, p.post_status,
                   {pivot}
            FROM posts p
            JOIN postmeta m ON m.post_id = p.id AND m.meta_key IN (?, ?, ?, ?, ?)
            WHERE p.post_type = 'shop_order'
              AND {status_sql}
              AND m.meta_value IS NOT NULL
              AND p.post_date >= ? AND p.post_date < ?
            GROUP BY p.id, p.post_date, p.post_status
            ORDER BY p.post_date
            """,
            key_params + status_params + range_bounds(date_range),
        )
        return [
            AttributionRecord(
                order_id=row[0],
                created_at=row[1],
                status=row[2],
                utm_source=clean(row[3]),
                utm_medium=clean(row[4]),
                utm_campaign=clean(row[5]),
                utm_term=clean(row[6]),
                utm_content=clean(row[7]),
            )
            for row in rows
        ]

    async def count_orders_with_origin(self) -> int:
        status_sql, status_params = self.status_filter("p.post_status")
        return await self.store._fetch_scalar(
            f"""
            SELECT COUNT(DISTINCT p.id)
            FROM posts p
            JOIN postmeta m ON m.post_id = p.id
            WHERE p.post_type = 'shop_order'
              AND {status_sql}
              AND m.meta_key IN (?, ?, ?, ?, ?)
              AND m.meta_value IS NOT NULL
            """,
            status_params + list(UTM_META_KEYS.values()),
        )

    async def distinct_values(self) -> Dict[str, List[str]]:
        values = {}
        for dimension, key in UTM_META_KEYS.items():
            values[f"{dimension}s"] = await self._distinct(
                "SELECT DISTINCT meta_value FROM postmeta WHERE meta_key = ? AND meta_value != ''",
                [key],
            )
        return values
