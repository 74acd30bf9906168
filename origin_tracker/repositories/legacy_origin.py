"""Legacy `_order_origin` custom field source (always available)."""
from typing import Dict, List

from origin_tracker.config import config
from origin_tracker.filters import DateRange
from origin_tracker.models import AttributionRecord, StorageScheme
from origin_tracker.repositories.base import AttributionSource, clean, range_bounds

# Statuses whose origins are offered in the origin list
LISTED_STATUSES = ("wc-processing", "wc-completed", "wc-refunded")


class LegacyOriginSource(AttributionSource):
    """Origins recorded by the first-touch cookie at checkout."""

    scheme = StorageScheme.LEGACY_ORIGIN

    meta_key = config.tracker.order_meta_key

    async def availability(self) -> int:
        return await self.store._fetch_scalar(
            "SELECT COUNT(*) FROM postmeta WHERE meta_key = ?",
            [self.meta_key],
        )

    async def is_available(self) -> bool:
        # Final fallback, usable even when empty
        return True

    async def _fetch_records(self, date_range: DateRange) -> List[AttributionRecord]:
        status_sql, status_params = self.status_filter("p.post_status")
        rows = await self.store._fetch_all(
            f"""
            SELECT p.id, p.post_date, p.post_status, m.meta_value
            FROM posts p
            JOIN postmeta m ON m.post_id = p.id
            WHERE p.post_type = 'shop_order'
              AND {status_sql}
              AND m.meta_key = ?
              AND p.post_date >= ? AND p.post_date < ?
            ORDER BY p.post_date
            """,
            status_params + [self.meta_key] + range_bounds(date_range),
        )
        return [
            AttributionRecord(order_id=row[0], created_at=row[1], status=row[2], origin=clean(row[3]))
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
              AND m.meta_key = ?
              AND m.meta_value != ''
            """,
            status_params + [self.meta_key],
        )

    async def distinct_values(self) -> Dict[str, List[str]]:
        values = await super().distinct_values()
        values["origins"] = await self._distinct(
            """
            SELECT DISTINCT m.meta_value
            FROM posts p
            JOIN postmeta m ON m.post_id = p.id
            WHERE p.post_type = 'shop_order'
              AND p.post_status IN (?, ?, ?)
              AND m.meta_key = ?
              AND m.meta_value != ''
            """,
            list(LISTED_STATUSES) + [self.meta_key],
        )
        return values
