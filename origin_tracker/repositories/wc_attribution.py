"""Dedicated `wc_order_attribution` table source."""
from typing import Dict, List

from origin_tracker.filters import DateRange
from origin_tracker.models import AttributionRecord, StorageScheme
from origin_tracker.repositories.base import AttributionSource, clean, range_bounds

TABLE = "wc_order_attribution"


class WcAttributionSource(AttributionSource):
    """Orders joined with their row in the dedicated attribution table."""

    scheme = StorageScheme.WC_ATTRIBUTION
    required_tables = (TABLE,)

    async def availability(self) -> int:
        if await self.missing_tables():
            return 0
        return await self.store._fetch_scalar(f"SELECT COUNT(*) FROM {TABLE}")

    async def _fetch_records(self, date_range: DateRange) -> List[AttributionRecord]:
        status_sql, status_params = self.status_filter("p.post_status")
        rows = await self.store._fetch_all(
            f"""
            SELECT p.id, p.post_date, p.post_status,
                   oa.source_type, oa.source, oa.medium, oa.campaign,
                   oa.term, oa.content, oa.referrer
            FROM posts p
            JOIN {TABLE} oa ON oa.order_id = p.id
            WHERE p.post_type = 'shop_order'
              AND {status_sql}
              AND oa.source_type IS NOT NULL
              AND p.post_date >= ? AND p.post_date < ?
            ORDER BY p.post_date
            """,
            status_params + range_bounds(date_range),
        )
        return [
            AttributionRecord(
                order_id=row[0],
                created_at=row[1],
                status=row[2],
                source_type=clean(row[3]),
                utm_source=clean(row[4]),
                utm_medium=clean(row[5]),
                utm_campaign=clean(row[6]),
                utm_term=clean(row[7]),
                utm_content=clean(row[8]),
                referrer_host=clean(row[9]),
            )
            for row in rows
        ]

    async def count_orders_with_origin(self) -> int:
        status_sql, status_params = self.status_filter("p.post_status")
        return await self.store._fetch_scalar(
            f"""
            SELECT COUNT(DISTINCT p.id)
            FROM posts p
            JOIN {TABLE} oa ON oa.order_id = p.id
            WHERE p.post_type = 'shop_order'
              AND {status_sql}
              AND oa.source_type IS NOT NULL
            """,
            status_params,
        )

    async def distinct_values(self) -> Dict[str, List[str]]:
        values = {}
        for column, key in (
            ("source", "sources"),
            ("medium", "mediums"),
            ("campaign", "campaigns"),
            ("term", "terms"),
            ("content", "contents"),
        ):
            values[key] = await self._distinct(
                f"SELECT DISTINCT {column} FROM {TABLE} WHERE {column} IS NOT NULL AND {column} != ''"
            )
        return values
