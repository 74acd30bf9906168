"""HPOS `wc_orders` + `wc_orders_meta` source."""
from typing import Dict, List

from origin_tracker.filters import DateRange
from origin_tracker.models import AttributionRecord, StorageScheme
from origin_tracker.repositories.base import AttributionSource, clean, range_bounds

META_PREFIX = "_wc_order_attribution_"

# report field -> meta key suffix
META_FIELDS = {
    "source_type": "source_type",
    "source": "source",
    "medium": "medium",
    "campaign": "campaign",
    "term": "term",
    "content": "content",
    "referrer": "referrer",
}


class WcOrdersMetaSource(AttributionSource):
    """Attribution meta stored against HPOS orders."""

    scheme = StorageScheme.WC_ORDERS_META
    required_tables = ("wc_orders", "wc_orders_meta")

    async def availability(self) -> int:
        if await self.missing_tables():
            return 0
        return await self.store._fetch_scalar(
            "SELECT COUNT(*) FROM wc_orders_meta WHERE meta_key LIKE ?",
            [f"{META_PREFIX}%"],
        )

    def _pivot_columns(self) -> str:
        return ",\n".join(
            f"MAX(CASE WHEN m.meta_key = '{META_PREFIX}{suffix}' THEN m.meta_value END) AS {name}"
            for name, suffix in META_FIELDS.items()
        )

    async def _fetch_records(self, date_range: DateRange) -> List[AttributionRecord]:
        status_sql, status_params = self.status_filter("o.status")
        rows = await self.store._fetch_all(
            f"""
            SELECT o.id, o.date_created_gmt, o.status,
                   {self._pivot_columns()}
            FROM wc_orders o
            JOIN wc_orders_meta m ON m.order_id = o.id
            WHERE o.type = 'shop_order'
              AND {status_sql}
              AND o.date_created_gmt >= ? AND o.date_created_gmt < ?
            GROUP BY o.id, o.date_created_gmt, o.status
            HAVING MAX(CASE WHEN m.meta_key = '{META_PREFIX}source_type' THEN m.meta_value END) IS NOT NULL
            ORDER BY o.date_created_gmt
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
        status_sql, status_params = self.status_filter("o.status")
        return await self.store._fetch_scalar(
            f"""
            SELECT COUNT(DISTINCT o.id)
            FROM wc_orders o
            JOIN wc_orders_meta m ON m.order_id = o.id
            WHERE o.type = 'shop_order'
              AND {status_sql}
              AND m.meta_key = ?
              AND m.meta_value IS NOT NULL
            """,
            status_params + [f"{META_PREFIX}source_type"],
        )

    async def distinct_values(self) -> Dict[str, List[str]]:
        values = {}
        for dimension in ("source", "medium", "campaign", "term", "content"):
            values[f"{dimension}s"] = await self._distinct(
                "SELECT DISTINCT meta_value FROM wc_orders_meta WHERE meta_key = ? AND meta_value != ''",
                [f"{META_PREFIX}{dimension}"],
            )
        return values
