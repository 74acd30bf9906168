"""PixelYourSite `pys_enrich_data` source."""
from typing import Dict, List

from origin_tracker.filters import DateRange
from origin_tracker.models import AttributionRecord, StorageScheme, UTM_DIMENSIONS
from origin_tracker.pys import parse_pys_enrich_data
from origin_tracker.repositories.base import AttributionSource, range_bounds

PYS_META_KEY = "pys_enrich_data"

# Blobs that carry a usable signal: a pys_utm member with a source,
# an ad-account marker or a paid medium
_SIGNAL_SQL = """
    m.meta_value LIKE '%pys_utm%'
    AND (m.meta_value LIKE '%utm_source:%'
         OR m.meta_value LIKE '%0138%'
         OR m.meta_value LIKE '%utm_medium:paid%')
"""


def record_from_blob(order_id: int, blob: str, **extra) -> AttributionRecord:
    parsed = parse_pys_enrich_data(blob)
    return AttributionRecord(
        order_id=order_id,
        utm_source=parsed.get("utm_source"),
        utm_medium=parsed.get("utm_medium"),
        utm_campaign=parsed.get("utm_campaign"),
        utm_term=parsed.get("utm_term"),
        utm_content=parsed.get("utm_content"),
        raw_payload=blob,
        **extra,
    )


class PysEnrichSource(AttributionSource):
    """UTM values parsed out of serialized PYS blobs in postmeta."""

    scheme = StorageScheme.PYS_ENRICH

    async def availability(self) -> int:
        return await self.store._fetch_scalar(
            "SELECT COUNT(*) FROM postmeta WHERE meta_key = ?",
            [PYS_META_KEY],
        )

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
              AND {_SIGNAL_SQL}
              AND p.post_date >= ? AND p.post_date < ?
            ORDER BY p.post_date
            """,
            status_params + [PYS_META_KEY] + range_bounds(date_range),
        )
        return [
            record_from_blob(row[0], row[3], created_at=row[1], status=row[2])
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
              AND {_SIGNAL_SQL}
            """,
            status_params + [PYS_META_KEY],
        )

    async def distinct_values(self) -> Dict[str, List[str]]:
        rows = await self.store._fetch_all(
            "SELECT meta_value FROM postmeta WHERE meta_key = ? AND meta_value LIKE '%pys_utm%'",
            [PYS_META_KEY],
        )
        collected = {d: set() for d in UTM_DIMENSIONS}
        for (blob,) in rows:
            parsed = parse_pys_enrich_data(blob)
            for dimension in UTM_DIMENSIONS:
                value = parsed.get(f"utm_{dimension}")
                if value:
                    collected[dimension].add(value)
        return {f"{d}s": sorted(values) for d, values in collected.items()}
