"""All orders of a single day, with whatever attribution each one has.

The today report cannot rely on one scheme's join: orders without any
attribution data would drop out of it, yet they belong in "Direct".
This reader enumerates every order of the day and merges the attribution
signals found for it, strongest first:

1. attribution table row / HPOS source_type meta
2. WooCommerce UTM post meta
3. parsed PYS blob
4. legacy `_order_origin` value
"""
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from origin_tracker.classifier import AD_ACCOUNT_MARKER
from origin_tracker.config import config
from origin_tracker.models import AttributionRecord, UTM_DIMENSIONS
from origin_tracker.observability import get_logger
from origin_tracker.pys import parse_pys_enrich_data
from origin_tracker.repositories.base import clean, status_clause
from origin_tracker.repositories.post_meta import UTM_META_KEYS
from origin_tracker.repositories.pys_enrich import PYS_META_KEY
from origin_tracker.repositories.wc_orders_meta import META_PREFIX
from origin_tracker.store import OriginStore

logger = get_logger(__name__)

# Pivoted meta columns, in SELECT order after id, date and status
POST_COLUMNS = [f"utm_{d}" for d in UTM_DIMENSIONS] + ["origin", "pys"]
HPOS_COLUMNS = ["source_type"] + list(UTM_DIMENSIONS) + ["origin"]


def _day_bounds(day: date) -> List[datetime]:
    return [datetime.combine(day, time.min), datetime.combine(day + timedelta(days=1), time.min)]


def _pivot_columns(aliases: Sequence[str]) -> str:
    return ",\n".join(
        f"MAX(CASE WHEN m.meta_key = ? THEN m.meta_value END) AS {alias}" for alias in aliases
    )


def _copy_utm(record: AttributionRecord, values: Dict[str, Optional[str]], prefix: str = "") -> None:
    for dimension in UTM_DIMENSIONS:
        setattr(record, f"utm_{dimension}", clean(values.get(f"{prefix}{dimension}")))


def merge_signals(
    order_id: int,
    created_at: Optional[datetime],
    status: Optional[str],
    meta: Dict[str, Optional[str]],
    attribution: Optional[Tuple] = None,
) -> AttributionRecord:
    """Build one record from every attribution signal found for an order."""
    record = AttributionRecord(
        order_id=order_id,
        created_at=created_at,
        status=status,
        origin=clean(meta.get("origin")),
        raw_payload=meta.get("pys"),
    )

    if attribution and clean(attribution[0]):
        record.source_type = clean(attribution[0])
        _copy_utm(record, dict(zip(UTM_DIMENSIONS, attribution[1:6])))
        return record

    if clean(meta.get("source_type")):
        record.source_type = clean(meta["source_type"])
        _copy_utm(record, meta)
        return record

    _copy_utm(record, meta, prefix="utm_")
    if record.has_utm:
        return record

    blob = meta.get("pys")
    if blob:
        _copy_utm(record, parse_pys_enrich_data(blob), prefix="utm_")
        if not record.utm_source and not record.utm_medium and AD_ACCOUNT_MARKER in blob:
            record.utm_source = AD_ACCOUNT_MARKER

    return record


class TodayOrdersReader:
    """Enumerates every order created on one day."""

    def __init__(self, store: OriginStore, excluded_statuses: Sequence[str] = None):
        self.store = store
        self.excluded_statuses = list(
            excluded_statuses if excluded_statuses is not None else config.report.excluded_statuses
        )

    def _status_sql(self, column: str) -> Tuple[str, list]:
        return status_clause(column, self.excluded_statuses)

    async def _post_orders(self, day: date) -> List[tuple]:
        status_sql, status_params = self._status_sql("p.post_status")
        return await self.store._fetch_all(
            f"""
            SELECT p.id, p.post_date, p.post_status,
                   {_pivot_columns(POST_COLUMNS)}
            FROM posts p
            LEFT JOIN postmeta m ON m.post_id = p.id
            WHERE p.post_type = 'shop_order'
              AND {status_sql}
              AND p.post_date >= ? AND p.post_date < ?
            GROUP BY p.id, p.post_date, p.post_status
            ORDER BY p.post_date
            """,
            [UTM_META_KEYS[d] for d in UTM_DIMENSIONS]
            + [config.tracker.order_meta_key, PYS_META_KEY]
            + status_params + _day_bounds(day),
        )

    async def _hpos_orders(self, day: date, known_ids: set) -> List[tuple]:
        if not (await self.store.table_exists("wc_orders") and await self.store.table_exists("wc_orders_meta")):
            return []
        status_sql, status_params = self._status_sql("o.status")
        rows = await self.store._fetch_all(
            f"""
            SELECT o.id, o.date_created_gmt, o.status,
                   {_pivot_columns(HPOS_COLUMNS)}
            FROM wc_orders o
            LEFT JOIN wc_orders_meta m ON m.order_id = o.id
            WHERE o.type = 'shop_order'
              AND {status_sql}
              AND o.date_created_gmt >= ? AND o.date_created_gmt < ?
            GROUP BY o.id, o.date_created_gmt, o.status
            ORDER BY o.date_created_gmt
            """,
            [f"{META_PREFIX}source_type"]
            + [f"{META_PREFIX}{d}" for d in UTM_DIMENSIONS]
            + [config.tracker.order_meta_key]
            + status_params + _day_bounds(day),
        )
        return [row for row in rows if row[0] not in known_ids]

    async def _attribution_rows(self, order_ids: List[int]) -> Dict[int, tuple]:
        if not order_ids or not await self.store.table_exists("wc_order_attribution"):
            return {}
        placeholders = ", ".join("?" for _ in order_ids)
        rows = await self.store._fetch_all(
            f"""
            SELECT order_id, source_type, source, medium, campaign, term, content
            FROM wc_order_attribution
            WHERE order_id IN ({placeholders})
            """,
            list(order_ids),
        )
        return {row[0]: row[1:] for row in rows}

    async def fetch_all_orders(self, day: date) -> List[AttributionRecord]:
        """Every non-trashed order created on `day`, attribution merged in."""
        post_rows = await self._post_orders(day)
        known_ids = {row[0] for row in post_rows}
        hpos_rows = await self._hpos_orders(day, known_ids)
        attribution = await self._attribution_rows(
            [row[0] for row in post_rows] + [row[0] for row in hpos_rows]
        )

        records = []
        for row in post_rows:
            meta = dict(zip(POST_COLUMNS, row[3:]))
            records.append(merge_signals(row[0], row[1], row[2], meta, attribution.get(row[0])))

        for row in hpos_rows:
            meta = dict(zip(HPOS_COLUMNS, row[3:]))
            records.append(merge_signals(row[0], row[1], row[2], meta, attribution.get(row[0])))

        with_signal = sum(1 for r in records if r.source_type or r.has_utm or r.origin)
        logger.info(f"Today reader: {len(records)} orders on {day.isoformat()}, {with_signal} with attribution")
        return records
