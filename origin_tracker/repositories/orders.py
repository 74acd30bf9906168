"""Order-level origin access: the checkout write hook and detail views."""
from typing import Any, Dict, List, Optional

from origin_tracker.config import config
from origin_tracker.exceptions import OrderNotFoundError, ValidationError
from origin_tracker.observability import get_logger
from origin_tracker.pys import parse_pys_enrich_data
from origin_tracker.repositories.pys_enrich import PYS_META_KEY
from origin_tracker.store import OriginStore

logger = get_logger(__name__)

MAX_ORIGIN_LENGTH = 255


def sanitize_origin(value: Optional[str]) -> str:
    """Strip control characters and surrounding whitespace from a cookie value."""
    if value is None:
        return ""
    cleaned = "".join(ch for ch in str(value) if ch.isprintable())
    return cleaned.strip()[:MAX_ORIGIN_LENGTH]


class OrderOriginRepository:
    """Writes `_order_origin` and reads per-order attribution detail."""

    def __init__(self, store: OriginStore, meta_key: str = None):
        self.store = store
        self.meta_key = meta_key or config.tracker.order_meta_key

    async def order_exists(self, order_id: int) -> bool:
        if await self.store._fetch_one("SELECT 1 FROM posts WHERE id = ?", [order_id]):
            return True
        if await self.store.table_exists("wc_orders"):
            return bool(await self.store._fetch_one("SELECT 1 FROM wc_orders WHERE id = ?", [order_id]))
        return False

    async def save_origin(self, order_id: int, origin: Optional[str]) -> bool:
        """
        Persist the first-touch origin against an order.

        Idempotent: saving twice keeps the last value. Returns False
        (and writes nothing) when no origin was supplied.

        Raises:
            OrderNotFoundError: If the order is unknown
        """
        value = sanitize_origin(origin)
        if not value:
            logger.info(f"No origin cookie found when saving order #{order_id}")
            return False

        if not await self.order_exists(order_id):
            raise OrderNotFoundError(order_id)

        await self.store.upsert_post_meta(order_id, self.meta_key, value)
        if await self.store.table_exists("wc_orders_meta"):
            await self.store.upsert_order_meta(order_id, self.meta_key, value)

        logger.info(f"Saved origin {value!r} to order #{order_id}")
        return True

    async def get_origin(self, order_id: int) -> Optional[str]:
        row = await self.store._fetch_one(
            "SELECT meta_value FROM postmeta WHERE post_id = ? AND meta_key = ?",
            [order_id, self.meta_key],
        )
        if row and row[0]:
            return row[0]
        if await self.store.table_exists("wc_orders_meta"):
            row = await self.store._fetch_one(
                "SELECT meta_value FROM wc_orders_meta WHERE order_id = ? AND meta_key = ?",
                [order_id, self.meta_key],
            )
            if row and row[0]:
                return row[0]
        return None

    async def get_order_detail(self, order_id: int) -> Dict[str, Any]:
        """
        Everything known about one order's origin.

        Returns the attribution table row (if any), the legacy origin
        value and the parsed PYS blob.

        Raises:
            OrderNotFoundError: If the order is unknown
        """
        if not await self.order_exists(order_id):
            raise OrderNotFoundError(order_id)

        attribution = None
        if await self.store.table_exists("wc_order_attribution"):
            row = await self.store._fetch_one(
                """
                SELECT source_type, source, medium, campaign, term, content, referrer, created_at
                FROM wc_order_attribution WHERE order_id = ?
                """,
                [order_id],
            )
            if row:
                attribution = {
                    "source_type": row[0],
                    "source": row[1],
                    "medium": row[2],
                    "campaign": row[3],
                    "term": row[4],
                    "content": row[5],
                    "referrer": row[6],
                    "created_at": row[7].isoformat() if row[7] else None,
                }

        pys_row = await self.store._fetch_one(
            "SELECT meta_value FROM postmeta WHERE post_id = ? AND meta_key = ?",
            [order_id, PYS_META_KEY],
        )

        return {
            "order_id": order_id,
            "attribution": attribution,
            "custom_origin": await self.get_origin(order_id),
            "pys_data": parse_pys_enrich_data(pys_row[0]) if pys_row and pys_row[0] else None,
        }

    async def recent_orders(self, limit: int = None) -> List[Dict[str, Any]]:
        """Latest orders carrying a legacy origin value, newest first."""
        limit = limit or config.report.recent_orders_limit
        if limit < 1:
            raise ValidationError("limit", "Must be at least 1", limit)
        rows = await self.store._fetch_all(
            """
            SELECT p.id, p.post_date, p.post_status, m.meta_value
            FROM posts p
            JOIN postmeta m ON m.post_id = p.id
            WHERE p.post_type = 'shop_order'
              AND m.meta_key = ?
            ORDER BY p.post_date DESC, p.id DESC
            LIMIT ?
            """,
            [self.meta_key, limit],
        )
        return [
            {
                "order_id": row[0],
                "post_date": row[1].isoformat() if row[1] else None,
                "status": row[2],
                "origin": row[3],
            }
            for row in rows
        ]
