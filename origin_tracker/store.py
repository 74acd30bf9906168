"""
DuckDB store mirroring the WooCommerce order tables.

Holds the tables the attribution sources read from:
- posts / postmeta: classic order storage, UTM meta, PYS blobs, `_order_origin`
- wc_orders / wc_orders_meta: HPOS order storage (optional)
- wc_order_attribution: dedicated attribution table (optional)
- options: key-value settings (ad spend map, manual date override)

The optional tables only exist on installs that have them; the selector
checks for them with ``table_exists``.
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any

import duckdb

from origin_tracker.config import config
from origin_tracker.exceptions import QueryTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_QUERY_TIMEOUT = config.store.query_timeout

CORE_SCHEMA = """
CREATE TABLE IF NOT EXISTS posts (
    id BIGINT PRIMARY KEY,
    post_type VARCHAR NOT NULL DEFAULT 'shop_order',
    post_status VARCHAR NOT NULL,
    post_date TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS postmeta (
    post_id BIGINT NOT NULL,
    meta_key VARCHAR NOT NULL,
    meta_value VARCHAR,
    PRIMARY KEY (post_id, meta_key)
);

CREATE TABLE IF NOT EXISTS options (
    option_name VARCHAR PRIMARY KEY,
    option_value VARCHAR,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

HPOS_SCHEMA = """
CREATE TABLE IF NOT EXISTS wc_orders (
    id BIGINT PRIMARY KEY,
    type VARCHAR NOT NULL DEFAULT 'shop_order',
    status VARCHAR NOT NULL,
    date_created_gmt TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS wc_orders_meta (
    order_id BIGINT NOT NULL,
    meta_key VARCHAR NOT NULL,
    meta_value VARCHAR,
    PRIMARY KEY (order_id, meta_key)
);
"""

ATTRIBUTION_SCHEMA = """
CREATE TABLE IF NOT EXISTS wc_order_attribution (
    order_id BIGINT PRIMARY KEY,
    source_type VARCHAR,
    source VARCHAR,
    medium VARCHAR,
    campaign VARCHAR,
    term VARCHAR,
    content VARCHAR,
    referrer VARCHAR,
    created_at TIMESTAMP
);
"""


class OriginStore:
    """
    Async-compatible DuckDB store for order and attribution data.

    All access is serialized through one asyncio lock and a single-worker
    thread pool; DuckDB connections are not safe for concurrent use.
    """

    def __init__(
        self,
        db_path: Path = None,
        create_hpos_tables: bool = None,
        create_attribution_table: bool = None,
    ):
        self.db_path = Path(db_path) if db_path else config.store.db_path
        self._create_hpos = (
            config.store.create_hpos_tables if create_hpos_tables is None else create_hpos_tables
        )
        self._create_attribution = (
            config.store.create_attribution_table
            if create_attribution_table is None else create_attribution_table
        )
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = asyncio.Lock()  # Serializes all database access
        self._executor: Optional[ThreadPoolExecutor] = None
        self._total_queries = 0

    async def connect(self) -> None:
        """Open the connection, create the schema and start the worker thread."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with self._lock:
            if self._connection is None:
                self._connection = duckdb.connect(str(self.db_path))
                self._connection.execute(CORE_SCHEMA)
                if self._create_hpos:
                    self._connection.execute(HPOS_SCHEMA)
                if self._create_attribution:
                    self._connection.execute(ATTRIBUTION_SCHEMA)

                self._executor = ThreadPoolExecutor(
                    max_workers=1,  # DuckDB requires serialized access
                    thread_name_prefix="duckdb"
                )
                logger.info(f"DuckDB connected: {self.db_path}")

    async def close(self) -> None:
        """Close the connection and worker thread."""
        async with self._lock:
            if self._executor:
                self._executor.shutdown(wait=True)
                self._executor = None

            if self._connection:
                self._connection.close()
                self._connection = None
                logger.info("DuckDB connection closed")

    @asynccontextmanager
    async def connection(self):
        """Yield the connection while holding the store lock."""
        if self._connection is None:
            await self.connect()
        async with self._lock:
            yield self._connection

    def get_connection_info(self) -> Dict[str, Any]:
        return {
            "status": "active" if self._connection else "not_initialized",
            "total_queries": self._total_queries,
            "db_path": str(self.db_path),
        }

    # ─── Query Execution with Timeout ────────────────────────────────────────

    async def _run(self, query: str, params: list, fetch: Optional[str], timeout: float, label: str):
        async with self.connection() as conn:
            self._total_queries += 1

            def _work():
                cursor = conn.execute(query, params) if params else conn.execute(query)
                if fetch == "one":
                    return cursor.fetchone()
                if fetch == "all":
                    return cursor.fetchall()
                return None

            try:
                loop = asyncio.get_running_loop()
                return await asyncio.wait_for(
                    loop.run_in_executor(self._executor, _work),
                    timeout=timeout
                )
            except asyncio.TimeoutError:
                raise QueryTimeoutError(query, timeout, label)

    async def _execute(self, query: str, params: list = None, timeout: float = DEFAULT_QUERY_TIMEOUT) -> None:
        """
        Execute a statement with timeout (INSERT/UPDATE/DELETE/DDL).

        Raises:
            QueryTimeoutError: If the statement exceeds timeout
        """
        await self._run(query, params, None, timeout, "Execute failed")

    async def _fetch_one(
        self,
        query: str,
        params: list = None,
        timeout: float = DEFAULT_QUERY_TIMEOUT,
    ) -> Optional[tuple]:
        """
        Execute query and fetch one row with timeout.

        Raises:
            QueryTimeoutError: If query exceeds timeout
        """
        return await self._run(query, params, "one", timeout, "Fetch one failed")

    async def _fetch_all(
        self,
        query: str,
        params: list = None,
        timeout: float = DEFAULT_QUERY_TIMEOUT,
    ) -> List[tuple]:
        """
        Execute query and fetch all rows with timeout.

        Raises:
            QueryTimeoutError: If query exceeds timeout
        """
        return await self._run(query, params, "all", timeout, "Fetch all failed")

    async def _fetch_scalar(self, query: str, params: list = None, default: Any = 0) -> Any:
        row = await self._fetch_one(query, params)
        if row is None or row[0] is None:
            return default
        return row[0]

    # ─── Schema ──────────────────────────────────────────────────────────────

    async def table_exists(self, table_name: str) -> bool:
        """Check whether a table exists in the main schema."""
        count = await self._fetch_scalar(
            """
            SELECT COUNT(*) FROM information_schema.tables
            WHERE table_schema = 'main' AND table_name = ?
            """,
            [table_name],
        )
        return count > 0

    async def create_hpos_tables(self) -> None:
        """Create the HPOS order tables (wc_orders, wc_orders_meta)."""
        await self._execute(HPOS_SCHEMA)
        logger.info("HPOS order tables created")

    async def create_attribution_table(self) -> None:
        """Create the dedicated wc_order_attribution table."""
        await self._execute(ATTRIBUTION_SCHEMA)
        logger.info("Order attribution table created")

    # ─── Writes ──────────────────────────────────────────────────────────────
    # Meta upserts back the checkout hook. The order and attribution row
    # upserts seed the WooCommerce mirror, as an order import or a test
    # fixture does.

    async def upsert_post_order(
        self,
        order_id: int,
        post_date: datetime,
        status: str = "wc-processing",
        post_type: str = "shop_order",
    ) -> None:
        """Insert or replace a classic `posts` order row."""
        await self._execute(
            "INSERT OR REPLACE INTO posts (id, post_type, post_status, post_date) VALUES (?, ?, ?, ?)",
            [order_id, post_type, status, post_date],
        )

    async def upsert_post_meta(self, post_id: int, meta_key: str, meta_value: Optional[str]) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO postmeta (post_id, meta_key, meta_value) VALUES (?, ?, ?)",
            [post_id, meta_key, meta_value],
        )

    async def upsert_hpos_order(
        self,
        order_id: int,
        date_created_gmt: datetime,
        status: str = "wc-processing",
        order_type: str = "shop_order",
    ) -> None:
        """Insert or replace an HPOS `wc_orders` row."""
        await self._execute(
            "INSERT OR REPLACE INTO wc_orders (id, type, status, date_created_gmt) VALUES (?, ?, ?, ?)",
            [order_id, order_type, status, date_created_gmt],
        )

    async def upsert_order_meta(self, order_id: int, meta_key: str, meta_value: Optional[str]) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO wc_orders_meta (order_id, meta_key, meta_value) VALUES (?, ?, ?)",
            [order_id, meta_key, meta_value],
        )

    async def upsert_attribution(
        self,
        order_id: int,
        source_type: Optional[str],
        source: Optional[str] = None,
        medium: Optional[str] = None,
        campaign: Optional[str] = None,
        term: Optional[str] = None,
        content: Optional[str] = None,
        referrer: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        """Insert or replace one `wc_order_attribution` row."""
        await self._execute(
            """
            INSERT OR REPLACE INTO wc_order_attribution
                (order_id, source_type, source, medium, campaign, term, content, referrer, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [order_id, source_type, source, medium, campaign, term, content, referrer, created_at],
        )

    # ─── Options ─────────────────────────────────────────────────────────────

    async def get_option(self, name: str) -> Optional[str]:
        row = await self._fetch_one("SELECT option_value FROM options WHERE option_name = ?", [name])
        return row[0] if row else None

    async def set_option(self, name: str, value: str) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO options (option_name, option_value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)",
            [name, value],
        )

    async def delete_option(self, name: str) -> None:
        await self._execute("DELETE FROM options WHERE option_name = ?", [name])

    # ─── Stats ───────────────────────────────────────────────────────────────

    async def get_stats(self) -> Dict[str, Any]:
        """Row counts per table, for health checks."""
        stats: Dict[str, Any] = {
            "orders": await self._fetch_scalar("SELECT COUNT(*) FROM posts WHERE post_type = 'shop_order'"),
            "postmeta": await self._fetch_scalar("SELECT COUNT(*) FROM postmeta"),
            "hpos_orders": None,
            "attribution_rows": None,
        }
        if await self.table_exists("wc_orders"):
            stats["hpos_orders"] = await self._fetch_scalar("SELECT COUNT(*) FROM wc_orders")
        if await self.table_exists("wc_order_attribution"):
            stats["attribution_rows"] = await self._fetch_scalar("SELECT COUNT(*) FROM wc_order_attribution")

        stats["db_size_mb"] = (
            round(self.db_path.stat().st_size / 1024 / 1024, 2) if self.db_path.exists() else 0
        )
        return stats


# ═══════════════════════════════════════════════════════════════════════════════
# SINGLETON INSTANCE
# ═══════════════════════════════════════════════════════════════════════════════

_store_instance: Optional[OriginStore] = None
_store_lock = asyncio.Lock()


async def get_store() -> OriginStore:
    """Get singleton store instance (coroutine-safe)."""
    global _store_instance
    async with _store_lock:
        if _store_instance is None:
            _store_instance = OriginStore()
            await _store_instance.connect()
    return _store_instance


async def close_store() -> None:
    """Close singleton store instance."""
    global _store_instance
    if _store_instance:
        await _store_instance.close()
        _store_instance = None
