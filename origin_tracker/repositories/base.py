"""
Base attribution source.

Each storage scheme an install may keep attribution data in is one
AttributionSource subclass. The selector asks every source for its
availability and lets the first non-empty one drive the report.
"""
from abc import ABC, abstractmethod
from datetime import datetime, time
from typing import Dict, List, Optional, Sequence, Tuple

from origin_tracker.config import config
from origin_tracker.exceptions import StoreError
from origin_tracker.filters import DateRange
from origin_tracker.models import AttributionRecord, StorageScheme, UTMFilters, UTM_DIMENSIONS
from origin_tracker.observability import get_logger
from origin_tracker.store import OriginStore

logger = get_logger(__name__)


def range_bounds(date_range: DateRange) -> List[datetime]:
    """[start 00:00, day after end 00:00) as query parameters."""
    return [
        datetime.combine(date_range.start, time.min),
        datetime.combine(date_range.end_exclusive, time.min),
    ]


def status_clause(column: str, statuses: Sequence[str]) -> Tuple[str, list]:
    """SQL fragment excluding the given order statuses."""
    if not statuses:
        return "TRUE", []
    placeholders = ", ".join("?" for _ in statuses)
    return f"{column} NOT IN ({placeholders})", list(statuses)


def clean(value: Optional[str]) -> Optional[str]:
    """Treat empty strings from meta tables as missing values."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class AttributionSource(ABC):
    """
    Read interface over one storage scheme.

    Subclasses must set ``scheme`` and implement:
    - availability(): rows of attribution data this scheme holds
    - _fetch_records(date_range): records for orders created in the range
    - count_orders_with_origin(): orders carrying any origin data
    - distinct_values(): selectable filter values per UTM dimension
    """

    scheme: StorageScheme
    required_tables: Tuple[str, ...] = ()

    def __init__(self, store: OriginStore, excluded_statuses: Sequence[str] = None):
        self.store = store
        self.excluded_statuses = list(
            excluded_statuses if excluded_statuses is not None else config.report.excluded_statuses
        )

    def status_filter(self, column: str) -> Tuple[str, list]:
        """SQL fragment excluding trashed and draft orders."""
        return status_clause(column, self.excluded_statuses)

    @abstractmethod
    async def availability(self) -> int:
        """Number of rows of attribution data available; 0 means unusable."""

    async def is_available(self) -> bool:
        return await self.availability() > 0

    async def missing_tables(self) -> List[str]:
        return [table for table in self.required_tables if not await self.store.table_exists(table)]

    async def fetch(self, date_range: DateRange, filters: Optional[UTMFilters] = None) -> List[AttributionRecord]:
        """
        Attribution records for orders created within the date range.

        Raises:
            StoreError: If a table this scheme reads is missing
        """
        missing = await self.missing_tables()
        if missing:
            raise StoreError(
                f"{self.scheme.display_name} is not available",
                f"missing table {missing[0]}",
                table=missing[0],
            )
        records = await self._fetch_records(date_range)
        if filters:
            records = filters.apply(records)
        logger.debug(
            f"{self.scheme.value}: {len(records)} records for {date_range.start_str}..{date_range.end_str}"
        )
        return records

    @abstractmethod
    async def _fetch_records(self, date_range: DateRange) -> List[AttributionRecord]:
        ...

    @abstractmethod
    async def count_orders_with_origin(self) -> int:
        ...

    async def distinct_values(self) -> Dict[str, List[str]]:
        """Filter values per dimension; schemes without UTM data have none."""
        return {f"{d}s": [] for d in UTM_DIMENSIONS}

    async def _distinct(self, query: str, params: list = None) -> List[str]:
        rows = await self.store._fetch_all(query, params)
        return sorted({clean(row[0]) for row in rows if clean(row[0])})

    def __repr__(self) -> str:
        return f"<{type(self).__name__} scheme={self.scheme.value}>"
