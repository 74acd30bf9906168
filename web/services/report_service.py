"""
Origin report service.

Runs one report: resolves "today", selects the attribution source,
aggregates, adds ROAS, filter values and the today-vs-yesterday
comparison, and shapes the result for the API.
"""
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from origin_tracker.aggregator import Aggregator, total_orders
from origin_tracker.config import config
from origin_tracker.filters import DateRange, default_range, parse_period, resolve_today
from origin_tracker.models import AttributionRecord, UTMFilters
from origin_tracker.observability import Timer, add_log_context, timed
from origin_tracker.repositories import SourceSelector, TodayOrdersReader
from origin_tracker.roas import RoasCalculator
from origin_tracker.settings_store import DuckDBSettingsStore, SettingsStore
from origin_tracker.store import OriginStore, get_store
from origin_tracker.validators import validate_date_range, validate_period

logger = logging.getLogger(__name__)


def percent_change(current: int, previous: int) -> float:
    """Change from previous to current, in percent; 100 when starting from zero."""
    if previous > 0:
        return round((current - previous) / previous * 100, 1)
    return 100.0 if current > 0 else 0.0


class ReportService:
    """Builds origin reports over one store."""

    def __init__(
        self,
        store: OriginStore,
        settings: Optional[SettingsStore] = None,
        aggregator: Optional[Aggregator] = None,
        roas: Optional[RoasCalculator] = None,
        selector: Optional[SourceSelector] = None,
        today_reader: Optional[TodayOrdersReader] = None,
    ):
        self.store = store
        self.settings = settings or DuckDBSettingsStore(store)
        self.aggregator = aggregator or Aggregator()
        self.roas = roas or RoasCalculator(self.settings)
        self.selector = selector or SourceSelector(store)
        self.today_reader = today_reader or TodayOrdersReader(store)

    async def resolve_today(self) -> tuple:
        """(today, date_source) honouring the manual date override."""
        override = await self.settings.get_date_override()
        today, date_source = resolve_today(override)
        if date_source == "manual_override":
            logger.info(f"Using manual date override: {today.isoformat()}")
        return today, date_source

    async def resolve_range(
        self,
        start_date: Optional[str],
        end_date: Optional[str],
        today: date,
        period: Optional[str] = None,
    ) -> DateRange:
        """Period shortcut, then explicit dates; a missing bound falls back to the default window."""
        if validate_period(period):
            return parse_period(period, reference_date=today)
        default = default_range(today)
        start, end = validate_date_range(
            start_date or default.start_str,
            end_date or default.end_str,
            max_days=config.report.max_range_days,
        )
        return DateRange(start, end)

    async def _today_records(self, day: date, filters: Optional[UTMFilters]) -> List[AttributionRecord]:
        records = await self.today_reader.fetch_all_orders(day)
        return filters.apply(records) if filters else records

    @timed("build_origin_report")
    async def build_report(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        filters: Optional[UTMFilters] = None,
        period: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Build the origin report for a date range.

        Args:
            start_date: YYYY-MM-DD; defaults to the start of the default window
            end_date: YYYY-MM-DD; defaults to today
            filters: Per-dimension UTM allow-lists
            period: Shortcut (today, yesterday, week, ...) overriding the dates

        Raises:
            ValidationError: If the dates are malformed or out of order
        """
        filters = filters or UTMFilters()
        today, date_source = await self.resolve_today()
        date_range = await self.resolve_range(start_date, end_date, today, period)
        source = await self.selector.select()
        is_today = date_range.is_single_day(today)
        add_log_context(scheme=source.scheme.value, date_range=date_range.key)

        comparison = None
        with Timer("aggregate_origins", logger):
            if is_today:
                logger.info(f"Today report for {today.isoformat()}: enumerating all orders of the day")
                today_records = await self._today_records(today, filters)
                buckets = self.aggregator.aggregate_today(today_records)

                yesterday_records = await self._today_records(today - timedelta(days=1), filters)
                comparison = {
                    "today_orders": len(today_records),
                    "yesterday_orders": len(yesterday_records),
                    "order_change": percent_change(len(today_records), len(yesterday_records)),
                }
            else:
                records = await source.fetch(date_range, filters)
                buckets = self.aggregator.aggregate(records, source.scheme)

        roas = await self.roas.calculate(buckets, date_range.start_str, date_range.end_str)

        return {
            "scheme": source.scheme.value,
            "scheme_name": source.scheme.display_name,
            "start_date": date_range.start_str,
            "end_date": date_range.end_str,
            "days": date_range.days,
            "today": today.isoformat(),
            "date_source": date_source,
            "is_today": is_today,
            "filters": filters.to_dict(),
            "results": [bucket.to_dict() for bucket in buckets],
            "total_orders": total_orders(buckets),
            "total_orders_with_origin": await source.count_orders_with_origin(),
            "available_filters": await source.distinct_values(),
            "comparison": comparison,
            "roas": roas.to_dict(),
            "ad_spend_key": date_range.key,
        }

    async def availability(self) -> Dict[str, int]:
        counts = await self.selector.availability()
        return {scheme.value: count for scheme, count in counts.items()}


_service: Optional[ReportService] = None


async def get_report_service() -> ReportService:
    """Report service bound to the shared store."""
    global _service
    store = await get_store()
    if _service is None or _service.store is not store:
        _service = ReportService(store)
    return _service
