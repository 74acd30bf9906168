"""
Pytest configuration and shared fixtures.
"""
import pytest
import pytest_asyncio
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from origin_tracker.models import AttributionRecord
from origin_tracker.settings_store import SettingsStore
from origin_tracker.store import OriginStore


class InMemorySettingsStore(SettingsStore):
    """SettingsStore kept in plain dicts, for service tests."""

    def __init__(self, ad_spend: Optional[Dict[str, Decimal]] = None, date_override: Optional[date] = None):
        self._ad_spend = dict(ad_spend or {})
        self._date_override = date_override

    async def get_date_override(self) -> Optional[date]:
        return self._date_override

    async def set_date_override(self, value: date) -> None:
        self._date_override = value

    async def clear_date_override(self) -> None:
        self._date_override = None

    async def get_ad_spend_map(self) -> Dict[str, Decimal]:
        return dict(self._ad_spend)

    async def set_ad_spend(self, date_range_key: str, amount: Decimal) -> None:
        self._ad_spend[date_range_key] = amount


@pytest.fixture
def settings() -> InMemorySettingsStore:
    return InMemorySettingsStore()


@pytest.fixture
def report_day() -> date:
    """Fixed "today" used across report tests."""
    return date(2026, 3, 10)


@pytest.fixture
def pinned_settings(report_day) -> InMemorySettingsStore:
    """Settings whose manual date override pins "today" to report_day."""
    return InMemorySettingsStore(date_override=report_day)


@pytest.fixture
def sample_records() -> List[AttributionRecord]:
    """Mixed attribution records as read from the post meta scheme."""
    return [
        AttributionRecord(order_id=1, utm_source="facebook", utm_medium="paid"),
        AttributionRecord(order_id=2, utm_source="instagram", utm_medium="social"),
        AttributionRecord(order_id=3, utm_source="google", utm_medium="organic"),
        AttributionRecord(order_id=4, utm_source="120226527565230138"),
        AttributionRecord(order_id=5),
        AttributionRecord(order_id=6, utm_source="newsletter", utm_medium="email", utm_campaign="spring"),
    ]


@pytest_asyncio.fixture
async def store(tmp_path) -> OriginStore:
    """Store with every optional table (HPOS and attribution table)."""
    origin_store = OriginStore(
        db_path=tmp_path / "orders.duckdb",
        create_hpos_tables=True,
        create_attribution_table=True,
    )
    await origin_store.connect()
    yield origin_store
    await origin_store.close()


@pytest_asyncio.fixture
async def legacy_store(tmp_path) -> OriginStore:
    """Store with only the classic posts/postmeta/options tables."""
    origin_store = OriginStore(
        db_path=tmp_path / "legacy.duckdb",
        create_hpos_tables=False,
        create_attribution_table=False,
    )
    await origin_store.connect()
    yield origin_store
    await origin_store.close()
