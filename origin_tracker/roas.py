"""Facebook ads ROAS for an origin report.

Sales are estimated as FB ADS orders times a fixed unit price rather than
actual order totals. Instagram orders are counted for display only and do
not enter the ROAS math.
"""
import logging
from decimal import Decimal
from typing import Iterable, Optional

from origin_tracker.aggregator import bucket_count
from origin_tracker.config import config
from origin_tracker.models import (
    AdSpendEntry,
    OriginBucket,
    ROASResult,
    FB_ADS_LABEL,
    INSTAGRAM_LABEL,
)
from origin_tracker.settings_store import SettingsStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _dec(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def compute_roas(
    facebook_orders: int,
    ad_spend: Decimal,
    unit_price: Decimal,
    instagram_orders: int = 0,
) -> ROASResult:
    """
    Derive ROAS figures from an order count and a spend amount.

    Every ratio falls back to 0 when its denominator is 0.
    """
    orders = Decimal(facebook_orders)
    spend = _dec(ad_spend)
    price = _dec(unit_price)

    sales = orders * price
    roas = sales / spend if spend > 0 and sales > 0 else ZERO
    cost_per_order = spend / orders if orders > 0 and spend > 0 else ZERO
    profit_per_order = price - cost_per_order
    total_profit = profit_per_order * orders
    profit_margin = profit_per_order / price * HUNDRED if price > 0 else ZERO

    return ROASResult(
        facebook_orders=facebook_orders,
        facebook_sales=sales,
        ad_spend=spend,
        roas=roas,
        cost_per_order=cost_per_order,
        profit_per_order=profit_per_order,
        total_profit=total_profit,
        profit_margin=profit_margin,
        unit_price=price,
        instagram_orders=instagram_orders,
        instagram_sales=Decimal(instagram_orders) * price,
    )


class RoasCalculator:
    """ROAS for a report, with ad spend looked up through the settings port."""

    def __init__(self, settings: SettingsStore, unit_price: Optional[Decimal] = None):
        self.settings = settings
        self.unit_price = _dec(config.report.unit_price if unit_price is None else unit_price)

    async def calculate(self, buckets: Iterable[OriginBucket], start_date: str, end_date: str) -> ROASResult:
        """
        Args:
            buckets: Aggregated (bonus-adjusted) origin buckets
            start_date: Report start, YYYY-MM-DD
            end_date: Report end, YYYY-MM-DD
        """
        buckets = list(buckets)
        key = AdSpendEntry.make_key(start_date, end_date)
        ad_spend = await self.settings.get_ad_spend(key)

        result = compute_roas(
            bucket_count(buckets, FB_ADS_LABEL),
            ad_spend,
            self.unit_price,
            instagram_orders=bucket_count(buckets, INSTAGRAM_LABEL),
        )
        logger.debug(
            f"ROAS {key}: orders={result.facebook_orders} spend={result.ad_spend} roas={result.roas_display}"
        )
        return result
