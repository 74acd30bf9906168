"""
Domain models for order origin attribution.

Provides type-safe dataclasses for attribution records, report buckets,
ad spend entries and ROAS results. Attribution records are produced per
report run and never persisted by the reporting code itself.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class SourceType(str, Enum):
    """Attribution source types written by WooCommerce order attribution."""
    UTM = "utm"
    ORGANIC = "organic"
    REFERRAL = "referral"
    DIRECT = "direct"
    ADMIN = "admin"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["SourceType"]:
        """Map a raw stored value to a SourceType; unknown values become OTHER."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.OTHER


class StorageScheme(str, Enum):
    """Storage schemes an install may hold attribution data in, by priority."""
    WC_ATTRIBUTION = "wc_attribution"
    WC_ORDERS_META = "wc_orders_meta"
    POST_META = "post_meta"
    PYS_ENRICH = "pys_enrich"
    LEGACY_ORIGIN = "legacy_origin"

    @property
    def display_name(self) -> str:
        names = {
            StorageScheme.WC_ATTRIBUTION: "WooCommerce Order Attribution table",
            StorageScheme.WC_ORDERS_META: "WooCommerce Orders Meta",
            StorageScheme.POST_META: "Order Post Meta (UTM fields)",
            StorageScheme.PYS_ENRICH: "PixelYourSite enrich data",
            StorageScheme.LEGACY_ORIGIN: "Custom origin cookie",
        }
        return names[self]

    @property
    def is_source_type_driven(self) -> bool:
        """Whether labels come from source_type templates rather than UTM fields."""
        return self in (StorageScheme.WC_ATTRIBUTION, StorageScheme.WC_ORDERS_META)


# Canonical labels produced by normalization
FB_ADS_LABEL = "Sales from FB ADS"
INSTAGRAM_LABEL = "Sales from Instagram"
DIRECT_LABEL = "Direct"

UTM_DIMENSIONS = ("source", "medium", "campaign", "term", "content")


# ═══════════════════════════════════════════════════════════════════════════════
# DATACLASSES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class AttributionRecord:
    """One order's raw attribution data as read from a storage scheme."""
    order_id: int
    source_type: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None
    referrer_host: Optional[str] = None
    created_at: Optional[datetime] = None
    status: Optional[str] = None
    origin: Optional[str] = None  # legacy `_order_origin` value
    raw_payload: Optional[str] = None  # raw pys_enrich_data blob

    @property
    def parsed_source_type(self) -> Optional[SourceType]:
        return SourceType.parse(self.source_type)

    def utm_value(self, dimension: str) -> Optional[str]:
        """Get UTM value by dimension name (source, medium, ...)."""
        return getattr(self, f"utm_{dimension}")

    @property
    def has_utm(self) -> bool:
        return any(self.utm_value(d) for d in UTM_DIMENSIONS)


@dataclass
class OriginBucket:
    """Aggregated order count for one normalized origin label."""
    label: str
    order_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"origin": self.label, "order_count": self.order_count}


@dataclass
class UTMFilters:
    """
    Per-dimension allow-lists applied before aggregation.

    An empty list disables filtering on that dimension. Dimensions are
    combined with AND; values within one dimension with OR.
    """
    sources: List[str] = field(default_factory=list)
    mediums: List[str] = field(default_factory=list)
    campaigns: List[str] = field(default_factory=list)
    terms: List[str] = field(default_factory=list)
    contents: List[str] = field(default_factory=list)

    def allow_list(self, dimension: str) -> List[str]:
        return getattr(self, f"{dimension}s")

    @property
    def is_empty(self) -> bool:
        return not any(self.allow_list(d) for d in UTM_DIMENSIONS)

    def matches(self, record: AttributionRecord) -> bool:
        """Check a record against every non-empty allow-list."""
        for dimension in UTM_DIMENSIONS:
            allowed = self.allow_list(dimension)
            if allowed and record.utm_value(dimension) not in allowed:
                return False
        return True

    def apply(self, records: Iterable[AttributionRecord]) -> List[AttributionRecord]:
        if self.is_empty:
            return list(records)
        return [r for r in records if self.matches(r)]

    def to_dict(self) -> Dict[str, List[str]]:
        return {f"{d}s": list(self.allow_list(d)) for d in UTM_DIMENSIONS}


@dataclass
class AdSpendEntry:
    """Manually entered ad spend for one report date range."""
    date_range_key: str
    amount: Decimal

    @staticmethod
    def make_key(start: str, end: str) -> str:
        """Build the `{start}_to_{end}` key for ISO date strings."""
        return f"{start}_to_{end}"


@dataclass
class ROASResult:
    """Facebook ads return-on-ad-spend figures for a report period."""
    facebook_orders: int
    facebook_sales: Decimal
    ad_spend: Decimal
    roas: Decimal
    cost_per_order: Decimal
    profit_per_order: Decimal
    total_profit: Decimal
    profit_margin: Decimal
    unit_price: Decimal
    instagram_orders: int = 0
    instagram_sales: Decimal = Decimal("0")

    @property
    def has_facebook_sales(self) -> bool:
        return self.facebook_orders > 0

    @property
    def roas_display(self) -> str:
        """`N/A` when no ROAS could be computed, otherwise `x.xx:1`."""
        if self.roas <= 0:
            return "N/A"
        return f"{self.roas:.2f}:1"

    @property
    def roas_rating(self) -> str:
        """Rating bucket: excellent (>= 4), good (>= 2), poor, or none."""
        if self.roas <= 0:
            return "none"
        if self.roas >= 4:
            return "excellent"
        if self.roas >= 2:
            return "good"
        return "poor"

    @property
    def roas_color(self) -> str:
        colors = {
            "excellent": "#28a745",
            "good": "#ffc107",
            "poor": "#dc3545",
            "none": "#6c757d",
        }
        return colors[self.roas_rating]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "facebook_orders": self.facebook_orders,
            "facebook_sales": float(round(self.facebook_sales, 2)),
            "instagram_orders": self.instagram_orders,
            "instagram_sales": float(round(self.instagram_sales, 2)),
            "ad_spend": float(round(self.ad_spend, 2)),
            "roas": float(round(self.roas, 2)),
            "roas_display": self.roas_display,
            "roas_rating": self.roas_rating,
            "roas_color": self.roas_color,
            "cost_per_order": float(round(self.cost_per_order, 2)),
            "profit_per_order": float(round(self.profit_per_order, 2)),
            "total_profit": float(round(self.total_profit, 2)),
            "profit_margin": float(round(self.profit_margin, 2)),
            "unit_price": float(self.unit_price),
            "has_facebook_sales": self.has_facebook_sales,
        }
