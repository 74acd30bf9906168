"""
Pydantic request and response models for API endpoints.

Provides type-safe models with automatic validation and documentation.
"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


# ═══════════════════════════════════════════════════════════════════════════════
# HEALTH CHECK
# ═══════════════════════════════════════════════════════════════════════════════

class StoreStats(BaseModel):
    """Order store statistics."""
    status: str
    latency_ms: Optional[float] = None
    orders: Optional[int] = None
    postmeta: Optional[int] = None
    hpos_orders: Optional[int] = None
    attribution_rows: Optional[int] = None
    db_size_mb: Optional[float] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(description="Service status: healthy or degraded")
    version: str = Field(description="Application version")
    uptime_seconds: int = Field(description="Uptime in seconds")
    correlation_id: Optional[str] = Field(None, description="Request correlation ID")
    store: StoreStats
    scheme: Optional[str] = Field(None, description="Attribution storage scheme currently selected")


# ═══════════════════════════════════════════════════════════════════════════════
# METRICS
# ═══════════════════════════════════════════════════════════════════════════════

class TimingStats(BaseModel):
    """Timing statistics for an operation."""
    count: int
    avg_ms: float
    min_ms: float
    max_ms: float
    p50_ms: float
    p95_ms: Optional[float] = None


class MetricsResponse(BaseModel):
    """Application metrics response."""
    uptime_seconds: int
    correlation_id: Optional[str] = None
    requests: Dict[str, int] = Field(default_factory=dict)
    errors: Dict[str, int] = Field(default_factory=dict)
    schemes: Dict[str, int] = Field(default_factory=dict)
    timing: Dict[str, TimingStats] = Field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════════════════════
# FIRST TOUCH
# ═══════════════════════════════════════════════════════════════════════════════

class OriginResolveResponse(BaseModel):
    """Origin label for a landing page view."""
    origin: str = Field(description="Origin label to store in the first-touch cookie")
    cookie_name: str
    max_age_seconds: int


class SaveOriginRequest(BaseModel):
    """Order-creation hook payload; the cookie is used when origin is absent."""
    origin: Optional[str] = Field(None, description="Origin label captured at first touch")


class SaveOriginResponse(BaseModel):
    order_id: int
    saved: bool
    origin: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════════════
# REPORT
# ═══════════════════════════════════════════════════════════════════════════════

class ReportRequest(BaseModel):
    """Origin report parameters. Empty lists mean no filter on that dimension."""
    start_date: Optional[str] = Field(None, description="Start date (YYYY-MM-DD)")
    end_date: Optional[str] = Field(None, description="End date (YYYY-MM-DD)")
    period: Optional[str] = Field(None, description="today, yesterday, week, last_week, month or last_month")
    utm_sources: List[str] = Field(default_factory=list)
    utm_mediums: List[str] = Field(default_factory=list)
    utm_campaigns: List[str] = Field(default_factory=list)
    utm_terms: List[str] = Field(default_factory=list)
    utm_contents: List[str] = Field(default_factory=list)


class OriginBucketResponse(BaseModel):
    origin: str
    order_count: int


class ComparisonResponse(BaseModel):
    """Today vs yesterday order counts."""
    today_orders: int
    yesterday_orders: int
    order_change: float = Field(description="Change in percent, 1 decimal")


class RoasResponse(BaseModel):
    """Facebook ads return on ad spend."""
    facebook_orders: int
    facebook_sales: float
    ad_spend: float
    roas: float
    roas_display: str
    roas_rating: str
    roas_color: str
    cost_per_order: float
    profit_per_order: float
    total_profit: float
    profit_margin: float
    unit_price: float
    instagram_orders: int
    instagram_sales: float
    has_facebook_sales: bool


class ReportResponse(BaseModel):
    """Origin report."""
    scheme: str
    scheme_name: str
    start_date: str
    end_date: str
    days: int
    today: str
    date_source: str = Field(description="manual_override or system")
    is_today: bool
    filters: Dict[str, List[str]]
    results: List[OriginBucketResponse]
    total_orders: int
    total_orders_with_origin: int
    available_filters: Dict[str, List[str]]
    comparison: Optional[ComparisonResponse] = None
    roas: RoasResponse
    ad_spend_key: str


# ═══════════════════════════════════════════════════════════════════════════════
# SETTINGS
# ═══════════════════════════════════════════════════════════════════════════════

class AdSpendRequest(BaseModel):
    """Ad spend for a report period, keyed by key or by start/end dates."""
    date_range_key: Optional[str] = Field(None, description="YYYY-MM-DD_to_YYYY-MM-DD")
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    amount: Any = Field(..., description="Spend amount, >= 0")


class DateOverrideRequest(BaseModel):
    """Manual "today"; empty clears the override."""
    date: Optional[str] = Field(None, description="YYYY-MM-DD, or empty to clear")


class DateOverrideResponse(BaseModel):
    date: Optional[str] = None
    today: str
    date_source: str
