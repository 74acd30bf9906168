"""
Centralized configuration for the order origin tracker.

This module provides a single source of truth for all configuration values.
Configuration is loaded from environment variables with sensible defaults.

Usage:
    from origin_tracker.config import config

    price = config.report.unit_price
    cookie = config.tracker.cookie_name
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        return Decimal(raw)
    except InvalidOperation:
        return Decimal("-1")  # rejected by validate_config()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip().lstrip("-").isdigit():
        return default
    return int(raw)


@dataclass(frozen=True)
class StoreConfig:
    """DuckDB store configuration."""

    db_path: Path = field(
        default_factory=lambda: Path(
            os.getenv("ORIGIN_DB_PATH", str(Path(__file__).parent.parent / "data" / "orders.duckdb"))
        )
    )
    query_timeout: float = 30.0
    # Create HPOS / attribution tables on connect (installs without them keep the legacy schemes)
    create_hpos_tables: bool = field(
        default_factory=lambda: os.getenv("ORIGIN_CREATE_HPOS", "false").lower() == "true"
    )
    create_attribution_table: bool = field(
        default_factory=lambda: os.getenv("ORIGIN_CREATE_ATTRIBUTION", "false").lower() == "true"
    )


@dataclass(frozen=True)
class TrackerConfig:
    """First-touch recorder configuration."""

    cookie_name: str = "wc_order_origin"
    cookie_max_age_days: int = 30
    cookie_path: str = "/"
    cookie_samesite: str = "lax"
    order_meta_key: str = "_order_origin"

    # Referrer host fragments classified as organic search
    search_engines: Tuple[str, ...] = (
        "google",
        "bing",
        "yahoo",
        "duckduckgo",
        "yandex",
        "baidu",
    )

    @property
    def cookie_max_age_seconds(self) -> int:
        return self.cookie_max_age_days * 24 * 60 * 60


@dataclass(frozen=True)
class ReportConfig:
    """Origin report configuration."""

    # Fixed per-order price used for ROAS (not derived from order totals)
    unit_price: Decimal = field(default_factory=lambda: _env_decimal("REPORT_UNIT_PRICE", "19.00"))

    # Orders added to the FB ADS bucket after grouping
    fb_ads_bonus: int = field(default_factory=lambda: _env_int("REPORT_FB_ADS_BONUS", 2))

    default_window_days: int = 3
    timezone: str = field(default_factory=lambda: os.getenv("STORE_TIMEZONE", "UTC"))
    excluded_statuses: List[str] = field(default_factory=lambda: ["trash", "auto-draft"])
    recent_orders_limit: int = 10
    max_range_days: int = 366

    # Option names in the key-value store
    ad_spend_option: str = "wcot_ad_spend_data"
    date_override_option: str = "wcot_manual_date_override"


@dataclass(frozen=True)
class WebConfig:
    """Web surface configuration."""

    host: str = field(default_factory=lambda: os.getenv("WEB_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("WEB_PORT", 8080))

    # Rate limit for report builds (slowapi, per client address)
    rate_limit_per_minute: int = 30


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""

    version: str = "1.0.0"
    store: StoreConfig = field(default_factory=StoreConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    web: WebConfig = field(default_factory=WebConfig)


# Global config instance
config = AppConfig()


# ─── Convenience Exports ──────────────────────────────────────────────────────
VERSION = config.version
FIXED_UNIT_PRICE = config.report.unit_price
FB_ADS_BONUS_ORDERS = config.report.fb_ads_bonus
ORIGIN_COOKIE_NAME = config.tracker.cookie_name


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def validate_config(app_config: AppConfig = None) -> None:
    """
    Validate configuration values.

    Call this on application startup to fail fast with clear error messages
    instead of wrong report numbers later.

    Raises:
        ConfigurationError: If any value is invalid
    """
    cfg = app_config or config
    errors = []

    if cfg.report.unit_price < 0:
        errors.append("REPORT_UNIT_PRICE must be a non-negative decimal")

    if cfg.report.fb_ads_bonus < 0:
        errors.append("REPORT_FB_ADS_BONUS must be a non-negative integer")

    try:
        ZoneInfo(cfg.report.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"STORE_TIMEZONE '{cfg.report.timezone}' is not a known timezone")

    if cfg.tracker.cookie_max_age_days <= 0:
        errors.append("Origin cookie lifetime must be positive")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)
