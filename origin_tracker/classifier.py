"""Origin label derivation and normalization.

Two steps turn an attribution record into a report label:

1. ``raw_label`` renders the record using the label template of the
   storage scheme it came from.
2. ``normalize_origin`` folds raw labels into canonical buckets by walking
   an ordered list of (predicate, label) rules. Order matters: Instagram is
   checked before any Facebook heuristic because both share an ad platform.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Tuple

from origin_tracker.models import (
    AttributionRecord,
    SourceType,
    StorageScheme,
    FB_ADS_LABEL,
    INSTAGRAM_LABEL,
    DIRECT_LABEL,
)

logger = logging.getLogger(__name__)

# Facebook ad-set identifiers surface as 15-18 digit UTM values
_AD_SET_ID_FULL = re.compile(r"^\d{15,18}$")
_AD_SET_ID_ANY = re.compile(r"\d{15,18}")
_AD_SET_ID_TOKEN = re.compile(r"(?:utm:|origin:|^)\s*\d{15,18}(?:\s|$)", re.IGNORECASE)
_AD_SET_ID_SUFFIX = re.compile(r"\d{10,}0138")

# Campaign identifier fragment shared by the store's Facebook ad sets
AD_ACCOUNT_MARKER = "0138"

_FACEBOOK_MARKERS = (
    "facebook",
    "fb ads",
    "facebook ads",
    "utm_medium:cpc",
    "utm_medium:social",
    "utm_medium:facebook",
)

Predicate = Callable[[str, str], bool]


def _is_instagram(raw: str, lowered: str) -> bool:
    return "instagram" in lowered


def _is_bare_ad_set_id(raw: str, lowered: str) -> bool:
    return bool(_AD_SET_ID_FULL.match(raw.strip()))


def _is_marked_ad_campaign(raw: str, lowered: str) -> bool:
    return AD_ACCOUNT_MARKER in lowered and (
        "paid" in lowered or bool(_AD_SET_ID_SUFFIX.search(lowered))
    )


def _is_paid_utm(raw: str, lowered: str) -> bool:
    return "utm_medium:paid" in lowered or ("utm: " in lowered and "paid" in lowered)


def _has_facebook_marker(raw: str, lowered: str) -> bool:
    return any(marker in lowered for marker in _FACEBOOK_MARKERS)


def _has_prefixed_ad_set_id(raw: str, lowered: str) -> bool:
    return bool(_AD_SET_ID_TOKEN.search(raw))


def _contains_ad_set_id(raw: str, lowered: str) -> bool:
    return bool(_AD_SET_ID_ANY.search(raw))


# Evaluated top to bottom, first match wins
NORMALIZATION_RULES: List[Tuple[str, Predicate, str]] = [
    ("instagram", _is_instagram, INSTAGRAM_LABEL),
    ("ad_set_id", _is_bare_ad_set_id, FB_ADS_LABEL),
    ("ad_account_marker", _is_marked_ad_campaign, FB_ADS_LABEL),
    ("paid_utm", _is_paid_utm, FB_ADS_LABEL),
    ("facebook_marker", _has_facebook_marker, FB_ADS_LABEL),
    ("prefixed_ad_set_id", _has_prefixed_ad_set_id, FB_ADS_LABEL),
    ("embedded_ad_set_id", _contains_ad_set_id, FB_ADS_LABEL),
]


def normalize_origin(origin: str) -> str:
    """
    Map a raw origin label to its canonical report label.

    Labels matching no rule are returned unchanged, so the function is
    idempotent: canonical labels never match a rule that changes them.
    """
    if not origin:
        return origin

    lowered = origin.lower()
    for rule_name, predicate, label in NORMALIZATION_RULES:
        if predicate(origin, lowered):
            logger.debug(f"Grouped origin {origin!r} -> {label!r} ({rule_name})")
            return label
    return origin


# ─── Raw Label Templates ─────────────────────────────────────────────────────

def _source_type_label(source_type: str, source: Optional[str], medium: Optional[str]) -> str:
    """Label template for schemes that store a WooCommerce source_type."""
    kind = SourceType.parse(source_type)
    shown_source = source or "Unknown"

    if kind is SourceType.UTM:
        label = f"UTM: {shown_source}"
        if medium:
            label += f" / {medium}"
        return label
    if kind is SourceType.ORGANIC:
        return f"Organic: {shown_source}"
    if kind is SourceType.REFERRAL:
        return f"Referral: {shown_source}"
    if kind is SourceType.DIRECT:
        return DIRECT_LABEL
    if kind is SourceType.ADMIN:
        return "Admin"
    return f"{source_type}: {shown_source}"


def utm_label(
    source: Optional[str] = None,
    medium: Optional[str] = None,
    campaign: Optional[str] = None,
    term: Optional[str] = None,
    content: Optional[str] = None,
) -> Optional[str]:
    """UTM-field label: source+medium > source > medium > campaign > term > content."""
    if source and medium:
        return f"UTM: {source} / {medium}"
    if source:
        return f"UTM: {source}"
    if medium:
        return f"UTM: {medium}"
    if campaign:
        return f"Campaign: {campaign}"
    if term:
        return f"Term: {term}"
    if content:
        return f"Content: {content}"
    return None


def raw_label(record: AttributionRecord, scheme: StorageScheme) -> str:
    """Render the unnormalized origin label for a record under a scheme."""
    if scheme is StorageScheme.LEGACY_ORIGIN:
        return record.origin or DIRECT_LABEL

    if scheme.is_source_type_driven and record.source_type:
        return _source_type_label(record.source_type, record.utm_source, record.utm_medium)

    source = record.utm_source
    if (
        scheme is StorageScheme.PYS_ENRICH
        and not source
        and not record.utm_medium
        and record.raw_payload
        and AD_ACCOUNT_MARKER in record.raw_payload
    ):
        source = AD_ACCOUNT_MARKER

    label = utm_label(
        source,
        record.utm_medium,
        record.utm_campaign,
        record.utm_term,
        record.utm_content,
    )
    return label or record.origin or DIRECT_LABEL


def classify(record: AttributionRecord, scheme: StorageScheme) -> str:
    """Raw label followed by normalization."""
    return normalize_origin(raw_label(record, scheme))
