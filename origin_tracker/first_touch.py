"""
First-touch origin resolution.

One pure function decides the origin label for a visit. Both the served
browser script (through ``/api/origin/resolve``) and the server-side
middleware call it, so the two paths can never disagree.
"""
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence
from urllib.parse import parse_qs, urlsplit

from origin_tracker.config import config
from origin_tracker.models import DIRECT_LABEL

ORGANIC_SEARCH_LABEL = "Organic Search"


def _strip_www(host: str) -> str:
    host = (host or "").strip().lower()
    return host[4:] if host.startswith("www.") else host


def referrer_host(referrer: Optional[str]) -> Optional[str]:
    """Extract the hostname from a referrer URL, without a leading `www.`."""
    if not referrer:
        return None
    parts = urlsplit(referrer.strip())
    host = parts.hostname
    if not host and "://" not in referrer:
        # Bare host such as "google.com/search"
        host = urlsplit(f"//{referrer.strip()}").hostname
    return _strip_www(host) if host else None


def _first(query: Mapping[str, object], key: str) -> Optional[str]:
    value = query.get(key)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def resolve_origin(
    query: Mapping[str, object],
    referrer: Optional[str],
    current_host: str,
    search_engines: Sequence[str] = None,
) -> str:
    """
    Decide the first-touch origin label for a page view.

    Args:
        query: Query parameters of the landing URL (values may be lists)
        referrer: document.referrer / Referer header, may be empty
        current_host: Hostname of the storefront
        search_engines: Host fragments treated as organic search

    Returns:
        "UTM: {source}[ / {medium}]", "Organic Search",
        "Referral: {host}" or "Direct"
    """
    engines = search_engines if search_engines is not None else config.tracker.search_engines

    utm_source = _first(query, "utm_source")
    if utm_source:
        label = f"UTM: {utm_source}"
        utm_medium = _first(query, "utm_medium")
        if utm_medium:
            label += f" / {utm_medium}"
        return label

    ref_host = referrer_host(referrer)
    if ref_host and ref_host != _strip_www(current_host):
        if any(engine in ref_host for engine in engines):
            return ORGANIC_SEARCH_LABEL
        return f"Referral: {ref_host}"

    return DIRECT_LABEL


def resolve_origin_from_url(url: str, referrer: Optional[str], current_host: Optional[str] = None) -> str:
    """Convenience wrapper taking the full landing URL."""
    parts = urlsplit(url or "")
    host = current_host or parts.hostname or ""
    return resolve_origin(parse_qs(parts.query), referrer, host)


@dataclass
class FirstTouchRecorder:
    """Decides whether a visit should store a new origin value."""

    cookie_name: str = config.tracker.cookie_name

    def record(
        self,
        cookies: Mapping[str, str],
        query: Mapping[str, object],
        referrer: Optional[str],
        current_host: str,
    ) -> Optional[str]:
        """
        Return the label to store, or None when the visitor already has one.

        An existing value is never overwritten within its lifetime.
        """
        if cookies.get(self.cookie_name):
            return None
        return resolve_origin(query, referrer, current_host)
