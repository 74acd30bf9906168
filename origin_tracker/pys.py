"""PixelYourSite `pys_enrich_data` blob parsing.

PixelYourSite stores its enrichment payload as a PHP-serialized array, e.g.

    a:9:{s:11:"pys_landing";s:26:"https://shop.example/offer";...
         s:7:"pys_utm";s:57:"utm_source:120226527565230138|utm_medium:paid|..."}

The UTM values live inside the `pys_utm` member as a `|`-delimited list of
`key:value` pairs.
"""
import logging
import re
from typing import Any, Dict, Mapping, Optional

import phpserialize

logger = logging.getLogger(__name__)

UTM_KEYS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")
PYS_KEYS = ("pys_source", "pys_landing")

# Values in the raw fallback also stop at a quote so the PHP string
# terminator (`";}`) never leaks into the last value
_PAIR_PATTERNS = {
    key: re.compile(rf"{key}:([^|\"]+)")
    for key in UTM_KEYS + PYS_KEYS
}


def _extract(key: str, text: str) -> Optional[str]:
    match = _PAIR_PATTERNS[key].search(text)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def _unserialize(raw: str) -> Optional[Mapping[str, Any]]:
    """Decode a PHP-serialized array; None when the blob is not one."""
    try:
        decoded = phpserialize.loads(raw.encode("utf-8"), decode_strings=True)
    except (ValueError, TypeError, UnicodeError, EOFError) as e:
        logger.debug(f"pys_enrich_data is not PHP-serialized, using raw fallback: {e}")
        return None
    if isinstance(decoded, Mapping):
        return decoded
    return None


def parse_pys_enrich_data(raw: Any) -> Dict[str, str]:
    """
    Parse a PYS enrichment payload into flat UTM / PYS fields.

    Accepts an already-decoded mapping, a PHP-serialized string or any
    other string; malformed input yields a partial or empty dict.

    Returns:
        Dict with any of utm_source, utm_medium, utm_campaign, utm_term,
        utm_content, pys_source, pys_landing
    """
    if raw is None:
        return {}
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    data = raw if isinstance(raw, Mapping) else None
    if data is None:
        if not isinstance(raw, str) or not raw.strip():
            return {}
        data = _unserialize(raw)

    parsed: Dict[str, str] = {}

    if data is not None:
        pys_utm = data.get("pys_utm")
        if isinstance(pys_utm, str):
            for key in UTM_KEYS:
                value = _extract(key, pys_utm)
                if value:
                    parsed[key] = value
        for key in PYS_KEYS:
            value = data.get(key)
            if value not in (None, ""):
                parsed[key] = str(value)
        return parsed

    for key in UTM_KEYS + PYS_KEYS:
        value = _extract(key, raw)
        if value:
            parsed[key] = value
    return parsed
