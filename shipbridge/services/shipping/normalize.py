"""
Normalization helpers shared by carrier adapters.

Carrier payloads are treated as loose trees of dicts and lists. Everything
here tolerates missing keys and odd values: a gap in a carrier response
becomes None / a default, never an exception.
"""

import base64
import binascii
import copy
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Sequence

from shipbridge.core.enums import TrackingStatus

INTERNATIONAL_REGION = "international"
LOCATION_DELIMITER = ", "

MIME_TYPES = {
    "GIF": "image/gif",
    "PNG": "image/png",
    "PDF": "application/pdf",
    "ZPL": "application/x-zpl",
    "EPL": "application/x-epl",
    "SPL": "application/x-spl",
}


def get_path(data: Any, path: str, default: Any = None) -> Any:
    """
    Read a dotted path out of nested dicts/lists.

    Integer segments index into lists (``-1`` is the last element). Returns
    ``default`` as soon as a segment is missing.

    >>> get_path({"a": {"b": [{"c": 1}]}}, "a.b.0.c")
    1
    """
    current = data
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return default
            current = current[segment]
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return default
        else:
            return default
    return current


def first_present(data: Any, *paths: str) -> Any:
    """Value of the first path that resolves to something other than None"""
    for path in paths:
        value = get_path(data, path)
        if value is not None:
            return value
    return None


def as_list(value: Any) -> list:
    """Carriers collapse one-element arrays into objects; undo that."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any) -> Optional[int]:
    number = to_float(value)
    return int(number) if number is not None else None


def to_str(value: Any) -> Optional[str]:
    """Scalars as text (e.g. numeric tracking numbers); None for containers and None."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    return str(value)


def region_for_country(service_codes: Mapping[str, Mapping[str, str]], country_code: str) -> str:
    """The origin country's own table, else the international one."""
    if country_code in service_codes:
        return country_code
    return INTERNATIONAL_REGION


def resolve_service_name(
    service_codes: Mapping[str, Mapping[str, str]],
    country_code: str,
    service_code: Optional[str],
) -> Optional[str]:
    """Human-readable service name, or None when the code is unknown for that region"""
    if not isinstance(service_code, str) or not service_code:
        return None
    region = service_codes.get(region_for_country(service_codes, country_code), {})
    return region.get(service_code) or None


def classify_status(mapping: Mapping[str, TrackingStatus], code: Any) -> TrackingStatus:
    """Total function: unmapped (or missing) codes are UNKNOWN."""
    if not isinstance(code, str):
        return TrackingStatus.UNKNOWN
    return mapping.get(code.strip(), TrackingStatus.UNKNOWN)


def join_location(*parts: Any) -> str:
    """Non-empty parts joined with ", ", e.g. "Atlanta, GA, US"."""
    cleaned = (to_str(part) for part in parts)
    stripped = (part.strip() for part in cleaned if part)
    return LOCATION_DELIMITER.join(part for part in stripped if part)


def parse_date(value: Any, formats: Sequence[str] = ("%Y%m%d", "%Y-%m-%d")) -> Optional[date]:
    if not isinstance(value, str) or not value:
        return None
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    # ISO timestamps, e.g. "2024-01-08T23:59:00"
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


def parse_datetime(date_value: Any, time_value: Any, date_format: str, time_format: str) -> Optional[datetime]:
    """Combine a carrier's separate date and time fields. Both are needed."""
    if not date_value or not time_value:
        return None
    try:
        return datetime.strptime(f"{date_value} {time_value}", f"{date_format} {time_format}")
    except (TypeError, ValueError):
        return None


def deep_merge(base: Dict[str, Any], override: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Recursive dict merge returning a new dict; ``override`` wins on conflicts."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def decode_base64(content: Any) -> Optional[bytes]:
    if not isinstance(content, str) or not content:
        return None
    try:
        return base64.b64decode(content)
    except (binascii.Error, ValueError):
        return None


def mime_type_for(image_format: Optional[str], default: str) -> str:
    if not isinstance(image_format, str) or not image_format:
        return default
    return MIME_TYPES.get(image_format.upper(), default)
