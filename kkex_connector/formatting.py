"""
Formatting helpers: safe numeric coercion, timestamps, precision.
"""

import time
from datetime import datetime, timezone
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from .exceptions import DataContractError

Number = Union[Decimal, int, float, str]


def milliseconds() -> int:
    """Current wall clock time in milliseconds."""
    return int(time.time() * 1000)


def iso8601(timestamp: Optional[int]) -> Optional[str]:
    """Render a millisecond timestamp as ISO 8601 UTC, e.g. 2018-10-24T03:10:57.000Z."""
    if timestamp is None:
        return None
    dt = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{timestamp % 1000:03d}Z"


def to_decimal(value: Any, field_name: Optional[str] = None) -> Optional[Decimal]:
    """Coerce a raw value to Decimal. None and "" mean unknown."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise DataContractError(
            f"Field {field_name!r} is boolean, expected number",
            field_name=field_name,
            raw_data=value,
        )
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise DataContractError(
            f"Field {field_name!r} is not numeric: {value!r}",
            field_name=field_name,
            raw_data=value,
            original_error=e,
        )
    if not result.is_finite():
        raise DataContractError(
            f"Field {field_name!r} is not finite: {value!r}",
            field_name=field_name,
            raw_data=value,
        )
    return result


def safe_decimal(raw: Mapping[str, Any], key: str) -> Optional[Decimal]:
    return to_decimal(raw.get(key), key)


def safe_integer(raw: Mapping[str, Any], key: str) -> Optional[int]:
    value = to_decimal(raw.get(key), key)
    return int(value) if value is not None else None


def safe_string(raw: Mapping[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    return str(value) if value is not None else None


# ============================================================
# PRECISION
# ============================================================

def _quantize(value: Number, places: Optional[int], rounding: str) -> str:
    number = Decimal(str(value))
    if places is None:
        return format(number.normalize(), "f")
    exponent = Decimal(1).scaleb(-places)
    return format(number.quantize(exponent, rounding=rounding), "f")


def amount_to_precision(value: Number, places: Optional[int]) -> str:
    """Truncate an amount to `places` decimals."""
    return _quantize(value, places, ROUND_DOWN)


def price_to_precision(value: Number, places: Optional[int]) -> str:
    """Round a price half-up to `places` decimals."""
    return _quantize(value, places, ROUND_HALF_UP)


# ============================================================
# FILTERING
# ============================================================

def filter_by_since_limit(items: list, since: Optional[int] = None, limit: Optional[int] = None) -> list:
    """
    Keep timestamped items at or after `since`, then the last `limit` of them.

    Items are expected in ascending time order, so the last `limit` are the
    most recent.
    """
    if since is not None:
        items = [i for i in items if i.timestamp is not None and i.timestamp >= since]
    if limit is not None:
        items = items[-limit:] if limit > 0 else []
    return items
