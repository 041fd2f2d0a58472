"""
Cache key normalization.

Equivalent requests must land on the same key regardless of parameter order,
numeric formatting or incidental coordinate precision.
"""

import hashlib
import re
from datetime import date, datetime
from typing import Any, Mapping

NUMERIC_RE = re.compile(r"^[+-]?\d+(\.\d+)?$")
MAX_KEY_LENGTH = 200
DEFAULT_PRECISION = 3  # ~100m for coordinates


def _format_number(value: float, precision: int) -> str:
    rounded = round(float(value), precision) + 0.0  # turns -0.0 into 0.0
    if rounded.is_integer():
        return str(int(rounded))
    return f"{rounded:.{precision}f}".rstrip("0").rstrip(".")


def canonical_value(value: Any, precision: int = DEFAULT_PRECISION) -> str:
    """Render a single parameter value in its canonical string form."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)):
        return _format_number(value, precision)

    text = str(value).strip()
    if NUMERIC_RE.match(text):
        return _format_number(float(text), precision)
    return text


def normalize(
    domain: str,
    params: Mapping[str, Any] | None = None,
    precision: int = DEFAULT_PRECISION,
) -> str:
    """
    Build the cache key for a request.

    Args:
        domain: Logical domain name (e.g. "weather", "fixtures")
        params: Semantically relevant request parameters
        precision: Decimal places kept for floating values

    Returns:
        Key of the form "domain?a=1&b=x"; unset (None) parameters are omitted.
    """
    items = sorted(
        (str(name), canonical_value(value, precision))
        for name, value in (params or {}).items()
        if value is not None
    )
    if items:
        full_key = f"{domain}?" + "&".join(f"{k}={v}" for k, v in items)
    else:
        full_key = domain

    # Hash long keys
    if len(full_key) > MAX_KEY_LENGTH:
        hash_val = hashlib.md5(full_key.encode()).hexdigest()[:16]
        return f"{domain}#{hash_val}"

    return full_key
