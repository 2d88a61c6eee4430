import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

SQL_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_NUMERIC_PREFIX = re.compile(r"\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def coerce_int(value: Any) -> int:
    """
    Best-effort integer coercion that never raises.

    Floats and decimals are truncated toward zero, strings contribute their
    leading numeric part ("12abc" -> 12, "3.9" -> 3), anything unusable is 0.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, Decimal):
        return int(value) if value.is_finite() else 0
    if isinstance(value, bytes):
        value = value.decode("utf-8", "ignore")
    if isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value)
        if not match:
            return 0
        try:
            return int(Decimal(match.group(0).strip()))
        except (InvalidOperation, ValueError, OverflowError):
            return 0
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def camelize(name: str) -> str:
    """``created_at`` -> ``createdAt``."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def underscore(name: str) -> str:
    """``createdAt`` -> ``created_at``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def escape_parameter_wildcards(value: str) -> str:
    """Escape ``%`` and ``_`` so user input can't widen a LIKE query."""
    return value.replace("%", "\\%").replace("_", "\\_")


def date_to_sql_timestamp_string(value: Optional[Union[str, date, datetime]] = None) -> str:
    """Format ``value`` (default: now) as a ``YYYY-mm-dd HH:MM:SS`` string."""
    if value is None:
        value = datetime.now()
    elif isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    elif not isinstance(value, datetime):
        value = datetime.combine(value, datetime.min.time())
    return value.strftime(SQL_TIMESTAMP_FORMAT)


def validate_sql_timestamp_string(text: str) -> bool:
    try:
        return text == date_to_sql_timestamp_string(text)
    except (TypeError, ValueError):
        return False
