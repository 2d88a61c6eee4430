"""Mapped-class metadata used by the paging, lookup and fuzzy helpers."""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from sqlalchemy import Column
from sqlalchemy import inspect as sa_inspect

from record_components.core.config import get_settings


class KeyType(str, Enum):
    """Category of a primary-key column, as far as reference matching cares."""

    INTEGER = "integer"
    STRING = "string"
    DECIMAL = "decimal"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"
    UUID = "uuid"
    OTHER = "other"


TEMPORAL_KEY_TYPES = frozenset({KeyType.DATE, KeyType.DATETIME, KeyType.TIME})

_NUMERIC_STRING = re.compile(r"\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*")
_INTEGER_STRING = re.compile(r"\s*[+-]?\d+\s*")


def primary_key_columns(model) -> List[Column]:
    return list(sa_inspect(model).primary_key)


def key_column(model) -> Optional[Column]:
    columns = primary_key_columns(model)
    return columns[0] if columns else None


def key_name(model) -> Optional[str]:
    """Attribute name of the first primary-key column."""
    column = key_column(model)
    if column is None:
        return None
    return sa_inspect(model).get_property_by_column(column).key


def key_value(instance) -> Any:
    name = key_name(type(instance))
    return getattr(instance, name) if name else None


def table_name(model) -> str:
    return model.__table__.name


def column_python_type(column) -> Optional[type]:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def key_column_type(model) -> KeyType:
    column = key_column(model)
    python_type = column_python_type(column) if column is not None else None
    if python_type is None:
        return KeyType.OTHER
    if python_type is bool:
        return KeyType.OTHER
    if issubclass(python_type, int):
        return KeyType.INTEGER
    if issubclass(python_type, str):
        return KeyType.STRING
    if issubclass(python_type, (Decimal, float)):
        return KeyType.DECIMAL
    # datetime subclasses date, so check it first
    if issubclass(python_type, datetime):
        return KeyType.DATETIME
    if issubclass(python_type, date):
        return KeyType.DATE
    if issubclass(python_type, time):
        return KeyType.TIME
    if issubclass(python_type, uuid.UUID):
        return KeyType.UUID
    return KeyType.OTHER


def is_numeric(value: Any) -> bool:
    """True for numbers and for strings that spell a number."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    if isinstance(value, str):
        return _NUMERIC_STRING.fullmatch(value) is not None
    return False


def matches_key_type(model, reference: Any) -> bool:
    """Whether ``reference`` already has the runtime type of the model's primary key."""
    key_type = key_column_type(model)
    if key_type is KeyType.INTEGER:
        return isinstance(reference, int) and not isinstance(reference, bool)
    if key_type is KeyType.STRING:
        return isinstance(reference, str)
    if key_type is KeyType.DECIMAL:
        return is_numeric(reference)
    if key_type in TEMPORAL_KEY_TYPES:
        return isinstance(reference, (date, datetime, time))
    if key_type is KeyType.UUID:
        return isinstance(reference, uuid.UUID)
    return False


def coerce_key(model, value: Any) -> Any:
    """
    ``value`` converted to the runtime type of the model's primary key, or
    ``None`` when it cannot denote a key ("42" -> 42 for integer keys).
    """
    if matches_key_type(model, value):
        return value
    key_type = key_column_type(model)
    if isinstance(value, str):
        if key_type is KeyType.INTEGER and _INTEGER_STRING.fullmatch(value):
            return int(value)
        if key_type is KeyType.UUID:
            try:
                return uuid.UUID(value)
            except ValueError:
                return None
    return None


def quote_identifier(name: str, quote_char: Optional[str] = None) -> str:
    quote = quote_char or get_settings().sql_identifier_quote
    return f"{quote}{name.replace(quote, quote * 2)}{quote}"
