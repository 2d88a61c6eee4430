"""
Formatted attribute access.

Every mapped class gets a table of ``FieldDescriptor`` entries, built once
when the class is registered. A descriptor knows how to read a field
(custom ``get_<name>`` method, or raw value through a formatter) and how to
write it (custom ``set_<name>`` method, or plain assignment).

Naming conventions pick the formatter: ``id`` is read as an integer,
``*_at`` as a formatted timestamp string and ``is_*`` as a boolean.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from record_components.core.config import get_settings
from record_components.services.utils import camelize, coerce_int

Formatter = Callable[[Any], Any]


def format_integer(value: Any) -> Optional[int]:
    return None if value is None else coerce_int(value)


def format_boolean(value: Any) -> bool:
    return bool(value)


def format_time(value: Any, fmt: Optional[str] = None) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, datetime.min.time())
    elif not isinstance(value, datetime):
        return str(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.strftime(fmt or get_settings().datetime_format)


def convention_formatter(name: str) -> Optional[Formatter]:
    if name == "id":
        return format_integer
    if name.endswith("_at"):
        return format_time
    if name.startswith("is_"):
        return format_boolean
    return None


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    formatter: Optional[Formatter] = None
    getter: Optional[str] = None
    setter: Optional[str] = None

    def read(self, instance: Any) -> Any:
        if self.getter:
            return getattr(instance, self.getter)()
        value = getattr(instance, self.name)
        return self.formatter(value) if self.formatter else value

    def write(self, instance: Any, value: Any) -> None:
        if self.setter:
            getattr(instance, self.setter)(value)
        else:
            setattr(instance, self.name, value)


def _accessor(cls: type, prefix: str, name: str, reserved: Iterable[str]) -> Optional[str]:
    method = f"{prefix}{name}"
    if method in reserved:
        return None
    return method if callable(getattr(cls, method, None)) else None


def build_field_table(
    cls: type,
    column_names: Iterable[str],
    formatters: Optional[Mapping[str, Formatter]] = None,
    aliases: Optional[Mapping[str, str]] = None,
    reserved: Iterable[str] = (),
) -> Tuple[Dict[str, FieldDescriptor], Dict[str, str]]:
    """
    Build the descriptor table and the alias map of ``cls``.

    Columns come first. Methods named ``get_<name>``/``set_<name>`` that do
    not match a column (and are not in ``reserved``) declare virtual fields.
    The alias map resolves camelCase spellings and ``aliases`` to field names.
    """
    formatters = dict(formatters or {})
    reserved = frozenset(reserved)
    table: Dict[str, FieldDescriptor] = {}

    names = list(column_names)
    for attr in dir(cls):
        for prefix in ("get_", "set_"):
            if attr.startswith(prefix) and attr not in reserved and callable(getattr(cls, attr, None)):
                virtual = attr[len(prefix):]
                if virtual and virtual not in names:
                    names.append(virtual)

    for name in names:
        table[name] = FieldDescriptor(
            name=name,
            formatter=formatters.get(name, convention_formatter(name)),
            getter=_accessor(cls, "get_", name, reserved),
            setter=_accessor(cls, "set_", name, reserved),
        )

    alias_map: Dict[str, str] = {}
    for name in table:
        camel = camelize(name)
        if camel != name:
            alias_map[camel] = name
    for alias, target in (aliases or {}).items():
        alias_map[alias] = target
    return table, alias_map
