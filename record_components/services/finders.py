"""Record listing and key lookups over a SQLAlchemy session."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

import structlog
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql import ClauseElement

from record_components.core.exceptions import RecordNotFound
from record_components.services.cache import ModelCache, dump_record, record_cache_key, restore_record
from record_components.services.introspection import coerce_key, matches_key_type
from record_components.services.utils import coerce_int

logger = structlog.get_logger()


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (str, ClauseElement)):
        return [value]
    return list(value)


def apply_conditions(stmt, model, conditions: Any):
    """
    Narrow ``stmt`` by the ``conditions`` query option.

    Accepts a mapping of attribute name to value (lists become ``IN``,
    ``None`` becomes ``IS NULL``), a single SQL expression or raw SQL string,
    or a sequence of those.
    """
    if conditions is None:
        return stmt
    if isinstance(conditions, Mapping):
        for name, value in conditions.items():
            column = getattr(model, name)
            if value is None:
                stmt = stmt.where(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)
        return stmt
    for condition in _as_list(conditions):
        stmt = stmt.where(text(condition) if isinstance(condition, str) else condition)
    return stmt


def list_entities(session: Session, model, options: Optional[Mapping[str, Any]] = None) -> list:
    """Run a multi-row query described by ``conditions/order/limit/offset/include``."""
    options = options or {}
    stmt = apply_conditions(select(model), model, options.get("conditions"))
    order = options.get("order")
    if order:
        stmt = stmt.order_by(text(str(order)))
    if options.get("limit") is not None:
        stmt = stmt.limit(coerce_int(options["limit"]))
    if options.get("offset") is not None:
        stmt = stmt.offset(coerce_int(options["offset"]))
    for relation in _as_list(options.get("include")):
        stmt = stmt.options(selectinload(getattr(model, relation)))
    return list(session.scalars(stmt).all())


def count_entities(session: Session, model, options: Optional[Mapping[str, Any]] = None) -> int:
    options = options or {}
    stmt = apply_conditions(select(func.count()).select_from(model), model, options.get("conditions"))
    return int(session.scalar(stmt) or 0)


def find_by_key(session: Session, model, key: Any, cache: Optional[ModelCache] = None):
    """
    Naive lookup: the record for ``key`` or ``None``.

    Models declaring ``__natural_key__`` are looked up by that column first
    when ``key`` does not have the primary key's type; when no row matches,
    ``key`` is tried as a primary-key value when it converts to the key's
    type ("1" from a query string). Models declaring ``__cacheable__ = True``
    go through ``cache`` when one is given.
    """
    natural_key = getattr(model, "__natural_key__", None)
    if natural_key and not matches_key_type(model, key):
        logger.debug("finder.natural_key_lookup", model=model.__name__, column=natural_key)
        stmt = select(model).where(getattr(model, natural_key) == key).limit(1)
        instance = session.scalars(stmt).first()
        if instance is not None:
            return instance
        key = coerce_key(model, key)
        if key is None:
            return None
        logger.debug("finder.primary_key_fallback", model=model.__name__, key=key)

    if cache is not None and getattr(model, "__cacheable__", False):
        cache_key = record_cache_key(model, key)
        payload = cache.read(cache_key)
        if payload is not None:
            return restore_record(session, model, payload)
        instance = session.get(model, key)
        if instance is not None:
            cache.write(cache_key, dump_record(instance))
        return instance

    return session.get(model, key)


def assert_result(result: Any, model=None, key: Any = None) -> bool:
    """Raise ``RecordNotFound`` when ``result`` is empty."""
    if result is None or (isinstance(result, (list, tuple)) and not result):
        raise RecordNotFound(model, key)
    return True


def find_strict(session: Session, model, key: Any, cache: Optional[ModelCache] = None):
    """Like ``find_by_key`` but raises ``RecordNotFound`` instead of returning ``None``."""
    result = find_by_key(session, model, key, cache=cache)
    assert_result(result, model, key)
    return result

