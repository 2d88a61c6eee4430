"""
Fuzzy reference resolution.

A fuzzy reference is a value that may be a record itself, its primary key,
or (for models declaring ``__natural_key__``) a natural key. These helpers
turn such a value into the record or into its key, skipping the database
whenever the reference already has the right shape.

Two lookup modes are offered and must be picked explicitly:
``fuzzy_find`` raises ``RecordNotFound``; ``fuzzy_find_or_none`` returns ``None``.
"""
from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.orm import Session

from record_components.services import finders
from record_components.services.cache import ModelCache
from record_components.services.introspection import key_value, matches_key_type

logger = structlog.get_logger()


def fuzzy_find(session: Session, model, reference: Any, cache: Optional[ModelCache] = None):
    """Return ``reference`` if it is a ``model`` instance, else look it up strictly."""
    if isinstance(reference, model):
        logger.debug("fuzzy.instance_passthrough", model=model.__name__)
        return reference
    return finders.find_strict(session, model, reference, cache=cache)


def fuzzy_find_or_none(session: Session, model, reference: Any, cache: Optional[ModelCache] = None):
    """Naive variant of ``fuzzy_find``: ``None`` when nothing matches."""
    if isinstance(reference, model):
        logger.debug("fuzzy.instance_passthrough", model=model.__name__)
        return reference
    return finders.find_by_key(session, model, reference, cache=cache)


def fuzzy_key(session: Session, model, reference: Any, cache: Optional[ModelCache] = None) -> Any:
    """
    Resolve ``reference`` to a primary-key value.

    A reference whose runtime type matches the key column's type (int for
    integer keys, str for string keys, any number for decimal keys, any
    date/time for temporal keys, UUID for UUID keys) is returned as-is.
    Anything else goes through ``fuzzy_find``.
    """
    if matches_key_type(model, reference):
        logger.debug("fuzzy.key_passthrough", model=model.__name__)
        return reference
    return key_value(fuzzy_find(session, model, reference, cache=cache))


def fuzzy_id(session: Session, model, reference: Any, cache: Optional[ModelCache] = None) -> int:
    """Resolve ``reference`` to the record's integer ``id``."""
    if isinstance(reference, int) and not isinstance(reference, bool):
        return reference
    return fuzzy_find(session, model, reference, cache=cache).id
