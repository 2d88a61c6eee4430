"""
Record cache adapters.

Provides a small read/write/flush contract in front of a key-value store,
a Redis-backed implementation, and the helpers used to store a mapped
record's column values and restore them as a session-attached instance.
"""
from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

import redis
import structlog
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session, make_transient_to_detached

from record_components.core.config import Settings, get_settings
from record_components.services.introspection import column_python_type, table_name

logger = structlog.get_logger()


@runtime_checkable
class CacheAdapter(Protocol):
    """Minimal contract a cache backend must honour."""

    def read(self, key: str) -> Any: ...

    def write(self, key: str, value: Any, ttl: Optional[int] = None) -> bool: ...

    def delete(self, key: str) -> bool: ...

    def flush(self) -> None: ...


class RedisCacheAdapter:
    """
    JSON-over-Redis cache adapter.

    Keys are stored as ``<namespace>:<key>``. When ``flush_namespace`` is set,
    ``flush()`` only removes keys of this namespace; otherwise it flushes the
    whole Redis database.
    """

    def __init__(self, client: redis.Redis, namespace: str = "", flush_namespace: bool = False):
        self.client = client
        self.namespace = namespace
        self.flush_namespace = bool(flush_namespace)

    def _full_key(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else str(key)

    def read(self, key: str) -> Any:
        full_key = self._full_key(key)
        try:
            data = self.client.get(full_key)
            if data is None:
                logger.debug("cache.miss", key=full_key)
                return None
            value = json.loads(data)
        except (redis.RedisError, ValueError) as e:
            logger.warning("cache.get_failed", key=full_key, error=str(e))
            return None
        logger.debug("cache.hit", key=full_key)
        return value

    def write(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        full_key = self._full_key(key)
        payload = json.dumps(value)
        try:
            if ttl:
                self.client.setex(full_key, ttl, payload)
            else:
                self.client.set(full_key, payload)
        except redis.RedisError as e:
            logger.warning("cache.set_failed", key=full_key, error=str(e))
            return False
        logger.debug("cache.set", key=full_key, ttl=ttl)
        return True

    def delete(self, key: str) -> bool:
        full_key = self._full_key(key)
        try:
            self.client.delete(full_key)
        except redis.RedisError as e:
            logger.warning("cache.delete_failed", key=full_key, error=str(e))
            return False
        logger.info("cache.deleted", key=full_key)
        return True

    def flush(self) -> None:
        if self.flush_namespace and self.namespace:
            keys = list(self.client.scan_iter(match=f"{self.namespace}:*"))
            if keys:
                self.client.delete(*keys)
            logger.info("cache.namespace_flushed", namespace=self.namespace, count=len(keys))
            return
        self.client.flushdb()
        logger.info("cache.flushed")


@dataclass
class ModelCache:
    """Cache handle passed explicitly to the components that use it."""

    adapter: CacheAdapter
    default_ttl: Optional[int] = None

    def read(self, key: str) -> Any:
        return self.adapter.read(key)

    def write(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return self.adapter.write(key, value, ttl if ttl is not None else (self.default_ttl or None))

    def delete(self, key: str) -> bool:
        return self.adapter.delete(key)

    def flush(self) -> None:
        self.adapter.flush()

    def remember(self, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Return the cached value for ``key``, loading and storing it on a miss."""
        cached = self.read(key)
        if cached is not None:
            return cached
        value = loader()
        if value is not None:
            self.write(key, value, ttl)
        return value


def build_model_cache(settings: Optional[Settings] = None, client: Optional[redis.Redis] = None) -> ModelCache:
    """Build the application's cache handle from settings (call once at startup)."""
    settings = settings or get_settings()
    if client is None:
        client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
    adapter = RedisCacheAdapter(
        client,
        namespace=settings.cache_namespace,
        flush_namespace=settings.cache_flush_namespace,
    )
    logger.info("cache.initialized", namespace=settings.cache_namespace, ttl=settings.cache_default_ttl)
    return ModelCache(adapter=adapter, default_ttl=settings.cache_default_ttl)


def record_cache_key(model, key: Any) -> str:
    return f"{table_name(model)}:{key}"


def _dump_value(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    return value


def _restore_value(python_type: Optional[type], value: Any) -> Any:
    if value is None or python_type is None:
        return value
    if python_type is datetime:
        return datetime.fromisoformat(value)
    if python_type is date:
        return date.fromisoformat(value)
    if python_type is time:
        return time.fromisoformat(value)
    if python_type is Decimal:
        return Decimal(value)
    if python_type is uuid.UUID:
        return uuid.UUID(value)
    return value


def dump_record(instance) -> Dict[str, Any]:
    """Column values of a mapped instance in a JSON-friendly form."""
    mapper = sa_inspect(type(instance))
    return {attr.key: _dump_value(getattr(instance, attr.key)) for attr in mapper.column_attrs}


def restore_record(session: Session, model, payload: Dict[str, Any]):
    """Rebuild a cached record and attach it to ``session`` without a query."""
    mapper = sa_inspect(model)
    instance = mapper.class_manager.new_instance()
    for attr in mapper.column_attrs:
        if attr.key in payload:
            python_type = column_python_type(attr.columns[0])
            setattr(instance, attr.key, _restore_value(python_type, payload[attr.key]))
    make_transient_to_detached(instance)
    return session.merge(instance, load=False)
