"""Helpers layered over SQLAlchemy models: paging, fuzzy lookups, guarded assignment, slugs, caching and post-save hooks."""

from record_components.core.exceptions import (
    ModelValidationError,
    ReadOnlyAttributeError,
    ReadOnlyRecordError,
    RecordNotFound,
    SaveHookError,
    UndefinedAttributeError,
)
from record_components.db.base import Base
from record_components.models import ActiveModel, AttributeGuard, TimestampMixin
from record_components.services.cache import ModelCache, RedisCacheAdapter, build_model_cache
from record_components.services.fuzzy import fuzzy_find, fuzzy_find_or_none, fuzzy_id, fuzzy_key
from record_components.services.hooks import RedisCommandQueue, RedisIntegrationMixin, SaveHookRegistry
from record_components.services.paging import PagedResult, PagingOptions, build_paging_options, has_next_page
from record_components.services.profiles import models_to_profiles
from record_components.services.slug import SluggableMixin, slug_service

__all__ = [
    "ActiveModel",
    "AttributeGuard",
    "Base",
    "ModelCache",
    "ModelValidationError",
    "PagedResult",
    "PagingOptions",
    "ReadOnlyAttributeError",
    "ReadOnlyRecordError",
    "RecordNotFound",
    "RedisCacheAdapter",
    "RedisCommandQueue",
    "RedisIntegrationMixin",
    "SaveHookError",
    "SaveHookRegistry",
    "SluggableMixin",
    "TimestampMixin",
    "UndefinedAttributeError",
    "build_model_cache",
    "build_paging_options",
    "fuzzy_find",
    "fuzzy_find_or_none",
    "fuzzy_id",
    "fuzzy_key",
    "has_next_page",
    "models_to_profiles",
    "slug_service",
]
