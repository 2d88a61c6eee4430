"""
ActiveModel

Helpers mixed into every mapped class through the declarative ``Base``:
key metadata, strict and naive finders, paging, fuzzy references,
mass-assignment guarding, formatted attribute access, profiles, read-only
freezing, validation and saving with post-save hooks.

Per-model configuration is declared with class attributes and resolved
once when the class is registered:

    class User(Base, TimestampMixin):
        __tablename__ = "users"
        __attribute_guard__ = AttributeGuard(protected=("password_hash",))
        __attribute_aliases__ = {"login": "username"}
        __natural_key__ = "username"
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog
from sqlalchemy.orm import Session

from record_components.core.exceptions import (
    ModelValidationError,
    ReadOnlyRecordError,
    UndefinedAttributeError,
)
from record_components.models.fields import build_field_table
from record_components.models.guard import BASE_GUARD, AttributeGuard
from record_components.services import finders, fuzzy, introspection, paging
from record_components.services.cache import ModelCache, dump_record, record_cache_key
from record_components.services.hooks import SaveHookRegistry
from record_components.services.utils import escape_parameter_wildcards

logger = structlog.get_logger()


class ActiveModel:
    """Record helpers shared by all mapped classes."""

    DEFAULT_LIMIT = paging.DEFAULT_LIMIT
    DEFAULT_OFFSET = paging.DEFAULT_OFFSET
    DEFAULT_ORDER_COL = paging.DEFAULT_ORDER_COL
    DEFAULT_ORDER_DIR = paging.DEFAULT_ORDER_DIR

    __attribute_guard__ = AttributeGuard()
    __attribute_aliases__ = {}
    __default_values__ = {}
    __field_formatters__ = {}
    __natural_key__ = None
    __cacheable__ = False

    errors = None

    def __init_subclass__(cls, **kw: Any) -> None:
        super().__init_subclass__(**kw)
        if "__table__" not in cls.__dict__:
            return
        cls.__resolved_guard__ = BASE_GUARD.merge(cls.__attribute_guard__)
        cls.__field_table__, cls.__field_aliases__ = build_field_table(
            cls,
            cls.column_names(),
            formatters=cls.__field_formatters__,
            aliases=cls.__attribute_aliases__,
            reserved=_RESERVED_NAMES,
        )
        cls.save_hooks = cls.build_save_hooks()

    @classmethod
    def build_save_hooks(cls) -> SaveHookRegistry:
        """Hooks run after every save of this model; mixins extend this."""
        return SaveHookRegistry.from_settings()

    # Metadata

    @classmethod
    def column_names(cls) -> List[str]:
        return [column.key for column in cls.__table__.columns]

    @classmethod
    def key_name(cls) -> Optional[str]:
        return introspection.key_name(cls)

    @classmethod
    def key_column(cls):
        return introspection.key_column(cls)

    @classmethod
    def key_column_type(cls) -> introspection.KeyType:
        return introspection.key_column_type(cls)

    @classmethod
    def table_name(cls) -> str:
        return introspection.table_name(cls)

    @classmethod
    def qualified_key_name(cls, quoted: bool = False, quote_char: Optional[str] = None) -> str:
        table, key = cls.table_name(), cls.key_name()
        if quoted:
            table = introspection.quote_identifier(table, quote_char)
            key = introspection.quote_identifier(key, quote_char)
        return f"{table}.{key}"

    def get_key(self) -> Any:
        return getattr(self, self.key_name())

    # Lookups

    @classmethod
    def find(cls, session: Session, key: Any, cache: Optional[ModelCache] = None):
        return finders.find_by_key(session, cls, key, cache=cache)

    @classmethod
    def find_strict(cls, session: Session, key: Any, cache: Optional[ModelCache] = None):
        return finders.find_strict(session, cls, key, cache=cache)

    @classmethod
    def assert_result(cls, result: Any) -> bool:
        return finders.assert_result(result, cls)

    @classmethod
    def list_all(cls, session: Session, options: Optional[Mapping[str, Any]] = None) -> list:
        return finders.list_entities(session, cls, options)

    @classmethod
    def count_all(cls, session: Session, options: Optional[Mapping[str, Any]] = None) -> int:
        return finders.count_entities(session, cls, options)

    # Paging

    @classmethod
    def build_paging_options(cls, options: Optional[Mapping[str, Any]] = None, page: Any = None) -> paging.PagingOptions:
        return paging.build_paging_options(options, page, model=cls)

    @classmethod
    def has_next_page(cls, session: Session, options: Optional[Mapping[str, Any]] = None) -> bool:
        return paging.has_next_page(session, cls, options)

    @classmethod
    def find_page(cls, session: Session, options: Optional[Mapping[str, Any]] = None, page: Any = None) -> paging.PagedResult:
        return paging.find_page(session, cls, options, page)

    # Fuzzy references

    @classmethod
    def fuzzy_find(cls, session: Session, reference: Any, cache: Optional[ModelCache] = None):
        return fuzzy.fuzzy_find(session, cls, reference, cache=cache)

    @classmethod
    def fuzzy_find_or_none(cls, session: Session, reference: Any, cache: Optional[ModelCache] = None):
        return fuzzy.fuzzy_find_or_none(session, cls, reference, cache=cache)

    @classmethod
    def fuzzy_key(cls, session: Session, reference: Any, cache: Optional[ModelCache] = None) -> Any:
        return fuzzy.fuzzy_key(session, cls, reference, cache=cache)

    @classmethod
    def fuzzy_id(cls, session: Session, reference: Any, cache: Optional[ModelCache] = None) -> int:
        return fuzzy.fuzzy_id(session, cls, reference, cache=cache)

    # Identity

    def column_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.column_names()}

    def is_same_model(self, other: Any) -> bool:
        """Same class and same primary key."""
        return isinstance(other, type(self)) and other.get_key() == self.get_key()

    def is_equal(self, other: Any) -> bool:
        """Same model and equal column values."""
        return self.is_same_model(other) and self.column_values() == other.column_values()

    # Attributes

    @classmethod
    def attribute_names(cls, only_settable: bool = True) -> List[str]:
        if not only_settable:
            return cls.column_names()
        guard = cls.__resolved_guard__
        if guard.accessible:
            return list(guard.accessible)
        return [name for name in cls.column_names() if name not in guard.protected]

    @classmethod
    def filter_by_settable_attributes(cls, data: Mapping[str, Any]) -> Dict[str, Any]:
        settable = set(cls.attribute_names(True))
        return {name: value for name, value in data.items() if name in settable}

    @classmethod
    def is_existing_attribute(cls, name: str, include_aliases: bool = True) -> bool:
        if name in cls.column_names():
            return True
        return include_aliases and name in cls.__attribute_aliases__

    @classmethod
    def resolve_field_name(cls, name: str) -> Optional[str]:
        if name in cls.__field_table__:
            return name
        return cls.__field_aliases__.get(name)

    def read_formatted(self, name: str) -> Any:
        """Read a field (snake_case, camelCase or alias) through its formatter or custom getter."""
        resolved = self.resolve_field_name(name)
        if resolved is None:
            raise AttributeError(f"{type(self).__name__} has no attribute {name!r}")
        return self.__field_table__[resolved].read(self)

    def write_attribute(self, name: str, value: Any) -> None:
        """Write a field (snake_case, camelCase or alias) through its custom setter if any."""
        resolved = self.resolve_field_name(name)
        if resolved is None:
            raise UndefinedAttributeError(f"{type(self).__name__} has no attribute {name!r}")
        self.__field_table__[resolved].write(self, value)

    def assign_attributes(self, data: Mapping[str, Any], guard: bool = True) -> "ActiveModel":
        """
        Mass-assign ``data``.

        With ``guard`` names rejected by the model's ``AttributeGuard`` are
        skipped. Unknown names raise ``UndefinedAttributeError``.
        """
        rules = type(self).__resolved_guard__
        for name, value in data.items():
            resolved = self.resolve_field_name(name)
            if resolved is None:
                raise UndefinedAttributeError(f"{type(self).__name__} has no attribute {name!r}")
            if guard and not rules.is_settable(resolved):
                logger.debug("model.guarded_attribute_skipped", model=type(self).__name__, attribute=resolved)
                continue
            self.write_attribute(resolved, value)
        return self

    @classmethod
    def from_attributes(cls, data: Optional[Mapping[str, Any]] = None, guard: bool = True):
        instance = cls()
        for name, value in cls.__default_values__.items():
            setattr(instance, name, value)
        instance.assign_attributes(data or {}, guard=guard)
        return instance

    @classmethod
    def default_values(cls) -> Dict[str, Any]:
        return dict(cls.__default_values__)

    @classmethod
    def default_value_for(cls, name: str) -> Any:
        return cls.__default_values__.get(name)

    # Profiles

    def get_profile(self) -> Dict[str, Any]:
        """Formatted values of the mass-assignable attributes."""
        return {name: self.read_formatted(name) for name in self.attribute_names(True)}

    def update_profile(self, data: Mapping[str, Any], auto_save: bool = False, session: Optional[Session] = None) -> bool:
        self.assign_attributes(self.filter_by_settable_attributes(data))
        if auto_save:
            if session is None:
                raise ValueError("update_profile(auto_save=True) needs a session")
            return self.save(session)
        return True

    # Read-only records

    @classmethod
    def create_as_frozen_readonly(cls, data: Optional[Mapping[str, Any]] = None, guard: bool = True):
        """A record usable as a value object: it can never be saved."""
        instance = cls.from_attributes(data, guard=guard)
        instance.freeze_as_readonly()
        return instance

    def freeze_as_readonly(self) -> None:
        self.set_readonly(True)
        self._readonly_frozen = True

    def set_readonly(self, readonly: bool = True) -> None:
        if getattr(self, "_readonly_frozen", False):
            return
        self._readonly = bool(readonly)

    def is_readonly(self) -> bool:
        return getattr(self, "_readonly", False)

    # Validation and saving

    def validate(self) -> Dict[str, List[str]]:
        """Override to return ``{attribute: [messages]}`` for invalid attributes."""
        return {}

    def is_valid(self) -> bool:
        self.errors = {name: list(messages) for name, messages in (self.validate() or {}).items() if messages}
        return not self.errors

    def assert_valid(self, always_validate: bool = True) -> None:
        """Raise ``ModelValidationError`` unless the record is valid."""
        if self.errors is None or always_validate:
            valid = self.is_valid()
        else:
            valid = not self.errors
        if not valid:
            raise ModelValidationError.from_model(self)

    def save(
        self,
        session: Session,
        validate: bool = True,
        hooks: Optional[SaveHookRegistry] = None,
        raise_on_hook_failure: bool = False,
        cache: Optional[ModelCache] = None,
    ) -> bool:
        """
        Validate, commit, then run post-save hooks.

        For models declaring ``__cacheable__ = True`` the committed row is
        written back to ``cache``; when that write fails the entry is evicted
        so later cached lookups fall through to the database.

        Hook failures are logged and reported by the registry; they never undo
        the commit. Pass ``raise_on_hook_failure`` to get a ``SaveHookError``.
        """
        name = type(self).__name__
        if self.is_readonly():
            raise ReadOnlyRecordError(f"{name} is read-only")
        if validate:
            self.assert_valid()

        session.add(self)
        session.commit()
        logger.info("model.saved", model=name, key=self.get_key())

        if cache is not None and type(self).__cacheable__:
            self.refresh_cached(cache)

        registry = hooks if hooks is not None else type(self).save_hooks
        if len(registry):
            registry.run(self, raise_on_failure=raise_on_hook_failure)
        return True

    def refresh_cached(self, cache: ModelCache) -> bool:
        """Store this record's column values under its cache key, evicting it on failure."""
        key = record_cache_key(type(self), self.get_key())
        if cache.write(key, dump_record(self)):
            return True
        logger.warning("model.cache_refresh_failed", model=type(self).__name__, key=self.get_key())
        cache.delete(key)
        return False

    # Collections

    @classmethod
    def index_by_attribute(cls, models: Iterable[Any], attribute_name: Optional[str] = None) -> Dict[Any, Any]:
        """
        Map records by one of their attributes (default: the primary key).

        Items that are not instances of this model are dropped.
        """
        indexed: Dict[Any, Any] = {}
        for model in models:
            if not isinstance(model, cls):
                continue
            if attribute_name is not None:
                if not model.is_existing_attribute(attribute_name):
                    raise ValueError(f"The given attribute {attribute_name} doesn't exist")
            else:
                attribute_name = model.key_name()
            indexed[model.read_formatted(attribute_name)] = model
        return indexed

    @classmethod
    def index_by_key(cls, models: Iterable[Any]) -> Dict[Any, Any]:
        return cls.index_by_attribute(models)

    escape_parameter_wildcards = staticmethod(escape_parameter_wildcards)


_RESERVED_NAMES = frozenset(dir(ActiveModel))
