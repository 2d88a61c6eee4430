"""
Paging Service

Builds the canonical ``order``/``limit``/``offset`` query options from the
loose paging preferences callers pass around (``page``, ``per_page``,
``order_col``, ``order_desc`` and their aliases), and queries the store to
tell whether another page follows a query window.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from record_components.services import finders
from record_components.services.introspection import key_name, quote_identifier, table_name
from record_components.services.utils import coerce_int

logger = structlog.get_logger()

DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0
DEFAULT_ORDER_COL = "id"
DEFAULT_ORDER_DIR = "DESC"

PAGING_KEYS = frozenset(
    {"order", "limit", "offset", "per_page", "order_col", "order_by", "order_desc", "order_descending", "page"}
)

_LEADING_IDENTIFIER = re.compile(r"^\w+\b")
_DESC_WORD = re.compile(r"\bdesc\b", re.IGNORECASE)


class PagingOptions(BaseModel):
    """Canonical query options for one page of results."""

    order: str
    limit: int
    offset: int

    def as_query_options(self) -> Dict[str, Any]:
        return self.model_dump()


class PagedResult(BaseModel):
    """One page of records plus the options that produced it."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: List[Any] = Field(default_factory=list)
    page: int = 1
    has_next_page: bool = False
    order: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    @classmethod
    def from_options(
        cls,
        data: List[Any],
        page: Optional[int],
        has_next_page: bool,
        options: Optional[Mapping[str, Any]] = None,
    ) -> "PagedResult":
        options = _as_mapping(options)
        return cls(
            data=list(data),
            page=coerce_int(page) if page is not None else 1,
            has_next_page=bool(has_next_page),
            order=str(options["order"]) if options.get("order") is not None else None,
            limit=coerce_int(options["limit"]) if options.get("limit") is not None else None,
            offset=coerce_int(options["offset"]) if options.get("offset") is not None else None,
        )

    def is_descending_order(self) -> bool:
        """True when most of the comma-separated order terms sort descending."""
        if not self.order:
            return False
        desc_count = 0
        asc_count = 0
        for term in self.order.split(","):
            if _DESC_WORD.search(term):
                desc_count += 1
            else:
                asc_count += 1
        return desc_count > asc_count


def _as_mapping(options: Any) -> Mapping[str, Any]:
    if options is None:
        return {}
    if isinstance(options, BaseModel):
        return options.model_dump()
    return options


def _first_present(options: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = options.get(name)
        if value is not None:
            return value
    return None


def _model_default(model, name: str, fallback: Any) -> Any:
    return getattr(model, name, fallback) if model is not None else fallback


def is_descending(flag: Any) -> bool:
    """
    Interpret an ``order_desc`` value.

    Only the string ``"false"`` (any case) and a real ``False`` mean
    ascending; every other value, including other "falsy" strings, means
    descending.
    """
    if isinstance(flag, bool):
        return flag
    return str(flag).lower() != "false"


def quote_leading_identifier(order: str, quote_char: Optional[str] = None) -> str:
    """Quote the first bare identifier of an order clause (``id DESC`` -> ``"id" DESC``)."""
    return _LEADING_IDENTIFIER.sub(lambda m: quote_identifier(m.group(0), quote_char), order, count=1)


def resolve_page(options: Optional[Mapping[str, Any]] = None, page: Any = None) -> int:
    """The 1-based page requested by ``page`` or ``options["page"]``; values below 1 become 1."""
    options = _as_mapping(options)
    if page is None:
        page = options.get("page")
    page = coerce_int(page) if page is not None else 1
    return page if page > 0 else 1


def resolve_order_column(options: Mapping[str, Any], model=None, quote_char: Optional[str] = None) -> str:
    """
    Pick the column to order by.

    ``order_col`` wins over ``order_by``. Without either, a model's primary
    key is used, falling back to ``DEFAULT_ORDER_COL``. When a model is
    given, unqualified columns are prefixed with its table name and quoted
    so the clause stays unambiguous in joined queries.
    """
    default_col = _model_default(model, "DEFAULT_ORDER_COL", DEFAULT_ORDER_COL)
    order_col = _first_present(options, "order_col", "order_by")
    if order_col is None:
        order_col = (key_name(model) or default_col) if model is not None else default_col
    order_col = str(order_col)
    if model is not None and "." not in order_col:
        order_col = f"{table_name(model)}.{quote_identifier(order_col, quote_char)}"
    return order_col


def build_paging_options(
    paging_options: Optional[Mapping[str, Any]] = None,
    page: Any = None,
    model=None,
    quote_char: Optional[str] = None,
) -> PagingOptions:
    """
    Build canonical paging options from raw options and their aliases.

    ``order``, ``limit`` and ``offset`` passed directly always win over the
    values derived from ``page``, ``per_page``, ``order_col``/``order_by``
    and ``order_desc``/``order_descending``. Nothing is ever rejected:
    malformed numbers coerce to integers (truncating) and pages below 1 are
    treated as page 1.

    Args:
        paging_options: Raw options; unknown keys are ignored
        page: Page number overriding ``paging_options["page"]``
        model: Mapped class the options are for; enables primary-key defaults
            and table-qualified order columns
        quote_char: Identifier quote character (default from settings)

    Returns:
        PagingOptions with ``order``, ``limit`` and ``offset``
    """
    options = _as_mapping(paging_options)
    default_limit = coerce_int(_model_default(model, "DEFAULT_LIMIT", DEFAULT_LIMIT))
    default_offset = coerce_int(_model_default(model, "DEFAULT_OFFSET", DEFAULT_OFFSET))
    default_dir = _model_default(model, "DEFAULT_ORDER_DIR", DEFAULT_ORDER_DIR)

    order = options.get("order")
    limit = options.get("limit")
    offset = options.get("offset")

    per_page = coerce_int(options["per_page"]) if options.get("per_page") is not None else default_limit
    order_col = resolve_order_column(options, model=model, quote_char=quote_char)
    order_desc = _first_present(options, "order_desc", "order_descending")
    page = resolve_page(options, page)

    if order is None:
        if order_desc is None:
            direction = default_dir
        else:
            direction = "DESC" if is_descending(order_desc) else "ASC"
        order = f"{order_col} {direction}"
    else:
        order = quote_leading_identifier(str(order), quote_char)

    limit = per_page if limit is None else coerce_int(limit)
    offset = (page - 1) * per_page + default_offset if offset is None else coerce_int(offset)

    logger.debug("paging.options_built", order=order, limit=limit, offset=offset, page=page)
    return PagingOptions(order=order, limit=limit, offset=offset)


def next_page_lookahead(original_options: Optional[Mapping[str, Any]] = None, model=None) -> Dict[str, Any]:
    """
    Options for a one-row query just past the original window.

    Filters and ordering are kept; ``limit`` becomes 1, ``offset`` moves to
    ``limit + offset`` of the original, and eager loading is switched off.
    """
    options = dict(_as_mapping(original_options))
    original_limit = (
        coerce_int(options["limit"])
        if options.get("limit") is not None
        else coerce_int(_model_default(model, "DEFAULT_LIMIT", DEFAULT_LIMIT))
    )
    original_offset = (
        coerce_int(options["offset"])
        if options.get("offset") is not None
        else coerce_int(_model_default(model, "DEFAULT_OFFSET", DEFAULT_OFFSET))
    )
    options.update({"limit": 1, "offset": original_limit + original_offset, "include": None})
    return options


def has_next_page(session: Session, model, original_options: Optional[Mapping[str, Any]] = None) -> bool:
    """True when at least one record exists after the original query window."""
    lookahead = next_page_lookahead(original_options, model=model)
    rows = finders.list_entities(session, model, lookahead)
    logger.debug("paging.next_page_checked", model=model.__name__, offset=lookahead["offset"], found=len(rows))
    return len(rows) > 0


def find_page(
    session: Session,
    model,
    paging_options: Optional[Mapping[str, Any]] = None,
    page: Any = None,
) -> PagedResult:
    """
    Fetch one page of ``model`` records.

    Non-paging keys of ``paging_options`` (``conditions``, ``include``) are
    passed through to the query and the next-page lookahead.
    """
    options = _as_mapping(paging_options)
    canonical = build_paging_options(options, page, model=model)
    query_options = {key: value for key, value in options.items() if key not in PAGING_KEYS}
    query_options.update(canonical.as_query_options())

    data = finders.list_entities(session, model, query_options)
    next_page = has_next_page(session, model, query_options)
    return PagedResult.from_options(data, resolve_page(options, page), next_page, query_options)
