"""
Slug Service

Generates slugs for records from one of their text attributes and keeps
them unique by appending a numeric suffix.

Slugs follow the upper-case underscore convention: "Hello, World!" becomes
"HELLO_WORLD" and a second "HELLO_WORLD" becomes "HELLO_WORLD_1".
"""

import re
import unicodedata
from typing import Iterable, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from record_components.services.introspection import key_name
from record_components.services.utils import escape_parameter_wildcards, underscore

logger = structlog.get_logger()


class SlugService:
    """
    Service for generating and de-duplicating record slugs.
    """

    MAX_SLUG_LENGTH = 100
    FALLBACK_SLUG = "UNTITLED"

    def generate_slug(self, text: Optional[str]) -> str:
        """
        Generate a slug from arbitrary text.

        Processing steps:
        1. Normalize unicode characters (NFD) and drop non-ASCII marks
        2. Split camelCase words
        3. Replace every run of non-alphanumeric characters with one underscore
        4. Strip leading/trailing underscores
        5. Upper-case and truncate to max 100 characters

        Args:
            text: Text to convert (usually the record's name)

        Returns:
            Slug containing only A-Z, 0-9 and underscores
        """
        if not text:
            return self.FALLBACK_SLUG

        slug = unicodedata.normalize("NFD", text)
        slug = slug.encode("ascii", "ignore").decode("ascii")
        slug = underscore(slug)
        slug = re.sub(r"[^a-z0-9]+", "_", slug)
        slug = slug.strip("_").upper()

        if len(slug) > self.MAX_SLUG_LENGTH:
            slug = slug[: self.MAX_SLUG_LENGTH].rstrip("_")

        if not slug:
            return self.FALLBACK_SLUG

        logger.debug("slug.generated", text=text[:50], slug=slug)
        return slug

    def ensure_unique_slug(self, base_slug: str, existing_slugs: Iterable[str]) -> str:
        """
        Ensure slug is unique by appending a numeric suffix if needed.

        If ``base_slug`` is taken, the suffix is one past the highest
        ``<base_slug>_<n>`` already in use ("MY_POST_1", then "MY_POST_2"...).

        Args:
            base_slug: The slug to make unique
            existing_slugs: Slugs already in use

        Returns:
            Unique slug
        """
        if not base_slug:
            base_slug = self.FALLBACK_SLUG

        existing_set = set(existing_slugs)
        if base_slug not in existing_set:
            logger.debug("slug.unique", slug=base_slug)
            return base_slug

        suffix_pattern = re.compile(rf"^{re.escape(base_slug)}_(\d+)$")
        highest = 0
        for slug in existing_set:
            match = suffix_pattern.match(slug)
            if match:
                highest = max(highest, int(match.group(1)))

        candidate = f"{base_slug}_{highest + 1}"
        logger.debug("slug.unique_with_suffix", base_slug=base_slug, slug=candidate)
        return candidate


# Singleton instance for convenience
slug_service = SlugService()


class SluggableMixin:
    """
    Adds slug generation to a mapped class with a ``slug`` column.

    ``__slug_source__`` names the attribute the slug is derived from.
    """

    __slug_source__ = "name"

    def generate_slug_attribute(self, overwrite: bool = False) -> str:
        if self.slug is None or overwrite:
            self.slug = slug_service.generate_slug(getattr(self, self.__slug_source__, None))
        return self.slug

    def ensure_unique_slug(self, session: Session, save: bool = False) -> str:
        """
        Make this record's slug unique among the rows of its table.

        Generates the slug first if it is unset. With ``save`` the record is
        saved afterwards.
        """
        base_slug = self.slug or self.generate_slug_attribute()
        model = type(self)
        pattern = escape_parameter_wildcards(base_slug) + "%"
        stmt = select(model.slug).where(model.slug.like(pattern, escape="\\"))

        pk_name = key_name(model)
        pk_value = getattr(self, pk_name) if pk_name else None
        if pk_value is not None:
            stmt = stmt.where(getattr(model, pk_name) != pk_value)

        with session.no_autoflush:
            existing = session.scalars(stmt).all()
        self.slug = slug_service.ensure_unique_slug(base_slug, existing)

        if save:
            self.save(session)
        return self.slug
