from sqlalchemy.orm import DeclarativeBase

from record_components.models.base import ActiveModel


class Base(ActiveModel, DeclarativeBase):
    """Declarative base for SQLAlchemy models."""
