"""Database base class and session helpers."""

from .base import Base

__all__ = ["Base"]
