from record_components.models.base import ActiveModel
from record_components.models.common import TimestampMixin
from record_components.models.fields import FieldDescriptor, format_boolean, format_integer, format_time
from record_components.models.guard import BASE_GUARD, AttributeGuard

__all__ = [
    "ActiveModel",
    "AttributeGuard",
    "BASE_GUARD",
    "FieldDescriptor",
    "TimestampMixin",
    "format_boolean",
    "format_integer",
    "format_time",
]
