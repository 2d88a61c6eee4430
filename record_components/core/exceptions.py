"""Exceptions raised by the record helpers."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class RecordNotFound(LookupError):
    """Raised when a strict lookup finds no matching row."""

    def __init__(self, model: Any = None, key: Any = None, message: Optional[str] = None):
        self.model = model
        self.key = key
        if message is None:
            name = getattr(model, "__name__", None) or "record"
            message = f"Couldn't find {name} with key={key!r}" if key is not None else f"Couldn't find {name}"
        super().__init__(message)


class ModelValidationError(ValueError):
    """Raised when a record fails validation before being persisted."""

    DEFAULT_MESSAGE = "The posted data did not pass validation"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message or self.DEFAULT_MESSAGE)
        self.errors: Dict[str, List[str]] = dict(errors or {})

    @classmethod
    def from_model(cls, model: Any, message: Optional[str] = None) -> "ModelValidationError":
        return cls(message, errors=getattr(model, "errors", None))

    def error_list(self) -> List[str]:
        """Flatten the per-attribute errors into "<attribute> <message>" lines."""
        return [f"{name} {msg}" for name, messages in self.errors.items() for msg in messages]


class ReadOnlyAttributeError(AttributeError):
    """Raised when assigning to an attribute that is read-only."""


class ReadOnlyRecordError(RuntimeError):
    """Raised when saving a record that was frozen as read-only."""


class UndefinedAttributeError(AttributeError):
    """Raised when mass-assigning a name the model does not define."""


class SaveHookError(RuntimeError):
    """Raised when post-save hooks failed and the caller asked to be told."""

    def __init__(self, failures: List[Any]):
        self.failures = failures
        names = ", ".join(result.name for result in failures)
        super().__init__(f"Post-save hooks failed: {names}")
