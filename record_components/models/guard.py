from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple


def _unique(names: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(names))


@dataclass(frozen=True)
class AttributeGuard:
    """
    Mass-assignment rules for one model.

    ``accessible``, when non-empty, is an allow-list and wins over
    ``protected``. Guards are combined with ``merge`` rather than through
    class inheritance.
    """

    protected: Tuple[str, ...] = ()
    accessible: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "protected", _unique(self.protected))
        object.__setattr__(self, "accessible", _unique(self.accessible))

    def merge(self, override: "AttributeGuard") -> "AttributeGuard":
        """Base rules plus ``override``'s rules."""
        return AttributeGuard(
            protected=self.protected + override.protected,
            accessible=self.accessible + override.accessible,
        )

    def is_settable(self, name: str) -> bool:
        if self.accessible:
            return name in self.accessible
        return name not in self.protected

    def filter_names(self, names: Iterable[str]) -> List[str]:
        return [name for name in names if self.is_settable(name)]


BASE_GUARD = AttributeGuard(protected=("updated_at", "created_at"))
