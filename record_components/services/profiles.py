from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class ProfileProvider(Protocol):
    """Anything that can project itself into a mass-assignment-safe dict."""

    def get_profile(self) -> Dict[str, Any]: ...


def _require_provider(obj: Any) -> ProfileProvider:
    if not isinstance(obj, ProfileProvider):
        raise TypeError(f"{type(obj).__name__} should implement ProfileProvider.get_profile()")
    return obj


def models_to_profiles(objects: Optional[Iterable[Any]] = None, includes: Iterable[str] = ()) -> List[Dict[str, Any]]:
    """
    Convert records to their profiles.

    Each name in ``includes`` is a relation whose (non-None) value is embedded
    under that name as its own profile.
    """
    if objects is None:
        return []

    includes = list(includes)
    profiles = []
    for obj in objects:
        profile = _require_provider(obj).get_profile()
        for include in includes:
            related = getattr(obj, include, None)
            if related is not None:
                profile[include] = _require_provider(related).get_profile()
        profiles.append(profile)
    return profiles
