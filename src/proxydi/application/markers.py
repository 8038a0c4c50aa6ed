"""Application layer - Metadata attached to classes and registered instances."""

from typing import Any, Dict, Iterable, List, Optional

from proxydi.domain import AllInjection, Injection, SingleInjection

INJECTIONS_ATTR = "__injections__"
CONTAINER_ATTR = "__proxydi_container__"
IDS_ATTR = "__proxydi_ids__"
CELLS_ATTR = "__proxydi_cells__"

_PLAIN_TYPES = (str, bytes, bytearray, int, float, complex, bool, type(None))


def is_plain_value(value: Any) -> bool:
    """Whether the value is a literal rather than an object that can carry state."""
    return isinstance(value, _PLAIN_TYPES)


def is_taggable(value: Any) -> bool:
    return not is_plain_value(value) and not isinstance(value, type) and hasattr(value, "__dict__")


def get_injections(cls: type) -> Dict[str, Injection]:
    """Collect the injection points declared by a class and its bases.

    Subclasses override injection points of the same field name.

    Args:
        cls: The class to inspect.

    Returns:
        Mapping from field name to its injection.
    """
    injections: Dict[str, Injection] = {}
    for klass in reversed(getattr(cls, "__mro__", ())):
        declared = vars(klass).get(INJECTIONS_ATTR)
        if not declared:
            continue
        for field_name, injection in declared.items():
            if isinstance(injection, (SingleInjection, AllInjection)):
                injections[field_name] = injection
    return injections


def injection_storage(owner: Any) -> Dict[str, Any]:
    """Mapping holding the lazy cells (or baked values) of an owner's injection fields."""
    cells = getattr(owner, CELLS_ATTR, None)
    if cells is not None:
        return cells
    return vars(owner)


def tag_dependency(instance: Any, container: Any, dependency_ids: Iterable[Any]) -> None:
    """Mark an instance as registered in a container under the given ids."""
    if not is_taggable(instance):
        return
    setattr(instance, CONTAINER_ATTR, container)
    setattr(instance, IDS_ATTR, list(dependency_ids))


def untag_dependency(instance: Any) -> None:
    if not is_taggable(instance):
        return
    for attribute in (CONTAINER_ATTR, IDS_ATTR):
        if hasattr(instance, attribute):
            delattr(instance, attribute)


def container_of(instance: Any) -> Optional[Any]:
    """Container the instance is registered in, or None."""
    if not is_taggable(instance):
        return None
    return getattr(instance, CONTAINER_ATTR, None)


def dependency_ids_of(instance: Any) -> List[Any]:
    """Ids the instance is registered under in its container."""
    if not is_taggable(instance):
        return []
    return list(getattr(instance, IDS_ATTR, ()))
