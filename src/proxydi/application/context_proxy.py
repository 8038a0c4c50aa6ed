"""Application layer - Instances seen from another container's context."""

import inspect
import types
from typing import Any

from proxydi.application.markers import CELLS_ATTR, CONTAINER_ATTR, IDS_ATTR

_TARGET_ATTR = "_proxy_target"
_OWN_ATTRS = frozenset({_TARGET_ATTR, CELLS_ATTR, CONTAINER_ATTR, IDS_ATTR})
_MISSING = object()


class ContextualProxy:
    """Wrapper making a shared instance resolve its injections from another container.

    Reads, writes and method calls are forwarded to the wrapped instance, with
    methods and properties bound to the proxy so that ``self.<field>`` inside them
    goes through the proxy again. Injection fields are served from the proxy's own
    cells, bound to the container the instance was requested from.

    Example:
        >>> parent.register(Brochure)
        >>> child = parent.create_child_container()
        >>> child.settings.resolve_in_container_context = True
        >>> child.register(Director("Jane"))
        >>> child.resolve(Brochure).director.name  # resolved from child
        'Jane'
    """

    def __init__(self, target: Any) -> None:
        object.__setattr__(self, _TARGET_ATTR, target)
        object.__setattr__(self, CELLS_ATTR, {})

    def __getattribute__(self, name: str) -> Any:
        if name in _OWN_ATTRS:
            return object.__getattribute__(self, name)

        target = object.__getattribute__(self, _TARGET_ATTR)
        if name == "__class__":
            return type(target)

        cls = type(target)
        attribute = inspect.getattr_static(cls, name, _MISSING)
        # Injection fields keep their cells in the target's __dict__; serve ours instead
        if getattr(attribute, "__proxydi_descriptor__", False):
            return attribute.__get__(self, cls)
        if name not in getattr(target, "__dict__", {}):
            if isinstance(attribute, types.FunctionType):
                return types.MethodType(attribute, self)
            if isinstance(attribute, property):
                return attribute.__get__(self, cls)
        return getattr(target, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _OWN_ATTRS:
            object.__setattr__(self, name, value)
            return

        target = object.__getattribute__(self, _TARGET_ATTR)
        cls = type(target)
        attribute = inspect.getattr_static(cls, name, _MISSING)
        if getattr(attribute, "__proxydi_descriptor__", False) or (
            isinstance(attribute, property) and attribute.fset is not None
        ):
            attribute.__set__(self, value)
            return
        setattr(target, name, value)

    def __delattr__(self, name: str) -> None:
        if name in _OWN_ATTRS:
            object.__delattr__(self, name)
            return
        delattr(object.__getattribute__(self, _TARGET_ATTR), name)

    def __repr__(self) -> str:
        return f"ContextualProxy({object.__getattribute__(self, _TARGET_ATTR)!r})"


def unwrap(value: Any) -> Any:
    """The shared instance behind a contextual proxy, or the value itself."""
    if type(value) is ContextualProxy:
        return object.__getattribute__(value, _TARGET_ATTR)
    return value
