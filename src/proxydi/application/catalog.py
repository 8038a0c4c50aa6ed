"""Application layer - Catalog of injectable and middleware classes."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Type

from proxydi.domain import DependencyId, DuplicateRegistrationError, InvalidDependencyClassError

logger = logging.getLogger(__name__)


class InjectableCatalog:
    """Registry of classes that containers may instantiate on demand.

    A container consults its catalog only when no container in the requested
    scope binds an id. Classes are declared with the ``injectable`` and
    ``middleware`` decorators and stay declared until ``clear()``.

    Attributes:
        _classes_by_id: Injectable class declared for each dependency id.
        _ids_by_class: Dependency ids declared for each injectable class.
        _middleware_classes: Classes whose instances act as middleware, by class name.
    """

    def __init__(self) -> None:
        """Initialize an empty catalog."""
        self._classes_by_id: Dict[DependencyId, Type] = {}
        self._ids_by_class: Dict[Type, List[DependencyId]] = {}
        self._middleware_classes: Dict[str, Type] = {}

    def add_injectable(self, cls: Type, dependency_ids: Iterable[DependencyId] = ()) -> List[DependencyId]:
        """Declare a class as injectable under the given ids and its class name.

        Args:
            cls: The injectable class.
            dependency_ids: Explicit ids for the class.

        Returns:
            All ids the class is now declared under.

        Raises:
            DuplicateRegistrationError: If one of the ids is declared by another class.
        """
        ids = unique_ids([*dependency_ids, cls.__name__])

        for dependency_id in ids:
            existing = self._classes_by_id.get(dependency_id)
            if existing is not None and existing is not cls:
                raise DuplicateRegistrationError(
                    dependency_id,
                    f"Injectable id '{dependency_id}' is already declared by {existing.__name__}",
                )

        for dependency_id in ids:
            self._classes_by_id[dependency_id] = cls
        self._ids_by_class[cls] = unique_ids([*self._ids_by_class.get(cls, []), *ids])

        logger.debug("Declared injectable %s as %s", cls.__name__, ids)
        return list(self._ids_by_class[cls])

    def find_ids(self, cls: Type) -> List[DependencyId]:
        """Ids the class is declared under, empty if it is not injectable."""
        return list(self._ids_by_class.get(cls, []))

    def find_class(self, dependency_id: Any) -> Optional[Type]:
        try:
            return self._classes_by_id.get(dependency_id)
        except TypeError:
            return None

    def has(self, dependency_id: Any) -> bool:
        return self.find_class(dependency_id) is not None

    def classes(self) -> List[Type]:
        """Every injectable class in declaration order."""
        return list(self._ids_by_class)

    def ids_for(self, cls: Type) -> List[DependencyId]:
        """Ids a class stands for: its declared ids, else its name.

        Raises:
            InvalidDependencyClassError: If the class is not injectable and has no usable name.
        """
        ids = self.find_ids(cls)
        if ids:
            return ids

        name = getattr(cls, "__name__", None)
        if not name:
            raise InvalidDependencyClassError(f"Invalid dependency class: {cls!r}")
        return [name]

    def add_middleware(self, cls: Type) -> None:
        """Declare a class whose registered instances join the middleware pipeline.

        Raises:
            DuplicateRegistrationError: If another class with the same name is declared.
        """
        name = cls.__name__
        existing = self._middleware_classes.get(name)
        if existing is not None and existing is not cls:
            raise DuplicateRegistrationError(name, f"Middleware '{name}' is already declared")
        self._middleware_classes[name] = cls

    def is_middleware(self, instance: Any) -> bool:
        cls = type(instance)
        return self._middleware_classes.get(cls.__name__) is cls

    def clear(self) -> None:
        """Forget every declaration.

        Useful for testing or resetting process state.
        """
        self._classes_by_id.clear()
        self._ids_by_class.clear()
        self._middleware_classes.clear()

    def snapshot(self) -> "InjectableCatalog":
        """Independent copy of the current declarations."""
        copy = InjectableCatalog()
        copy.restore(self)
        return copy

    def restore(self, snapshot: "InjectableCatalog") -> None:
        """Replace every declaration with the ones of a snapshot."""
        classes_by_id = dict(snapshot._classes_by_id)
        ids_by_class = {cls: list(ids) for cls, ids in snapshot._ids_by_class.items()}
        middleware_classes = dict(snapshot._middleware_classes)

        self.clear()
        self._classes_by_id.update(classes_by_id)
        self._ids_by_class.update(ids_by_class)
        self._middleware_classes.update(middleware_classes)


def unique_ids(ids: Iterable[DependencyId]) -> List[DependencyId]:
    """Deduplicate ids preserving their first-seen order."""
    seen: List[DependencyId] = []
    for dependency_id in ids:
        if dependency_id not in seen:
            seen.append(dependency_id)
    return seen


default_catalog = InjectableCatalog()
