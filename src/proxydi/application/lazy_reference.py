"""Application layer - Lazy cells standing in for injected dependencies."""

import logging
from collections.abc import Sequence
from typing import Any, Iterator, List

from proxydi.domain import (
    AllInjection,
    Injection,
    NotRegisteredInContainerError,
    SingleInjection,
    UnknownDependencyError,
)
from proxydi.application.markers import container_of, get_injections, injection_storage

logger = logging.getLogger(__name__)


class LazyReference:
    """Deferred lookup of a single injected dependency.

    Nothing is resolved until the owner's field is first read. While the
    container allows rewriting dependencies every read resolves again, so a
    rebinding in the container is observed on the next read. Once rewriting is
    disabled the first successful read writes the concrete value onto the owner
    and the cell is no longer consulted.

    Attributes:
        owner: Object whose field this cell stands in for.
        injection: The injection point being served.
        container: Container the lookup starts from.
    """

    def __init__(self, owner: Any, injection: SingleInjection, container: Any) -> None:
        self.owner = owner
        self.injection = injection
        self.container = container

    def _resolve(self) -> Any:
        dependency_id = self.injection.dependency_id
        scope = self.injection.resolve_scope
        if not self.container.is_known(dependency_id, scope):
            raise UnknownDependencyError(dependency_id)
        return self.container.resolve(dependency_id, scope)

    def get(self) -> Any:
        """Resolve the dependency, baking it when the container no longer allows rewrites.

        Raises:
            UnknownDependencyError: If the dependency is unknown at access time.
        """
        value = self._resolve()
        if not self.container.settings.allow_rewrite_dependencies:
            self._freeze(value)
        return value

    def bake(self) -> Any:
        """Resolve now and replace the cell on the owner with the concrete value."""
        value = self._resolve()
        self._freeze(value)
        return value

    def set(self, attribute: str, value: Any) -> None:
        """Write an attribute of the resolved dependency."""
        setattr(self.get(), attribute, value)

    def contains(self, attribute: str) -> bool:
        return hasattr(self.get(), attribute)

    def _freeze(self, value: Any) -> None:
        storage = injection_storage(self.owner)
        if storage.get(self.injection.field_name) is self:
            storage[self.injection.field_name] = value
            logger.debug("Baked injection %s of %r", self.injection.field_name, type(self.owner).__name__)

    def __repr__(self) -> str:
        return f"LazyReference({self.injection.field_name!r} -> {self.injection.dependency_id!r})"


class LazyCollection(Sequence):
    """Live read-only view over every dependency matching an ``inject_all`` field.

    Every length check, iteration, index or membership test runs ``resolve_all``
    again from the owner's container; members are never cached.
    """

    def __init__(self, owner: Any, injection: AllInjection, container: Any) -> None:
        self.owner = owner
        self.injection = injection
        self.container = container

    def _members(self) -> List[Any]:
        container = container_of(self.owner)
        if container is None:
            raise NotRegisteredInContainerError(self.owner)
        return container.resolve_all(self.injection.dependency_id, self.injection.resolve_scope)

    def touch(self) -> None:
        """Run the lookup once, checking that the owner is registered."""
        self._members()

    def __getitem__(self, index: Any) -> Any:
        return self._members()[index]

    def __len__(self) -> int:
        return len(self._members())

    def __iter__(self) -> Iterator[Any]:
        return iter(self._members())

    def __contains__(self, item: Any) -> bool:
        return any(member is item or member == item for member in self._members())

    def __repr__(self) -> str:
        return f"LazyCollection({self.injection.field_name!r} -> {self.injection.dependency_id!r})"


class DependencyProxy:
    """Stand-in passed for a declared constructor parameter.

    Every attribute read or write, membership test and call resolves the
    dependency from the container first.
    """

    def __init__(self, container: Any, dependency_id: Any) -> None:
        object.__setattr__(self, "_proxy_container", container)
        object.__setattr__(self, "_proxy_dependency_id", dependency_id)

    def _resolve(self) -> Any:
        container = object.__getattribute__(self, "_proxy_container")
        dependency_id = object.__getattribute__(self, "_proxy_dependency_id")
        if not container.is_known(dependency_id):
            raise UnknownDependencyError(dependency_id)
        return container.resolve(dependency_id)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._resolve(), name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self._resolve(), name, value)

    def __contains__(self, item: Any) -> bool:
        return item in self._resolve()

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self._resolve()(*args, **kwargs)

    def __repr__(self) -> str:
        return f"DependencyProxy[{object.__getattribute__(self, '_proxy_dependency_id')!r}]"


def make_cell(owner: Any, injection: Injection, container: Any) -> Any:
    if isinstance(injection, AllInjection):
        return LazyCollection(owner, injection, container)
    return LazyReference(owner, injection, container)


def read_injection(owner: Any, injection: Injection) -> Any:
    """Value of an injection field: resolved through its cell, or the baked value.

    Raises:
        NotRegisteredInContainerError: If a collection field is read on an unregistered owner.
        UnknownDependencyError: If a single field is read on an owner no container injected.
    """
    storage = injection_storage(owner)
    if injection.field_name not in storage:
        if isinstance(injection, AllInjection):
            raise NotRegisteredInContainerError(owner)
        raise UnknownDependencyError(injection.dependency_id, "the owner is not registered in any container")

    value = storage[injection.field_name]
    if isinstance(value, LazyReference):
        return value.get()
    return value


def clear_injections(owner: Any) -> None:
    """Drop every cell and baked value of an owner's injection fields."""
    injections = get_injections(owner.__class__)
    if not injections:
        return
    storage = injection_storage(owner)
    for field_name in injections:
        storage.pop(field_name, None)


def bake_injections_of(owner: Any) -> None:
    """Freeze the owner's pending single cells; collection cells are only touched."""
    injections = get_injections(owner.__class__)
    if not injections:
        return
    storage = injection_storage(owner)
    for field_name in injections:
        cell = storage.get(field_name)
        if isinstance(cell, LazyReference):
            cell.bake()
        elif isinstance(cell, LazyCollection):
            cell.touch()
