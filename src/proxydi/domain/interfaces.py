from abc import ABC, abstractmethod
from typing import Any, List, Optional, Protocol, runtime_checkable

from proxydi.domain.enums import ResolveScope
from proxydi.domain.models import (
    DEFAULT_RESOLVE_ALL_SCOPE,
    DEFAULT_RESOLVE_SCOPE,
    ContainerSettings,
    MiddlewareContext,
)


class IContainer(ABC):
    """Abstract interface for a node of the container tree."""

    id: int
    settings: ContainerSettings
    parent: Optional["IContainer"]

    @abstractmethod
    def register(self, dependency: Any, options: Any = None) -> Any:
        """Register an instance or a class and return the registered instance.

        Args:
            dependency: Instance to register, or class to instantiate and register.
            options: Dependency id, list of ids, class, or RegisterOptions.
        """

    @abstractmethod
    def is_known(self, dependency_id: Any, scope: ResolveScope = DEFAULT_RESOLVE_SCOPE) -> bool:
        """Check whether the dependency can be resolved within the scope."""

    @abstractmethod
    def has_own(self, dependency_id: Any) -> bool:
        """Check whether this container itself binds the dependency."""

    @abstractmethod
    def resolve(self, dependency_id: Any, scope: ResolveScope = DEFAULT_RESOLVE_SCOPE) -> Any:
        """Resolve a single dependency.

        Raises:
            UnknownDependencyError: If nothing matches within the scope.
        """

    @abstractmethod
    def resolve_all(self, dependency_id: Any, scope: ResolveScope = DEFAULT_RESOLVE_ALL_SCOPE) -> List[Any]:
        """Resolve every distinct matching dependency within the scope."""

    @abstractmethod
    def remove(self, dependency_or_id: Any) -> None:
        """Remove a dependency by instance or by id."""

    @abstractmethod
    def create_child_container(self) -> "IContainer":
        """Create a child container inheriting this container's settings."""

    @abstractmethod
    def destroy(self) -> None:
        """Remove all bindings, destroy children and detach from the parent."""

    @abstractmethod
    def bake_injections(self) -> None:
        """Freeze every pending single injection of this container and its descendants."""

    @abstractmethod
    def register_middleware(self, middleware: Any) -> None:
        """Add a middleware listener to this container."""

    @abstractmethod
    def remove_middleware(self, middleware: Any) -> None:
        """Remove a middleware listener from this container."""


@runtime_checkable
class MiddlewareRegistrator(Protocol):
    """Middleware listening to registrations in the container hierarchy."""

    def on_register(self, context: MiddlewareContext) -> None: ...


@runtime_checkable
class MiddlewareRemover(Protocol):
    """Middleware listening to removals in the container hierarchy."""

    def on_remove(self, context: MiddlewareContext) -> None: ...


@runtime_checkable
class MiddlewareResolver(Protocol):
    """Middleware able to observe or replace resolved dependencies."""

    def on_resolve(self, context: MiddlewareContext) -> MiddlewareContext: ...


@runtime_checkable
class ContainerAware(Protocol):
    """Dependency notified once it is injected and attached to its container."""

    def on_containerized(self, container: IContainer) -> None: ...
