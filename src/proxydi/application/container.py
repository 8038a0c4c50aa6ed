import itertools
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from proxydi.application.catalog import InjectableCatalog, default_catalog, unique_ids
from proxydi.application.context_proxy import ContextualProxy, unwrap
from proxydi.application.lazy_reference import (
    bake_injections_of,
    clear_injections,
    make_cell,
)
from proxydi.application.markers import (
    container_of,
    dependency_ids_of,
    get_injections,
    injection_storage,
    is_plain_value,
    tag_dependency,
    untag_dependency,
)
from proxydi.application.middleware_manager import MiddlewareManager
from proxydi.application.resolver import ConstructorResolver
from proxydi.application.scope_resolver import ScopeResolver, dedupe
from proxydi.domain import (
    DEFAULT_RESOLVE_ALL_SCOPE,
    DEFAULT_RESOLVE_SCOPE,
    BindingSlot,
    ContainerError,
    ContainerSettings,
    DependencyId,
    DuplicateStrategy,
    IContainer,
    InvalidDependencyClassError,
    InvalidDependencyValueError,
    MiddlewareContext,
    NotRegisteredInContainerError,
    RegisterOptions,
    ResolveScope,
    SlotState,
    UnknownDependencyError,
)

logger = logging.getLogger(__name__)

_REACHABLE_FROM_CATALOG = ResolveScope.CURRENT | ResolveScope.PARENT

# Containers whose type name says nothing about the dependency
_ANONYMOUS_TYPES = (object, dict, list, tuple, set)


class Container(IContainer):
    """Node of a tree of dependency registries.

    Binds dependency ids to instances, wires lazy injections into registered
    instances, and resolves ids across the tree according to ResolveScope flags.
    Classes declared ``@injectable`` are instantiated on demand when nothing in
    scope binds an id.

    Attributes:
        id: Unique, increasing container number.
        parent: Parent container, None for a root.
        settings: Switches controlling registration and injection behavior.
        catalog: Catalog of injectable and middleware classes.
        _children: Direct child containers by id, in creation order.
        _bindings: Binding slots of this container by dependency id.
        _context_proxies: Proxies of foreign instances resolved in this container's context,
            keyed by the identity of the wrapped instance.
    """

    _id_counter = itertools.count()

    def __init__(
        self,
        settings: Optional[Union[ContainerSettings, Mapping[str, Any]]] = None,
        parent: Optional["Container"] = None,
        catalog: Optional[InjectableCatalog] = None,
    ) -> None:
        """Initialize the container and link it to its parent.

        Args:
            settings: Settings or a mapping of settings; missing switches take defaults.
            parent: Optional parent container.
            catalog: Catalog to consult. Defaults to the parent's, else the process-wide one.
        """
        self.id: int = next(Container._id_counter)
        self.parent: Optional[Container] = None
        self._children: Dict[int, Container] = {}
        self._bindings: Dict[DependencyId, BindingSlot] = {}
        self._context_proxies: Dict[int, ContextualProxy] = {}

        if isinstance(settings, ContainerSettings):
            self.settings = settings.model_copy()
        else:
            self.settings = ContainerSettings.model_validate(dict(settings or {}))

        if catalog is not None:
            self.catalog = catalog
        elif parent is not None:
            self.catalog = parent.catalog
        else:
            self.catalog = default_catalog

        self._scope_resolver = ScopeResolver()
        self._constructor_resolver = ConstructorResolver()
        self._middleware_manager = MiddlewareManager(parent._middleware_manager if parent is not None else None)

        if parent is not None:
            parent._add_child(self)
            self.parent = parent

    def __repr__(self) -> str:
        return f"Container(id={self.id}, parent={None if self.parent is None else self.parent.id})"

    # Middleware

    def register_middleware(self, middleware: Any) -> None:
        """Add a listener for register, remove and resolve events of this subtree.

        Args:
            middleware: Object with any of ``on_register``, ``on_remove``, ``on_resolve``.
        """
        self._middleware_manager.add(middleware)

    def remove_middleware(self, middleware: Any) -> None:
        self._middleware_manager.remove(middleware)

    # Registration

    def register(self, dependency: Any, options: Any = None) -> Any:
        """Register an instance, or instantiate and register a class.

        Args:
            dependency: Instance, or class instantiated with lazy constructor proxies.
            options: Dependency id, list of ids (the class name is added as an alias),
                class (its injectable ids or name), or RegisterOptions.

        Returns:
            The registered instance.

        Raises:
            InvalidDependencyValueError: If a plain value is registered while not allowed,
                or without an id.
            DuplicateRegistrationError: If an id is taken and the policy or settings forbid rebinding.

        Example:
            >>> container.register(Stage, "stage")
            >>> container.register(Director("Jane"))
            >>> container.register(plugin, RegisterOptions(
            ...     dependency_id="plugin",
            ...     duplicate_strategy=DuplicateStrategy.ALWAYS_ADD,
            ... ))
        """
        register_options = self._normalize_register_options(options)
        ids = self._normalize_dependency_ids(dependency, register_options.dependency_id)
        strategy = register_options.duplicate_strategy

        if isinstance(dependency, type):
            instance = self._constructor_resolver.instantiate(dependency, self)
        else:
            instance = dependency

        if is_plain_value(instance) and not self.settings.allow_register_anything:
            raise InvalidDependencyValueError(
                f"Can't register as dependency (allow_register_anything is off for this container): {instance!r}"
            )

        # Validate every slot before mutating any of them
        for dependency_id in ids:
            slot = self._bindings.get(dependency_id)
            if slot is not None:
                slot.check(instance, strategy, self.settings.allow_rewrite_dependencies)

        self.inject_dependencies_to(instance)

        for dependency_id in ids:
            self._bind(dependency_id, instance, strategy)

        on_containerized = getattr(instance, "on_containerized", None)
        if callable(on_containerized) and not is_plain_value(instance):
            on_containerized(self)

        if self.catalog.is_middleware(instance):
            self._middleware_manager.add(instance)

        logger.debug("Registered %s as %s in container %s", type(instance).__name__, ids, self.id)

        for dependency_id in ids:
            self._middleware_manager.on_register(
                MiddlewareContext(container=self, dependency_id=dependency_id, dependency=instance)
            )

        return instance

    def register_injectables(self) -> "Container":
        """Instantiate and register every injectable class of the catalog.

        Returns:
            This container, to allow chaining with the constructor.
        """
        for injectable_class in self.catalog.classes():
            self.register(injectable_class, self.catalog.find_ids(injectable_class))
        return self

    def inject_dependencies_to(self, owner: Any) -> None:
        """Attach lazy cells bound to this container for every injection point of the owner.

        Does not register the owner.
        """
        injections = get_injections(owner.__class__)
        if not injections:
            return

        storage = injection_storage(owner)
        for injection in injections.values():
            storage[injection.field_name] = make_cell(owner, injection, self)

    # Lookup

    def get_own_slot(self, dependency_id: Any) -> Optional[BindingSlot]:
        """This container's non-empty slot for the id, or None."""
        try:
            slot = self._bindings.get(dependency_id)
        except TypeError:
            return None
        if slot is None or slot.state == SlotState.EMPTY:
            return None
        return slot

    def has_own(self, dependency_id: Any) -> bool:
        """Check whether this container itself binds the dependency (ancestors are not checked)."""
        return any(self.get_own_slot(i) is not None for i in self._normalize_to_ids(dependency_id))

    def is_known(self, dependency_id: Any, scope: int = DEFAULT_RESOLVE_SCOPE) -> bool:
        """Check whether the dependency can be resolved within the scope.

        Injectable classes count as known when the scope includes CURRENT or PARENT.

        Raises:
            InvalidScopeError: If the scope has no flag set.
        """
        scope = self._scope_resolver.validate(scope)
        for resolved_id in self._normalize_to_ids(dependency_id):
            if self._scope_resolver.find_slot(self, resolved_id, scope) is not None:
                return True
            if scope & _REACHABLE_FROM_CATALOG and self.catalog.has(resolved_id):
                return True
        return False

    def resolve(self, dependency_id: Any, scope: int = DEFAULT_RESOLVE_SCOPE) -> Any:
        """Resolve a single dependency by id or class.

        A slot with several instances resolves to the most recently registered one.
        When nothing in scope binds the id, an injectable class declaring it is
        instantiated and registered in this container.

        Args:
            dependency_id: Id, or class (its injectable ids or name).
            scope: Where to search. Defaults to CURRENT | PARENT.

        Returns:
            The dependency after the resolve middleware chain.

        Raises:
            UnknownDependencyError: If nothing in scope matches.
            InvalidScopeError: If the scope has no flag set.

        Example:
            >>> director = child.resolve(Director)
            >>> stage = child.resolve("stage", ResolveScope.PARENT)
        """
        scope = self._scope_resolver.validate(scope)
        ids = self._normalize_to_ids(dependency_id)

        for resolved_id in ids:
            slot = self._scope_resolver.find_slot(self, resolved_id, scope)
            if slot is not None:
                if slot.state == SlotState.MULTIPLE:
                    logger.debug(
                        "Found %d dependencies for '%s' when resolving a single one, returning the latest",
                        len(slot.instances),
                        resolved_id,
                    )
                return self._finish_resolve(resolved_id, slot.current)

        if scope & _REACHABLE_FROM_CATALOG:
            for resolved_id in ids:
                injectable_class = self.catalog.find_class(resolved_id)
                if injectable_class is not None:
                    logger.debug("Auto-registering injectable %s in container %s", injectable_class.__name__, self.id)
                    instance = self.register(injectable_class, self.catalog.find_ids(injectable_class))
                    return self._finish_resolve(resolved_id, instance)

        raise UnknownDependencyError(ids[0])

    def resolve_all(self, dependency_id: Any, scope: int = DEFAULT_RESOLVE_ALL_SCOPE) -> List[Any]:
        """Resolve every distinct dependency bound to the id within the scope.

        Args:
            dependency_id: Id, or injectable class (all of its ids are collected).
            scope: Where to search. Defaults to CHILDREN.

        Returns:
            Distinct instances: this container's, the nearest ancestor's, then the
            whole subtree's, in first-seen order. Empty if nothing matches.

        Raises:
            InvalidDependencyClassError: If a class is given that is not injectable.
            InvalidScopeError: If the scope has no flag set.
        """
        scope = self._scope_resolver.validate(scope)

        if isinstance(dependency_id, type):
            ids = self.catalog.find_ids(dependency_id)
            if not ids:
                raise InvalidDependencyClassError(f"Class is not injectable: {dependency_id.__name__}")
            collected: List[Any] = []
            for resolved_id in ids:
                collected.extend(self.resolve_all(resolved_id, scope))
            return dedupe(collected)

        results = self._scope_resolver.collect(self, dependency_id, scope)
        if results:
            return results

        if scope & ResolveScope.CURRENT:
            injectable_class = self.catalog.find_class(dependency_id)
            if injectable_class is not None:
                options = RegisterOptions(
                    dependency_id=self.catalog.find_ids(injectable_class),
                    duplicate_strategy=DuplicateStrategy.ALWAYS_ADD,
                )
                return [self.register(injectable_class, options)]

        return []

    def _finish_resolve(self, dependency_id: DependencyId, instance: Any) -> Any:
        if self.settings.resolve_in_container_context:
            instance = self._in_context(instance)

        context = self._middleware_manager.on_resolve(
            MiddlewareContext(container=self, dependency_id=dependency_id, dependency=instance)
        )
        return context.dependency

    def _in_context(self, instance: Any) -> Any:
        owner = container_of(instance)
        if owner is None or owner is self:
            return instance

        key = id(instance)
        proxy = self._context_proxies.get(key)
        if proxy is None or unwrap(proxy) is not instance:
            proxy = ContextualProxy(instance)
            tag_dependency(proxy, self, dependency_ids_of(instance))
            self.inject_dependencies_to(proxy)
            self._context_proxies[key] = proxy
        return proxy

    # Removal

    def remove(self, dependency_or_id: Any) -> None:
        """Remove a dependency by instance or by id.

        Removing an instance unbinds it from all of its ids. Removing an id unbinds
        every instance bound to it. An instance losing its last binding loses its
        container tag and its injections. Unknown arguments are ignored.
        """
        bound_ids = self._ids_holding(dependency_or_id)
        if bound_ids:
            for dependency_id in bound_ids:
                self._unbind(dependency_or_id, dependency_id)
            return

        for dependency_id in self._normalize_to_ids(dependency_or_id):
            slot = self.get_own_slot(dependency_id)
            if slot is None:
                continue
            for instance in list(slot.instances):
                self._unbind(instance, dependency_id)

    def _bind(self, dependency_id: DependencyId, instance: Any, strategy: DuplicateStrategy) -> None:
        slot = self._bindings.get(dependency_id)
        if slot is None:
            slot = BindingSlot(dependency_id=dependency_id, container=self)
            self._bindings[dependency_id] = slot

        displaced = slot.add(instance, strategy)
        tag_dependency(instance, self, unique_ids([*self._tagged_ids(instance), dependency_id]))

        for previous in displaced:
            self._detach(previous)

    def _tagged_ids(self, instance: Any) -> List[DependencyId]:
        if container_of(instance) is not self:
            return []
        return dependency_ids_of(instance)

    def _ids_holding(self, instance: Any) -> List[DependencyId]:
        return [dependency_id for dependency_id, slot in self._bindings.items() if slot.holds(instance)]

    def _unbind(self, instance: Any, dependency_id: DependencyId) -> None:
        slot = self._bindings.get(dependency_id)
        if slot is not None:
            slot.discard(instance)
            if slot.state == SlotState.EMPTY:
                del self._bindings[dependency_id]

        self._detach(instance)
        logger.debug("Removed %s from '%s' in container %s", type(instance).__name__, dependency_id, self.id)

        self._middleware_manager.on_remove(
            MiddlewareContext(container=self, dependency_id=dependency_id, dependency=instance)
        )

    def _detach(self, instance: Any) -> None:
        """Refresh the tag of an instance that lost a binding; release it if none is left."""
        remaining = self._ids_holding(instance)
        if remaining:
            if container_of(instance) is self:
                tag_dependency(instance, self, remaining)
            return

        # Cells belong to the owning container; another container may have taken the instance over
        if container_of(instance) is self:
            untag_dependency(instance)
            clear_injections(instance)
        if self.catalog.is_middleware(instance):
            self._middleware_manager.remove(instance)
        self._drop_context_proxies(instance)

    def _drop_context_proxies(self, instance: Any) -> None:
        """Forget the proxies wrapping the instance in every container of the tree."""
        root = self
        while root.parent is not None:
            root = root.parent

        pending = [root]
        while pending:
            container = pending.pop()
            proxy = container._context_proxies.get(id(instance))
            if proxy is not None and unwrap(proxy) is instance:
                del container._context_proxies[id(instance)]
            pending.extend(container.children)

    def _own_dependencies(self) -> List[Any]:
        return dedupe(instance for slot in self._bindings.values() for instance in slot.instances)

    # Tree

    @property
    def children(self) -> List["Container"]:
        """All direct descendants of this container, in creation order."""
        return list(self._children.values())

    def get_child(self, child_id: int) -> "Container":
        """Direct child by container id.

        Raises:
            ContainerError: If this container has no such child.
        """
        child = self._children.get(child_id)
        if child is None:
            raise ContainerError(f"Unknown child container id: {child_id}")
        return child

    def _add_child(self, child: "Container") -> None:
        if child.id in self._children:
            raise ContainerError(f"Container already has child with id {child.id}")
        self._children[child.id] = child

    def _remove_child(self, child_id: int) -> None:
        self._children.pop(child_id, None)

    def create_child_container(self) -> "Container":
        """Create a child container with a copy of this container's settings.

        Returns:
            New container resolving from this one through PARENT scope.

        Example:
            >>> request_container = app_container.create_child_container()
            >>> request_container.register(RequestContext())
        """
        child = Container(settings=self.settings, parent=self, catalog=self.catalog)
        logger.debug("Created child container %s of container %s", child.id, self.id)
        return child

    def destroy(self) -> None:
        """Remove every dependency, destroy children recursively and detach from the parent.

        Safe to call on an already destroyed container.
        """
        for instance in self._own_dependencies():
            for dependency_id in self._ids_holding(instance):
                self._unbind(instance, dependency_id)

        self._bindings.clear()
        self._context_proxies.clear()

        for child in self.children:
            child.destroy()
        self._children.clear()

        if self.parent is not None:
            self.parent._remove_child(self.id)
            self.parent = None
            self._middleware_manager.parent = None

        logger.debug("Destroyed container %s", self.id)

    def bake_injections(self) -> None:
        """Freeze every pending single injection of this container and its descendants.

        Rewriting dependencies is switched off for good in every visited container,
        and each single injection is resolved now and written onto its owner.
        Collection injections stay live.

        Raises:
            UnknownDependencyError: If a single injection cannot be resolved.
        """
        self.settings.allow_rewrite_dependencies = False

        owners = [*self._own_dependencies(), *self._context_proxies.values()]
        for owner in owners:
            if not is_plain_value(owner):
                bake_injections_of(owner)

        logger.debug("Baked injections of container %s", self.id)

        for child in self.children:
            child.bake_injections()

    # Normalization

    def _normalize_to_ids(self, dependency_id: Any) -> List[DependencyId]:
        if isinstance(dependency_id, type):
            return self.catalog.ids_for(dependency_id)
        return [dependency_id]

    @staticmethod
    def _normalize_register_options(options: Any) -> RegisterOptions:
        if options is None:
            return RegisterOptions()
        if isinstance(options, RegisterOptions):
            return options
        if isinstance(options, Mapping):
            return RegisterOptions.model_validate(dict(options))
        return RegisterOptions(dependency_id=options)

    def _normalize_dependency_ids(self, dependency: Any, dependency_id: Any) -> List[DependencyId]:
        if dependency_id is not None:
            if isinstance(dependency_id, type):
                return self.catalog.ids_for(dependency_id)

            if isinstance(dependency_id, (list, tuple)):
                ids = list(dependency_id)
                if isinstance(dependency, type):
                    ids.append(dependency.__name__)
                elif not is_plain_value(dependency) and type(dependency) not in _ANONYMOUS_TYPES:
                    ids.append(type(dependency).__name__)
                return unique_ids(ids)

            return [dependency_id]

        if isinstance(dependency, type):
            return self.catalog.ids_for(dependency)

        if is_plain_value(dependency) or type(dependency) in _ANONYMOUS_TYPES:
            raise InvalidDependencyValueError("dependency_id is required when registering plain objects or literals")

        return self.catalog.ids_for(type(dependency))


def resolve_all(instance: Any, dependency_id: Any, scope: int = DEFAULT_RESOLVE_ALL_SCOPE) -> List[Any]:
    """Resolve every matching dependency from the container the instance is registered in.

    Args:
        instance: A registered instance.
        dependency_id: Id or injectable class.
        scope: Where to search. Defaults to CHILDREN.

    Raises:
        NotRegisteredInContainerError: If no container owns the instance.

    Example:
        >>> plugins = resolve_all(self, "plugin")
    """
    container = container_of(instance)
    if container is None:
        raise NotRegisteredInContainerError(instance)
    return container.resolve_all(dependency_id, scope)
