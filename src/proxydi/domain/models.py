from typing import Any, Hashable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from proxydi.domain.enums import DuplicateStrategy, ResolveScope, SlotState
from proxydi.domain.exceptions import DuplicateRegistrationError

DependencyId = Hashable

DEFAULT_RESOLVE_SCOPE = ResolveScope.CURRENT | ResolveScope.PARENT
DEFAULT_RESOLVE_ALL_SCOPE = ResolveScope.CHILDREN


class ContainerSettings(BaseModel):
    """Switches controlling the behavior of a container and the children created from it.

    Attributes:
        allow_register_anything: Accept plain values (strings, numbers, None) as dependencies.
        allow_rewrite_dependencies: Allow rebinding ids that already hold an instance. Lazy
            injections stay live while this is on and bake themselves once it is off.
        resolve_in_container_context: Wrap instances owned by other containers so that their
            own injections resolve from the requesting container.
    """

    model_config = ConfigDict(validate_assignment=True)

    allow_register_anything: bool = Field(
        default=False,
        description="Allow registering values that are not objects.",
    )
    allow_rewrite_dependencies: bool = Field(
        default=True,
        description="Allow rebinding ids that already have a bound instance.",
    )
    resolve_in_container_context: bool = Field(
        default=False,
        description="Resolve injections of foreign instances from the requesting container.",
    )


class RegisterOptions(BaseModel):
    """Value object describing how an instance should be registered.

    Attributes:
        dependency_id: Id, list of ids or class to register the instance under.
        duplicate_strategy: Policy applied when the id already has a binding.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    dependency_id: Optional[Any] = Field(default=None, description="Id(s) of the dependency.")
    duplicate_strategy: DuplicateStrategy = Field(
        default=DuplicateStrategy.REPLACE_IF_SINGLE_ELSE_ADD,
        description="Duplicate registration policy.",
    )


class SingleInjection(BaseModel):
    """Injection point expecting exactly one dependency.

    Attributes:
        field_name: Attribute of the owner receiving the dependency.
        dependency_id: Id the dependency is resolved by.
        scope: ResolveScope flags used for the lookup.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["single"] = "single"
    field_name: str = Field(..., description="Name of the injected attribute.")
    dependency_id: Any = Field(..., description="Id of the injected dependency.")
    scope: int = Field(default=int(DEFAULT_RESOLVE_SCOPE), description="ResolveScope flags.")

    @property
    def resolve_scope(self) -> ResolveScope:
        return ResolveScope(self.scope)


class AllInjection(BaseModel):
    """Injection point collecting every matching dependency.

    Attributes:
        field_name: Attribute of the owner receiving the collection.
        dependency_id: Id the dependencies are resolved by.
        scope: ResolveScope flags used for the lookup.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["all"] = "all"
    field_name: str = Field(..., description="Name of the injected attribute.")
    dependency_id: Any = Field(..., description="Id of the injected dependencies.")
    scope: int = Field(default=int(DEFAULT_RESOLVE_ALL_SCOPE), description="ResolveScope flags.")

    @property
    def resolve_scope(self) -> ResolveScope:
        return ResolveScope(self.scope)


Injection = Union[SingleInjection, AllInjection]


class MiddlewareContext(BaseModel):
    """Event payload passed through the middleware pipeline.

    Resolve listeners return either the same context or a modified copy
    (``context.model_copy(update={"dependency": other})``).

    Attributes:
        container: Container the event happened in.
        dependency_id: Id the dependency is registered, removed or resolved by.
        dependency: The dependency instance.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    container: Any = Field(..., description="Container where the event happened.")
    dependency_id: Any = Field(..., description="Dependency id of the event.")
    dependency: Any = Field(default=None, description="Dependency instance of the event.")


class BindingSlot(BaseModel):
    """Registration state of one dependency id inside one container.

    Attributes:
        dependency_id: Id this slot binds.
        container: Container owning the slot.
        instances: Bound instances in registration order.
        strategy: Duplicate policy used by the latest registration.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    dependency_id: Any = Field(..., description="Id bound by this slot.")
    container: Any = Field(default=None, repr=False, description="Owning container.")
    instances: List[Any] = Field(default_factory=list, description="Bound instances.")
    strategy: DuplicateStrategy = Field(
        default=DuplicateStrategy.REPLACE_IF_SINGLE_ELSE_ADD,
        description="Duplicate policy of the latest registration.",
    )

    @property
    def state(self) -> SlotState:
        if not self.instances:
            return SlotState.EMPTY
        if len(self.instances) == 1:
            return SlotState.SINGLE
        return SlotState.MULTIPLE

    @property
    def current(self) -> Any:
        """The representative returned by scalar lookups: the latest registered instance."""
        return self.instances[-1]

    def holds(self, instance: Any) -> bool:
        return any(existing is instance for existing in self.instances)

    def check(self, instance: Any, strategy: DuplicateStrategy, allow_rewrite: bool) -> None:
        """Validate a registration without mutating the slot.

        Args:
            instance: Instance about to be registered.
            strategy: Duplicate policy of the registration.
            allow_rewrite: Whether the owning container allows rebinding.

        Raises:
            DuplicateRegistrationError: If the policy or container settings forbid the registration.
        """
        if self.state == SlotState.EMPTY:
            return

        if strategy == DuplicateStrategy.THROW:
            raise DuplicateRegistrationError(self.dependency_id)

        if not allow_rewrite and not self.holds(instance):
            raise DuplicateRegistrationError(
                self.dependency_id,
                f"Dependency with id '{self.dependency_id}' already exists "
                "and the container does not allow rewriting dependencies",
            )

    def add(self, instance: Any, strategy: DuplicateStrategy) -> List[Any]:
        """Bind an instance according to the duplicate policy.

        Args:
            instance: Instance to bind.
            strategy: Duplicate policy of the registration.

        Returns:
            Instances that were displaced from the slot.
        """
        self.strategy = strategy

        if self.state == SlotState.EMPTY:
            self.instances.append(instance)
            return []

        replace = strategy in (DuplicateStrategy.ALWAYS_REPLACE, DuplicateStrategy.THROW) or (
            strategy == DuplicateStrategy.REPLACE_IF_SINGLE_ELSE_ADD and self.state == SlotState.SINGLE
        )

        if replace:
            displaced = [existing for existing in self.instances if existing is not instance]
            self.instances[:] = [instance]
            return displaced

        if not self.holds(instance):
            self.instances.append(instance)
        return []

    def discard(self, instance: Any) -> bool:
        """Unbind an instance. Returns True if it was bound."""
        for index, existing in enumerate(self.instances):
            if existing is instance:
                del self.instances[index]
                return True
        return False
