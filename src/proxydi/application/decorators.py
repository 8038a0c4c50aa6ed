"""Application layer - Declarations consumed by containers."""

from typing import Any, Callable, Optional, Type, Union

from proxydi.application.catalog import InjectableCatalog, default_catalog
from proxydi.application.lazy_reference import read_injection
from proxydi.application.markers import INJECTIONS_ATTR, injection_storage
from proxydi.domain import (
    DEFAULT_RESOLVE_ALL_SCOPE,
    DEFAULT_RESOLVE_SCOPE,
    AllInjection,
    DecorationMisuseError,
    Injection,
    InvalidDependencyClassError,
    ResolveScope,
    SingleInjection,
)


class InjectionDescriptor:
    """Class attribute declaring an injection point.

    On class creation it records its injection in the class ``__injections__``
    table. On instances it is the accessor of the field: reads go through the
    lazy cell a container attached, or return the baked value.
    """

    __proxydi_descriptor__ = True

    def __init__(self, dependency_id: Any, scope: int, collect_all: bool) -> None:
        self._dependency_id = dependency_id
        self._scope = int(scope)
        self._collect_all = collect_all
        self.field_name: Optional[str] = None
        self.injection: Optional[Injection] = None

    @property
    def decorator_name(self) -> str:
        return "inject_all" if self._collect_all else "inject"

    def __set_name__(self, owner: Type, name: str) -> None:
        self.field_name = name
        dependency_id = name if self._dependency_id is None else self._dependency_id
        injection_type = AllInjection if self._collect_all else SingleInjection
        self.injection = injection_type(field_name=name, dependency_id=dependency_id, scope=self._scope)

        declared = vars(owner).get(INJECTIONS_ATTR)
        if declared is None:
            declared = {}
            setattr(owner, INJECTIONS_ATTR, declared)
        declared[name] = self.injection

    def __get__(self, instance: Any, owner: Optional[Type] = None) -> Any:
        if instance is None:
            return self
        if self.injection is None:
            raise DecorationMisuseError(f"@{self.decorator_name} should be declared in a class body")
        return read_injection(instance, self.injection)

    def __set__(self, instance: Any, value: Any) -> None:
        if self.field_name is None:
            raise DecorationMisuseError(f"@{self.decorator_name} should be declared in a class body")
        injection_storage(instance)[self.field_name] = value

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        raise DecorationMisuseError(f"@{self.decorator_name} decorator should decorate fields")

    def __repr__(self) -> str:
        return f"{self.decorator_name}({self.injection or self._dependency_id!r})"


def _normalize_target(target: Any) -> Any:
    if isinstance(target, type):
        return default_catalog.ids_for(target)[0]
    if callable(target):
        raise InvalidDependencyClassError(f"Invalid dependency class: {target!r}")
    return target


def inject(dependency_id: Any = None, scope: Optional[int] = None) -> Any:
    """Declare a field receiving one dependency from the owner's container.

    Args:
        dependency_id: Id or class of the dependency. Defaults to the field name.
        scope: Where to search. Defaults to ResolveScope.CURRENT | ResolveScope.PARENT.

    Returns:
        A descriptor to assign to a class attribute.

    Raises:
        InvalidDependencyClassError: If a class is given that has no usable id.

    Example:
        >>> class Director:
        ...     stage = inject("stage")
        ...     actors = inject_all(Actor)
    """
    target = None if dependency_id is None else _normalize_target(dependency_id)
    return InjectionDescriptor(target, DEFAULT_RESOLVE_SCOPE if scope is None else scope, collect_all=False)


def inject_all(dependency_id: Any, scope: int = DEFAULT_RESOLVE_ALL_SCOPE) -> Any:
    """Declare a field exposing every matching dependency as a live sequence.

    Args:
        dependency_id: Id or class of the dependencies.
        scope: Where to search. Defaults to ResolveScope.CHILDREN.

    Returns:
        A descriptor to assign to a class attribute.
    """
    return InjectionDescriptor(_normalize_target(dependency_id), scope, collect_all=True)


def injectable(
    dependency_id: Any = None,
    catalog: Optional[InjectableCatalog] = None,
) -> Union[Type, Callable[[Type], Type]]:
    """Declare a class that containers create on demand when nothing binds its ids.

    The class is declared under the given id(s) and its own name. Usable bare
    (``@injectable``) or called (``@injectable("id")``, ``@injectable(["a", "b"])``).

    The class name is always one of the ids, so two injectable classes with the
    same ``__name__`` cannot share a catalog even when they live in different
    modules. Declare one of them into a separate ``InjectableCatalog`` instead.

    Args:
        dependency_id: Optional id or list of ids.
        catalog: Catalog to declare into. Defaults to the process-wide catalog.

    Raises:
        DecorationMisuseError: If applied to something that is not a class.
        DuplicateRegistrationError: If an id is already declared by another class.
    """
    if isinstance(dependency_id, type):
        return injectable(catalog=catalog)(dependency_id)

    def decorator(cls: Type) -> Type:
        if not isinstance(cls, type):
            raise DecorationMisuseError("@injectable decorator should decorate classes")

        if dependency_id is None:
            explicit_ids = []
        elif isinstance(dependency_id, (list, tuple)):
            explicit_ids = list(dependency_id)
        else:
            explicit_ids = [dependency_id]

        (catalog if catalog is not None else default_catalog).add_injectable(cls, explicit_ids)
        return cls

    return decorator


def middleware(
    cls: Optional[Type] = None,
    catalog: Optional[InjectableCatalog] = None,
) -> Union[Type, Callable[[Type], Type]]:
    """Declare a class whose registered instances join their container's middleware pipeline.

    Raises:
        DecorationMisuseError: If applied to something that is not a class.
        DuplicateRegistrationError: If another middleware class has the same name.
    """

    def decorator(target: Type) -> Type:
        if not isinstance(target, type):
            raise DecorationMisuseError("@middleware decorator should decorate classes")
        (catalog if catalog is not None else default_catalog).add_middleware(target)
        return target

    if cls is None:
        return decorator
    return decorator(cls)
