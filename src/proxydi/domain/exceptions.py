from typing import Any, Optional


def describe_id(dependency_id: Any) -> str:
    """Human readable form of a dependency id for error messages."""
    if isinstance(dependency_id, type):
        return dependency_id.__name__
    return str(dependency_id)


class DIException(Exception):
    """Base exception for DI-related errors."""


class UnknownDependencyError(DIException):
    """Raised when a dependency cannot be found in the requested scope.

    This occurs when:
    - Nothing is bound to the id in the searched containers and no injectable class declares it.
    - A lazy injection field is read on an instance that was removed from its container.

    Attributes:
        dependency_id: The id that could not be resolved.
        reason: Optional reason for the failure.
    """

    def __init__(self, dependency_id: Any, reason: Optional[str] = None) -> None:
        self.dependency_id = dependency_id
        self.reason = reason
        message = f"Can't resolve unknown dependency: {describe_id(dependency_id)}"
        if reason:
            message += f". Reason: {reason}"
        super().__init__(message)


class DuplicateRegistrationError(DIException):
    """Raised for conflicting registrations.

    This occurs when:
    - An id is registered again under the THROW strategy.
    - An id is registered again after the container stopped allowing rewrites.
    - An injectable or middleware id is declared twice for different classes.

    Attributes:
        dependency_id: The id that is already taken.
    """

    def __init__(self, dependency_id: Any, message: Optional[str] = None) -> None:
        self.dependency_id = dependency_id
        super().__init__(message or f"Dependency with id '{describe_id(dependency_id)}' already exists")


class InvalidScopeError(DIException):
    """Raised when a resolve scope has no flag set."""

    def __init__(self, scope: Any = 0) -> None:
        self.scope = scope
        super().__init__(f"ResolveScope must have at least one flag set, got {int(scope)}")


class InvalidDependencyClassError(DIException):
    """Raised when a class cannot be turned into a dependency id.

    This occurs when:
    - The class is neither declared injectable nor has a usable name.
    - Resolving all instances of a class that was never declared injectable.
    """


class InvalidDependencyValueError(DIException):
    """Raised when a value cannot be registered as a dependency.

    This occurs when:
    - Registering a plain value (string, number, None...) while the container does not allow it.
    - Registering a plain value without an explicit dependency id.
    """


class NotRegisteredInContainerError(DIException):
    """Raised when a collection lookup is performed for an instance that no container owns."""

    def __init__(self, instance: Any = None) -> None:
        self.instance = instance
        super().__init__("Instance is not registered in any container")


class DecorationMisuseError(DIException):
    """Raised when a declaration helper is applied to the wrong kind of object."""


class ContainerError(DIException):
    """Raised for invalid container tree operations.

    This occurs when:
    - Looking up a child container by an id it does not have.
    - Linking a child container twice.
    """
