"""
Domain layer - Core business logic and models.

This layer contains the fundamental rules and models for hierarchical dependency resolution.
It has no dependencies on other layers.
"""

from .enums import DuplicateStrategy, ResolveScope, SlotState
from .exceptions import (
    ContainerError,
    DecorationMisuseError,
    DIException,
    DuplicateRegistrationError,
    InvalidDependencyClassError,
    InvalidDependencyValueError,
    InvalidScopeError,
    NotRegisteredInContainerError,
    UnknownDependencyError,
)
from .interfaces import (
    ContainerAware,
    IContainer,
    MiddlewareRegistrator,
    MiddlewareRemover,
    MiddlewareResolver,
)
from .models import (
    DEFAULT_RESOLVE_ALL_SCOPE,
    DEFAULT_RESOLVE_SCOPE,
    AllInjection,
    BindingSlot,
    ContainerSettings,
    DependencyId,
    Injection,
    MiddlewareContext,
    RegisterOptions,
    SingleInjection,
)

__all__ = [
    # Enums
    "ResolveScope",
    "DuplicateStrategy",
    "SlotState",
    # Exceptions
    "DIException",
    "UnknownDependencyError",
    "DuplicateRegistrationError",
    "InvalidScopeError",
    "InvalidDependencyClassError",
    "InvalidDependencyValueError",
    "NotRegisteredInContainerError",
    "DecorationMisuseError",
    "ContainerError",
    # Interfaces
    "IContainer",
    "MiddlewareRegistrator",
    "MiddlewareRemover",
    "MiddlewareResolver",
    "ContainerAware",
    # Models
    "ContainerSettings",
    "RegisterOptions",
    "SingleInjection",
    "AllInjection",
    "Injection",
    "MiddlewareContext",
    "BindingSlot",
    "DependencyId",
    "DEFAULT_RESOLVE_SCOPE",
    "DEFAULT_RESOLVE_ALL_SCOPE",
]
