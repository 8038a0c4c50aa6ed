"""
proxydi: Hierarchical dependency injection with lazy proxies and scoped resolution.

Public API exports for the proxydi package.
"""

# Application exports
from proxydi.application.catalog import InjectableCatalog, default_catalog
from proxydi.application.container import Container, resolve_all
from proxydi.application.decorators import inject, inject_all, injectable, middleware

# Domain exports
from proxydi.domain.enums import DuplicateStrategy, ResolveScope
from proxydi.domain.exceptions import (
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
from proxydi.domain.models import ContainerSettings, MiddlewareContext, RegisterOptions

__version__ = "0.1.0"

__all__ = [
    # Container
    "Container",
    "resolve_all",
    # Declarations
    "inject",
    "inject_all",
    "injectable",
    "middleware",
    "InjectableCatalog",
    "default_catalog",
    # Enums
    "ResolveScope",
    "DuplicateStrategy",
    # Models
    "ContainerSettings",
    "RegisterOptions",
    "MiddlewareContext",
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
]
