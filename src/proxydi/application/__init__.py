"""
Application layer - Use cases and orchestration.

This layer contains the container tree, lazy injection and the declaration helpers.
It depends only on the Domain layer.
"""

from .catalog import InjectableCatalog, default_catalog
from .container import Container, resolve_all
from .context_proxy import ContextualProxy, unwrap
from .decorators import InjectionDescriptor, inject, inject_all, injectable, middleware
from .lazy_reference import DependencyProxy, LazyCollection, LazyReference
from .middleware_manager import MiddlewareManager
from .resolver import ConstructorResolver
from .scope_resolver import ScopeResolver

__all__ = [
    "Container",
    "resolve_all",
    "InjectableCatalog",
    "default_catalog",
    "inject",
    "inject_all",
    "injectable",
    "middleware",
    "InjectionDescriptor",
    "LazyReference",
    "LazyCollection",
    "DependencyProxy",
    "ContextualProxy",
    "unwrap",
    "MiddlewareManager",
    "ConstructorResolver",
    "ScopeResolver",
]
