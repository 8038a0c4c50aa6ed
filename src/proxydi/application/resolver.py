import inspect
from typing import TYPE_CHECKING, Any, Dict, List, Type, get_type_hints

from proxydi.application.lazy_reference import DependencyProxy

if TYPE_CHECKING:
    from proxydi.application.container import Container


class ConstructorResolver:
    """Instantiates classes registered in a container.

    Each required constructor parameter receives a DependencyProxy that resolves
    lazily from the container, so classes depending on each other through their
    constructors can still be registered in any order.
    """

    def instantiate(self, dependency_type: Type, container: "Container") -> Any:
        """Create an instance, passing a lazy proxy for every required parameter.

        Args:
            dependency_type: The class to instantiate.
            container: The container the proxies resolve from.

        Returns:
            The new instance.

        Example:
            >>> class King:
            ...     def __init__(self, queen: Queen):
            ...         self.queen = queen
            >>>
            >>> king = ConstructorResolver().instantiate(King, container)
            >>> king.queen.name  # resolved from container on access
        """
        try:
            signature = inspect.signature(dependency_type)
        except (TypeError, ValueError):
            return dependency_type()

        try:
            type_hints = get_type_hints(dependency_type.__init__)
        except Exception:
            type_hints = {}

        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for param_name, param in signature.parameters.items():
            # Skip *args and **kwargs parameters (VAR_POSITIONAL and VAR_KEYWORD)
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue

            # Skip parameters with defaults (let them use default values)
            if param.default is not inspect.Parameter.empty:
                continue

            annotation = type_hints.get(param_name, param.annotation)
            proxy = DependencyProxy(container, self.parameter_id(param_name, annotation, container))
            if param.kind == inspect.Parameter.POSITIONAL_ONLY:
                args.append(proxy)
            else:
                kwargs[param_name] = proxy

        return dependency_type(*args, **kwargs)

    @staticmethod
    def parameter_id(param_name: str, annotation: Any, container: "Container") -> Any:
        """Dependency id of a parameter: its class annotation, string annotation, or name."""
        if annotation is inspect.Parameter.empty:
            return param_name
        if isinstance(annotation, type):
            return container.catalog.ids_for(annotation)[0]
        if isinstance(annotation, str) and annotation:
            return annotation
        return param_name
