"""Application layer - Middleware event pipeline."""

from typing import Any, Callable, Dict, List, Optional

from proxydi.domain import MiddlewareContext

_EVENT_METHODS = {
    "register": "on_register",
    "remove": "on_remove",
    "resolve": "on_resolve",
}


class MiddlewareManager:
    """Ordered listeners for register, remove and resolve events of one container.

    Events are delivered to the local listeners first and then to the parent
    container's manager, so middleware registered high in the tree observes the
    whole subtree.

    Attributes:
        parent: Manager of the parent container, if any.
        _handlers: Listeners per event, in the order they were added.
    """

    def __init__(self, parent: Optional["MiddlewareManager"] = None) -> None:
        self.parent = parent
        self._handlers: Dict[str, List[Callable[[MiddlewareContext], Any]]] = {
            event: [] for event in _EVENT_METHODS
        }

    def add(self, middleware: Any) -> None:
        """Subscribe every ``on_register``/``on_remove``/``on_resolve`` method the middleware has.

        Adding a middleware that is already subscribed does nothing.
        """
        for event, method_name in _EVENT_METHODS.items():
            handler = getattr(middleware, method_name, None)
            if callable(handler) and handler not in self._handlers[event]:
                self._handlers[event].append(handler)

    def remove(self, middleware: Any) -> None:
        for event, method_name in _EVENT_METHODS.items():
            handler = getattr(middleware, method_name, None)
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

    def handlers(self, event: str) -> List[Callable[[MiddlewareContext], Any]]:
        return list(self._handlers[event])

    def on_register(self, context: MiddlewareContext) -> None:
        for handler in self.handlers("register"):
            handler(context)
        if self.parent is not None:
            self.parent.on_register(context)

    def on_remove(self, context: MiddlewareContext) -> None:
        for handler in self.handlers("remove"):
            handler(context)
        if self.parent is not None:
            self.parent.on_remove(context)

    def on_resolve(self, context: MiddlewareContext) -> MiddlewareContext:
        """Run the resolve chain; each listener sees the previous listener's result.

        A listener returning None leaves the context unchanged.
        """
        result = context
        for handler in self.handlers("resolve"):
            replaced = handler(result)
            if replaced is not None:
                result = replaced
        if self.parent is not None:
            result = self.parent.on_resolve(result)
        return result
