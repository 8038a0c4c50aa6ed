from typing import Any, Awaitable, Callable

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from proxydi.domain import IContainer


def create_fastapi_dependency(container: IContainer, dependency_id: Any) -> Callable[[], Any]:
    """Create a FastAPI Depends() callable that resolves from the DI container.

    The dependency is resolved on every call, so rebinding the id in the
    container is observed by later requests.

    Args:
        container: The DI container to resolve dependencies from.
        dependency_id: Id or class to resolve when the dependency is called.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> container = Container()
        >>> container.register(UserRepository)
        >>>
        >>> get_user_repo = create_fastapi_dependency(container, UserRepository)
        >>>
        >>> @app.get("/users")
        >>> async def list_users(repo: UserRepository = Depends(get_user_repo)):
        ...     return await repo.get_all()
    """

    def dependency() -> Any:
        """Resolve the dependency from the container."""
        return container.resolve(dependency_id)

    return dependency


def create_scoped_dependency(dependency_id: Any) -> Callable[[Request], Any]:
    """Create a FastAPI dependency that resolves from the request's child container.

    Lookups start in the request container and fall back to its ancestors, so
    request-level registrations shadow application-level ones.

    Requires the ScopedContainerMiddleware to be installed.

    Args:
        dependency_id: Id or class to resolve from the request container.

    Returns:
        A callable that resolves from the request container.

    Example:
        >>> app.add_middleware(ScopedContainerMiddleware, container=container)
        >>>
        >>> get_request_context = create_scoped_dependency(RequestContext)
        >>>
        >>> @app.get("/process")
        >>> async def process_request(ctx: RequestContext = Depends(get_request_context)):
        ...     return {"request_id": ctx.request_id}
    """

    def scoped_dependency(request: Request) -> Any:
        """Resolve from the request's child container."""
        if not hasattr(request.state, "di_container"):
            raise RuntimeError(
                "Request does not have a scoped DI container. Did you forget to add ScopedContainerMiddleware?"
            )
        scoped_container: IContainer = request.state.di_container
        return scoped_container.resolve(dependency_id)

    return scoped_dependency


class ScopedContainerMiddleware(BaseHTTPMiddleware):
    """Middleware that creates a child DI container for each request.

    The child container is accessible via `request.state.di_container` and is
    destroyed once the response is produced, removing everything registered in it.

    Attributes:
        container: The application container request containers are created from.

    Example:
        >>> container = Container()
        >>> container.register(DatabaseConnection())
        >>>
        >>> app = FastAPI()
        >>> app.add_middleware(ScopedContainerMiddleware, container=container)
        >>>
        >>> @app.get("/")
        >>> async def root(request: Request):
        ...     request.state.di_container.register(RequestContext(), "request_context")
        ...     return {"message": "Hello"}
    """

    def __init__(self, app: FastAPI, container: IContainer):
        """Initialize the middleware with the application container.

        Args:
            app: The FastAPI/Starlette application.
            container: The container request containers are created from.
        """
        super().__init__(app)
        self.container = container

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Create a child container for the request and execute the endpoint.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or endpoint handler.

        Returns:
            The response from the endpoint.
        """
        request_container = self.container.create_child_container()
        request.state.di_container = request_container

        try:
            response = await call_next(request)
            return response
        finally:
            request_container.destroy()
