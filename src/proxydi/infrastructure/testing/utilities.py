from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Tuple

from proxydi.application import Container, InjectableCatalog, default_catalog
from proxydi.domain import ContainerSettings, DuplicateStrategy, RegisterOptions


class TestContainer(Container):
    """DI container for testing with dependency override capabilities.

    Created as a child of an application container, it resolves everything the
    application container knows but shadows selected ids with test doubles.
    Overrides live only in the test container, so the application container is
    left untouched and cleanup is a matter of destroying the test container.

    This is useful for:
    - Mocking external services (databases, APIs, etc.)
    - Replacing implementations with test doubles
    - Isolating tests from shared state

    Attributes:
        _overrides: Overriding instances by the id they shadow.

    Example:
        >>> # Production container
        >>> container = Container()
        >>> container.register(RealEmailService(), "email_service")
        >>>
        >>> # Test container with mocks
        >>> def test_user_service():
        ...     with TestContainer(container) as test_container:
        ...         mock_email = MockEmailService()
        ...         test_container.mock_dependency("email_service", mock_email)
        ...
        ...         # UserService registered here will get the mocked EmailService
        ...         service = test_container.register(UserService)
        ...         service.send_welcome_email(user)
        ...
        ...         assert mock_email.send_called
    """

    __test__ = False  # Tell pytest not to collect this class as a test

    def __init__(
        self,
        parent_container: Optional[Container] = None,
        settings: Optional[ContainerSettings] = None,
    ) -> None:
        """Initialize the test container.

        Args:
            parent_container: Optional container to inherit dependencies from.
                            If None, creates a standalone root container.
            settings: Optional settings. Defaults to a copy of the parent's settings.
        """
        if settings is None and parent_container is not None:
            settings = parent_container.settings
        super().__init__(settings=settings, parent=parent_container)
        self._overrides: Dict[Any, Any] = {}

    def mock_dependency(self, dependency_id: Any, mock_instance: Any) -> Any:
        """Shadow a dependency with a mock instance.

        Lookups starting from this container (or its children) get the mock;
        the parent container keeps its own binding.

        Args:
            dependency_id: Id or class to shadow.
            mock_instance: The mock instance to return.

        Returns:
            The registered mock.

        Example:
            >>> test_container = TestContainer(container)
            >>> mock_db = MockDatabase()
            >>> test_container.mock_dependency("database", mock_db)
            >>>
            >>> assert test_container.resolve("database") is mock_db
        """
        return self.override_registration(dependency_id, mock_instance)

    def override_registration(
        self,
        dependency_id: Any,
        dependency: Any,
        duplicate_strategy: DuplicateStrategy = DuplicateStrategy.ALWAYS_REPLACE,
    ) -> Any:
        """Override a dependency with an instance or a class instantiated in this container.

        An earlier override of the same id is removed first.

        Args:
            dependency_id: Id or class to override.
            dependency: Instance, or class to instantiate.
            duplicate_strategy: Policy for this container's slot.

        Returns:
            The registered instance.

        Example:
            >>> test_container = TestContainer(container)
            >>> test_container.override_registration(CacheService, InMemoryCacheService)
        """
        if self.has_own(dependency_id):
            self.remove(dependency_id)

        instance = self.register(
            dependency,
            RegisterOptions(dependency_id=dependency_id, duplicate_strategy=duplicate_strategy),
        )
        self._overrides[dependency_id] = instance
        return instance

    @property
    def overrides(self) -> Dict[Any, Any]:
        return dict(self._overrides)

    def reset_overrides(self) -> None:
        """Remove all overrides, restoring what the parent container resolves.

        Useful for cleaning up between test cases.
        """
        for dependency_id in list(self._overrides):
            self.remove(dependency_id)
        self._overrides.clear()

    def __enter__(self) -> "TestContainer":
        """Context manager entry - returns self."""
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        """Context manager exit - automatically clean up overrides."""
        self.reset_overrides()
        self.destroy()
        return False


def create_mock_container(*mocks: Tuple[Any, Any], parent_container: Optional[Container] = None) -> TestContainer:
    """Create a test container with pre-configured mock dependencies.

    Convenience function for quickly setting up a test container with
    multiple mocked dependencies.

    Args:
        *mocks: Tuples of (dependency_id, mock_instance).
        parent_container: Optional container the test container is a child of.

    Returns:
        TestContainer with mocked dependencies.

    Example:
        >>> mock_db = MockDatabase()
        >>> mock_cache = MockCache()
        >>>
        >>> test_container = create_mock_container(
        ...     ("database", mock_db),
        ...     (CacheService, mock_cache),
        ... )
        >>>
        >>> service = test_container.register(UserService)
        >>> # Service will have mocked dependencies
    """
    container = TestContainer(parent_container)

    for dependency_id, mock_instance in mocks:
        container.mock_dependency(dependency_id, mock_instance)

    return container


class MockScope:
    """Context manager for scoped testing with automatic cleanup.

    Provides a child container for registering request-like dependencies,
    destroyed when the block exits.

    Example:
        >>> container = Container()
        >>> container.register(DatabaseConnection())
        >>>
        >>> with MockScope(container) as scoped:
        ...     ctx = scoped.register(RequestContext())
        ...     service = scoped.register(RequestService)
        ...
        ...     # Dependencies of the scope see each other and the parent's
        ...     assert service.context is ctx
        ...
        ... # Scoped dependencies automatically removed here
    """

    def __init__(self, parent_container: Container) -> None:
        """Initialize the mock scope.

        Args:
            parent_container: The parent container to create the scope from.
        """
        self._parent_container = parent_container
        self._scoped_container: Optional[Container] = None

    def __enter__(self) -> Container:
        """Enter the scoped context and create a child container.

        Returns:
            The child container.
        """
        self._scoped_container = self._parent_container.create_child_container()
        return self._scoped_container

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        """Exit the scoped context and destroy the child container."""
        if self._scoped_container:
            self._scoped_container.destroy()
            self._scoped_container = None
        return False


@contextmanager
def isolated_catalog(catalog: InjectableCatalog = default_catalog) -> Iterator[InjectableCatalog]:
    """Run a block with an empty catalog, restoring the previous declarations afterwards.

    Example:
        >>> with isolated_catalog():
        ...     @injectable("mailer")
        ...     class FakeMailer:
        ...         pass
        ...
        ...     assert Container().resolve("mailer")
        >>> # "mailer" is no longer declared here
    """
    saved = catalog.snapshot()
    catalog.clear()
    try:
        yield catalog
    finally:
        catalog.restore(saved)
