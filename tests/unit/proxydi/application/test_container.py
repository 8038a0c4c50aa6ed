"""Unit tests for Container."""

import logging

import pytest

from proxydi.application.catalog import InjectableCatalog, default_catalog
from proxydi.application.container import Container, resolve_all
from proxydi.application.decorators import inject, injectable, middleware
from proxydi.application.markers import container_of, dependency_ids_of
from proxydi.domain.enums import DuplicateStrategy, ResolveScope
from proxydi.domain.exceptions import (
    ContainerError,
    DuplicateRegistrationError,
    InvalidDependencyClassError,
    InvalidDependencyValueError,
    InvalidScopeError,
    NotRegisteredInContainerError,
    UnknownDependencyError,
)
from proxydi.domain.interfaces import IContainer
from proxydi.domain.models import ContainerSettings, RegisterOptions


class Stage:
    def __init__(self, name="Castle"):
        self.name = name


class Director:
    stage = inject("stage")


class EventLog:
    def __init__(self):
        self.events = []

    def on_register(self, context):
        self.events.append(("register", context.dependency_id, context.container.id))

    def on_remove(self, context):
        self.events.append(("remove", context.dependency_id, context.container.id))


class TestContainerInitialization:
    """Test cases for Container initialization."""

    def test_default_settings(self):
        """Test that a container starts with default settings."""
        container = Container()

        assert container.settings == ContainerSettings()
        assert container.parent is None
        assert container.children == []
        assert isinstance(container, IContainer)

    def test_settings_from_mapping(self):
        """Test that a partial mapping is validated into settings."""
        container = Container({"allow_register_anything": True})

        assert container.settings.allow_register_anything is True
        assert container.settings.allow_rewrite_dependencies is True

    def test_settings_are_copied(self):
        """Test that containers never share a settings object."""
        settings = ContainerSettings()
        container = Container(settings)

        container.settings.allow_register_anything = True

        assert settings.allow_register_anything is False

    def test_ids_increase(self):
        """Test that container ids are unique and increasing."""
        first = Container()
        second = Container()

        assert second.id > first.id

    def test_parent_links_child(self):
        """Test that passing a parent links the new container as its child."""
        parent = Container()
        child = Container(parent=parent)

        assert child.parent is parent
        assert parent.children == [child]

    def test_catalog_defaults(self):
        """Test that catalogs default to the parent's, else the process-wide one."""
        catalog = InjectableCatalog()
        root = Container(catalog=catalog)

        assert Container().catalog is default_catalog
        assert root.create_child_container().catalog is catalog


class TestRegister:
    """Test cases for registering dependencies."""

    def test_register_instance_with_id(self, container):
        """Test that a registered instance resolves by its id."""
        stage = Stage()

        assert container.register(stage, "stage") is stage
        assert container.resolve("stage") is stage

    def test_register_instance_without_id_uses_class_name(self, container):
        """Test that instances default to their class name."""
        stage = container.register(Stage())

        assert container.resolve("Stage") is stage
        assert container.resolve(Stage) is stage

    def test_register_class_instantiates(self, container):
        """Test that registering a class creates the instance."""
        stage = container.register(Stage, "stage")

        assert isinstance(stage, Stage)
        assert stage.name == "Castle"

    def test_list_of_ids_adds_class_name(self, container):
        """Test that a list of ids registers aliases plus the class name."""
        stage = container.register(Stage(), ["stage", "venue"])

        assert container.resolve("stage") is stage
        assert container.resolve("venue") is stage
        assert container.resolve("Stage") is stage
        assert dependency_ids_of(stage) == ["stage", "venue", "Stage"]

    def test_class_as_id(self, container):
        """Test that a class id stands for the class's ids."""

        @injectable("venue")
        class Venue:
            pass

        stage = container.register(Stage(), Venue)

        assert container.resolve("venue") is stage
        assert container.resolve("Venue") is stage

    def test_instance_is_tagged(self, container):
        """Test that registration tags the instance with its container."""
        stage = container.register(Stage(), "stage")

        assert container_of(stage) is container
        assert dependency_ids_of(stage) == ["stage"]

    def test_plain_value_rejected_by_default(self, container):
        """Test that literals are refused unless allowed."""
        with pytest.raises(InvalidDependencyValueError):
            container.register("postgres://", "dsn")

        assert not container.is_known("dsn")

    def test_plain_value_allowed_with_setting(self, permissive_container):
        """Test that literals are accepted when allow_register_anything is on."""
        permissive_container.register("postgres://", "dsn")
        permissive_container.register(None, "nothing")

        assert permissive_container.resolve("dsn") == "postgres://"
        assert permissive_container.resolve("nothing") is None

    def test_plain_value_requires_id(self, permissive_container):
        """Test that literals without an id cannot be registered."""
        with pytest.raises(InvalidDependencyValueError, match="dependency_id is required"):
            permissive_container.register(42)

    def test_anonymous_object_requires_id(self, container):
        """Test that dicts and bare objects without an id cannot be registered."""
        with pytest.raises(InvalidDependencyValueError):
            container.register({"debug": True})

        container.register({"debug": True}, "config")

        assert container.resolve("config") == {"debug": True}

    def test_options_as_mapping(self, container):
        """Test that options may be given as a mapping."""
        first = container.register(Stage(), {"dependency_id": "stage", "duplicate_strategy": "always_add"})
        second = container.register(Stage(), {"dependency_id": "stage", "duplicate_strategy": "always_add"})

        assert container.resolve_all("stage", ResolveScope.CURRENT) == [first, second]

    def test_on_containerized_called_after_tagging(self, container):
        """Test that the lifecycle hook runs once with the owning container."""

        class Service:
            def __init__(self):
                self.calls = []

            def on_containerized(self, owner):
                self.calls.append((owner, container_of(self)))

        service = container.register(Service())

        assert service.calls == [(container, container)]

    def test_on_register_fired_per_id(self, container):
        """Test that middleware sees one register event per id."""
        log = EventLog()
        container.register_middleware(log)

        container.register(Stage(), ["stage", "venue"])

        assert log.events == [
            ("register", "stage", container.id),
            ("register", "venue", container.id),
            ("register", "Stage", container.id),
        ]

    def test_failed_registration_leaves_no_mutation(self, container):
        """Test that a rejected registration does not touch any slot."""
        throw = DuplicateStrategy.THROW
        existing = container.register(Stage(), RegisterOptions(dependency_id="stage", duplicate_strategy=throw))
        newcomer = Stage("Forest")

        with pytest.raises(DuplicateRegistrationError):
            container.register(newcomer, RegisterOptions(dependency_id=["venue", "stage"], duplicate_strategy=throw))

        assert not container.is_known("venue")
        assert container.resolve("stage") is existing
        assert container_of(newcomer) is None

    def test_replaced_instance_is_detached(self, container):
        """Test that an instance displaced from its only slot is untagged."""
        old = container.register(Director(), "director")
        container.register(Director(), "director")

        assert container_of(old) is None
        assert "stage" not in vars(old)

    def test_replaced_alias_keeps_other_bindings(self, container):
        """Test that an instance displaced from one alias stays bound to the others."""
        stage = container.register(Stage(), ["stage", "venue"])
        container.register(Stage("Forest"), "venue")

        assert container_of(stage) is container
        assert dependency_ids_of(stage) == ["stage", "Stage"]
        assert container.resolve("stage") is stage

    def test_catalog_middleware_is_added(self, container):
        """Test that instances of middleware classes join the pipeline."""

        @middleware
        class Audit:
            def __init__(self):
                self.seen = []

            def on_register(self, context):
                self.seen.append(context.dependency_id)

        audit = container.register(Audit())
        container.register(Stage(), "stage")

        assert audit.seen == ["Audit", "stage"]

    def test_register_logs(self, container, caplog):
        """Test that registrations are logged at debug level."""
        with caplog.at_level(logging.DEBUG, logger="proxydi.application.container"):
            container.register(Stage(), "stage")

        assert any("Registered Stage" in record.getMessage() for record in caplog.records)


class TestDuplicatePolicy:
    """Test cases for the duplicate registration policy."""

    def test_default_policy_keeps_latest(self, container):
        """Test that three default registrations leave only the third."""
        container.register(Stage("a"), "stage")
        container.register(Stage("b"), "stage")
        third = container.register(Stage("c"), "stage")

        assert container.resolve_all("stage", ResolveScope.CURRENT) == [third]

    def test_always_add_keeps_every_instance(self, container):
        """Test that ALWAYS_ADD keeps every registration."""
        options = RegisterOptions(dependency_id="stage", duplicate_strategy=DuplicateStrategy.ALWAYS_ADD)
        stages = [container.register(Stage(name), options) for name in "abc"]

        assert container.resolve_all("stage", ResolveScope.CURRENT) == stages

    def test_scalar_resolve_on_multiple_returns_latest(self, container):
        """Test that a multiple binding resolves to its latest member."""
        options = RegisterOptions(dependency_id="stage", duplicate_strategy=DuplicateStrategy.ALWAYS_ADD)
        container.register(Stage("a"), options)
        latest = container.register(Stage("b"), options)

        assert container.resolve("stage") is latest

    def test_throw(self, container):
        """Test that THROW refuses a second registration."""
        options = RegisterOptions(dependency_id="stage", duplicate_strategy=DuplicateStrategy.THROW)
        container.register(Stage(), options)

        with pytest.raises(DuplicateRegistrationError):
            container.register(Stage(), options)

    def test_rewrite_disabled(self):
        """Test that rebinding fails when rewrites are disallowed."""
        container = Container({"allow_rewrite_dependencies": False})
        stage = container.register(Stage(), "stage")

        with pytest.raises(DuplicateRegistrationError):
            container.register(Stage(), "stage")

        assert container.register(stage, "stage") is stage


class TestLookup:
    """Test cases for is_known, has_own and resolve."""

    def test_is_known_and_has_own(self):
        """Test the difference between scoped and own lookups."""
        parent = Container()
        child = parent.create_child_container()
        parent.register(Stage(), "stage")

        assert child.is_known("stage")
        assert not child.has_own("stage")
        assert parent.has_own("stage")
        assert not child.is_known("stage", ResolveScope.CURRENT)

    def test_resolve_unknown_raises(self, container):
        """Test that resolving an unknown id raises UnknownDependencyError."""
        with pytest.raises(UnknownDependencyError, match="missing"):
            container.resolve("missing")

    def test_resolve_unknown_class_raises(self, container):
        """Test that resolving an unregistered class reports its name."""

        class Missing:
            pass

        with pytest.raises(UnknownDependencyError, match="Missing"):
            container.resolve(Missing)

    def test_resolve_scope_current(self):
        """Test that CURRENT ignores ancestors."""
        parent = Container()
        child = parent.create_child_container()
        parent.register(Stage(), "stage")

        with pytest.raises(UnknownDependencyError):
            child.resolve("stage", ResolveScope.CURRENT)

    def test_resolve_scope_children(self):
        """Test that CHILDREN finds descendants' bindings."""
        parent = Container()
        child = parent.create_child_container()
        stage = child.register(Stage(), "stage")

        assert parent.resolve("stage", ResolveScope.CHILDREN) is stage
        assert not parent.is_known("stage")

    @pytest.mark.parametrize("method", ["resolve", "resolve_all", "is_known"])
    def test_zero_scope_raises(self, container, method):
        """Test that an empty scope is rejected."""
        container.register(Stage(), "stage")

        with pytest.raises(InvalidScopeError):
            getattr(container, method)("stage", ResolveScope(0))

    def test_injectable_is_known_and_auto_registered(self, container):
        """Test that catalog classes are created once, on first resolution."""

        @injectable("mailer")
        class Mailer:
            pass

        assert container.is_known("mailer")
        assert not container.has_own("mailer")
        assert not container.is_known("mailer", ResolveScope.CHILDREN)

        mailer = container.resolve("mailer")

        assert isinstance(mailer, Mailer)
        assert container.has_own("mailer")
        assert container.resolve(Mailer) is mailer

    def test_resolve_middleware_can_replace_dependency(self, container):
        """Test that resolve middleware results are returned."""

        class Replace:
            def on_resolve(self, context):
                return context.model_copy(update={"dependency": Stage("Replaced")})

        container.register(Stage(), "stage")
        container.register_middleware(Replace())

        assert container.resolve("stage").name == "Replaced"


class TestResolveAll:
    """Test cases for collecting dependencies."""

    def test_resolve_all_of_children(self):
        """Test that two children's registrations are returned in child order."""
        root = Container()
        first_child = root.create_child_container()
        second_child = root.create_child_container()
        first = first_child.register(Stage(), "plugin")
        second = second_child.register(Stage(), "plugin")

        assert root.resolve_all("plugin") == [first, second]

    def test_resolve_all_empty(self, container):
        """Test that nothing found returns an empty list."""
        assert container.resolve_all("plugin") == []

    def test_resolve_all_non_injectable_class_raises(self, container):
        """Test that collecting by a plain class is an error."""
        with pytest.raises(InvalidDependencyClassError):
            container.resolve_all(Stage)

    def test_resolve_all_by_injectable_class(self):
        """Test that collecting by class gathers every id of the class."""

        @injectable("plugin")
        class Plugin:
            pass

        root = Container()
        child = root.create_child_container()
        by_id = child.register(Plugin(), "plugin")
        by_name = child.register(Plugin(), "Plugin")

        assert root.resolve_all(Plugin) == [by_id, by_name]

    def test_resolve_all_auto_registers_in_current_scope(self, container):
        """Test that a catalog class is registered when nothing is found in CURRENT scope."""

        @injectable("plugin")
        class Plugin:
            pass

        found = container.resolve_all("plugin", ResolveScope.CURRENT)

        assert len(found) == 1
        assert isinstance(found[0], Plugin)
        assert container.has_own("plugin")

    def test_module_resolve_all(self, container):
        """Test resolving from the container an instance belongs to."""
        director = container.register(Director())
        child = container.create_child_container()
        stage = child.register(Stage(), "stage")

        assert resolve_all(director, "stage") == [stage]

    def test_module_resolve_all_unregistered(self):
        """Test that unregistered instances have no container to resolve from."""
        with pytest.raises(NotRegisteredInContainerError):
            resolve_all(Director(), "stage")


class TestRemove:
    """Test cases for removing dependencies."""

    def test_remove_by_id(self, container):
        """Test that removing an id forgets it."""
        stage = container.register(Stage(), "stage")
        container.remove("stage")

        assert not container.is_known("stage")
        assert container_of(stage) is None

    def test_remove_by_instance_removes_every_alias(self, container):
        """Test that removing an instance unbinds all of its ids."""
        stage = container.register(Stage(), ["stage", "venue"])
        container.remove(stage)

        assert not container.is_known("stage")
        assert not container.is_known("venue")
        assert not container.is_known("Stage")

    def test_remove_by_class(self, container):
        """Test that a class argument stands for its ids."""
        container.register(Stage())
        container.remove(Stage)

        assert not container.is_known(Stage)

    def test_remove_unknown_is_noop(self, container):
        """Test that removing something unknown does nothing."""
        container.remove("missing")
        container.remove(Stage())

    def test_remove_clears_injections(self, container):
        """Test that a removed instance loses its lazy cells."""
        director = container.register(Director())
        container.register(Stage(), "stage")
        container.remove(director)

        with pytest.raises(UnknownDependencyError):
            director.stage

    def test_remove_fires_event_per_id(self, container):
        """Test that middleware sees one remove event per id."""
        log = EventLog()
        stage = container.register(Stage(), ["stage", "venue"])
        container.register_middleware(log)

        container.remove(stage)

        assert log.events == [
            ("remove", "stage", container.id),
            ("remove", "venue", container.id),
            ("remove", "Stage", container.id),
        ]

    def test_removed_catalog_middleware_stops_listening(self, container):
        """Test that unbinding a middleware instance removes it from the pipeline."""

        @middleware
        class Audit:
            def __init__(self):
                self.seen = []

            def on_register(self, context):
                self.seen.append(context.dependency_id)

        audit = container.register(Audit())
        container.remove(audit)
        container.register(Stage(), "stage")

        assert audit.seen == ["Audit"]

    def test_middleware_under_several_ids_stops_listening(self, container):
        """Test that a middleware registered twice is unsubscribed by one removal."""

        @middleware
        class Audit:
            def __init__(self):
                self.seen = []

            def on_register(self, context):
                self.seen.append(context.dependency_id)

        audit = Audit()
        container.register(audit, "audit")
        container.register(audit, "audit_alias")
        container.remove(audit)
        container.register(Stage(), "stage")

        assert audit.seen == ["audit", "audit_alias"]

    def test_displacing_instance_owned_elsewhere_keeps_its_injections(self):
        """Test that a container releasing an instance does not clear another owner's cells."""
        first = Container()
        second = Container()
        stage = second.register(Stage("Globe"), "stage")
        director = first.register(Director(), "director")
        second.register(director, "director")

        first.register(Director(), "director")

        assert container_of(director) is second
        assert director.stage is stage

    def test_remove_middleware(self, container):
        """Test that explicitly removed middleware stops listening."""
        log = EventLog()
        container.register_middleware(log)
        container.remove_middleware(log)

        container.register(Stage(), "stage")

        assert log.events == []


class TestInjection:
    """Test cases for wiring injections."""

    def test_inject_dependencies_to_does_not_register(self, container):
        """Test that an owner can be wired without being registered."""
        stage = container.register(Stage(), "stage")
        director = Director()

        container.inject_dependencies_to(director)

        assert director.stage is stage
        assert not container.is_known("Director")

    def test_register_injectables(self, container):
        """Test that every catalog class is instantiated."""

        @injectable("mailer")
        class Mailer:
            pass

        @injectable
        class Queue:
            pass

        assert container.register_injectables() is container
        assert container.has_own("mailer")
        assert container.has_own("Queue")

    def test_bake_injections(self):
        """Test that baking freezes single injections across the subtree."""
        root = Container()
        child = root.create_child_container()
        stage = root.register(Stage(), "stage")
        director = child.register(Director())

        root.bake_injections()

        assert root.settings.allow_rewrite_dependencies is False
        assert child.settings.allow_rewrite_dependencies is False
        assert vars(director)["stage"] is stage

        with pytest.raises(DuplicateRegistrationError):
            root.register(Stage(), "stage")

    def test_bake_injections_with_unknown_dependency_raises(self, container):
        """Test that baking fails when a single injection cannot be resolved."""
        container.register(Director())

        with pytest.raises(UnknownDependencyError):
            container.bake_injections()


class TestTree:
    """Test cases for the container tree."""

    def test_create_child_container_copies_settings(self):
        """Test that children start with a copy of the parent's settings."""
        parent = Container({"allow_register_anything": True})
        child = parent.create_child_container()

        assert child.settings.allow_register_anything is True
        assert child.settings is not parent.settings
        assert child.parent is parent

    def test_children_in_creation_order(self, container):
        """Test that children are listed in creation order."""
        first = container.create_child_container()
        second = container.create_child_container()

        assert container.children == [first, second]

    def test_get_child(self, container):
        """Test lookup of a direct child by id."""
        child = container.create_child_container()

        assert container.get_child(child.id) is child

        with pytest.raises(ContainerError):
            container.get_child(-1)

    def test_duplicate_child_link_raises(self, container):
        """Test that a child cannot be linked twice."""
        child = container.create_child_container()

        with pytest.raises(ContainerError):
            container._add_child(child)

    def test_destroy(self):
        """Test that destroying removes dependencies, children and the parent link."""
        root = Container()
        child = root.create_child_container()
        grandchild = child.create_child_container()
        stage = child.register(Stage(), "stage")
        log = EventLog()
        root.register_middleware(log)

        child.destroy()

        assert root.children == []
        assert child.parent is None
        assert grandchild.parent is None
        assert child.children == []
        assert container_of(stage) is None
        assert log.events == [("remove", "stage", child.id)]

    def test_destroy_twice_is_safe(self, container):
        """Test that destroying a detached container is a no-op."""
        child = container.create_child_container()

        child.destroy()
        child.destroy()

    def test_destroyed_child_no_longer_reports_to_parent(self):
        """Test that a destroyed child's events do not reach the former parent."""
        root = Container()
        child = root.create_child_container()
        log = EventLog()
        root.register_middleware(log)

        child.destroy()
        child.register(Stage(), "stage")

        assert log.events == []
