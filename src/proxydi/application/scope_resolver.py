"""Application layer - Scope search across the container tree."""

from typing import TYPE_CHECKING, Any, Iterable, List, Optional

from proxydi.domain import BindingSlot, InvalidScopeError, ResolveScope

if TYPE_CHECKING:
    from proxydi.application.container import Container

_SUBTREE = ResolveScope.CURRENT | ResolveScope.CHILDREN


class ScopeResolver:
    """Finds bindings for a dependency id around a starting container.

    Search order is fixed: the container itself, then its ancestors nearest
    first, then its descendants depth-first in child creation order.
    """

    @staticmethod
    def validate(scope: int) -> ResolveScope:
        """Turn flags into a ResolveScope.

        Raises:
            InvalidScopeError: If no flag is set.
        """
        if not int(scope) & int(ResolveScope.ALL):
            raise InvalidScopeError(scope)
        return ResolveScope(int(scope) & int(ResolveScope.ALL))

    def find_slot(self, container: "Container", dependency_id: Any, scope: int) -> Optional[BindingSlot]:
        """Find the first non-empty slot for the id within the scope.

        Args:
            container: Container the search starts from.
            dependency_id: The id to look for.
            scope: ResolveScope flags.

        Returns:
            The matching slot, or None if nothing in scope binds the id.
        """
        scope = self.validate(scope)

        if scope & ResolveScope.CURRENT:
            slot = container.get_own_slot(dependency_id)
            if slot is not None:
                return slot

        if scope & ResolveScope.PARENT:
            slot = self._nearest_ancestor_slot(container, dependency_id)
            if slot is not None:
                return slot

        if scope & ResolveScope.CHILDREN:
            for child in container.children:
                slot = self.find_slot(child, dependency_id, _SUBTREE)
                if slot is not None:
                    return slot

        return None

    def collect(self, container: "Container", dependency_id: Any, scope: int) -> List[Any]:
        """Collect every instance bound to the id within the scope.

        The nearest ancestor binding the id contributes its instances once; every
        container of the subtree contributes when CHILDREN is requested.

        Returns:
            Distinct instances in first-seen order.
        """
        scope = self.validate(scope)
        found: List[Any] = []

        if scope & ResolveScope.CURRENT:
            slot = container.get_own_slot(dependency_id)
            if slot is not None:
                found.extend(slot.instances)

        if scope & ResolveScope.PARENT:
            slot = self._nearest_ancestor_slot(container, dependency_id)
            if slot is not None:
                found.extend(slot.instances)

        if scope & ResolveScope.CHILDREN:
            for child in container.children:
                found.extend(self.collect(child, dependency_id, _SUBTREE))

        return dedupe(found)

    @staticmethod
    def _nearest_ancestor_slot(container: "Container", dependency_id: Any) -> Optional[BindingSlot]:
        ancestor = container.parent
        while ancestor is not None:
            slot = ancestor.get_own_slot(dependency_id)
            if slot is not None:
                return slot
            ancestor = ancestor.parent
        return None


def dedupe(items: Iterable[Any]) -> List[Any]:
    """Drop repeated objects by identity, preserving first-seen order."""
    unique: List[Any] = []
    seen = set()
    for item in items:
        if id(item) not in seen:
            seen.add(id(item))
            unique.append(item)
    return unique
