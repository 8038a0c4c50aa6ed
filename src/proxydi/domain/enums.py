from enum import Enum, IntFlag


class ResolveScope(IntFlag):
    """Where in the container tree a lookup searches.

    Attributes:
        PARENT: Ancestor containers, nearest first.
        CURRENT: The container the lookup starts from.
        CHILDREN: Every descendant container, depth-first.
        ALL: All of the above.
    """

    PARENT = 1
    CURRENT = 2
    CHILDREN = 4
    ALL = PARENT | CURRENT | CHILDREN


class DuplicateStrategy(str, Enum):
    """Defines what happens when an id that already has a binding is registered again.

    Attributes:
        THROW: Refuse any second registration.
        ALWAYS_REPLACE: The new instance replaces every existing one.
        ALWAYS_ADD: The new instance is appended next to the existing ones.
        REPLACE_IF_SINGLE_ELSE_ADD: Replace a single binding, append to multiple ones.
    """

    THROW = "throw"
    ALWAYS_REPLACE = "always_replace"
    ALWAYS_ADD = "always_add"
    REPLACE_IF_SINGLE_ELSE_ADD = "replace_if_single_else_add"

    def __str__(self) -> str:
        return self.value


class SlotState(str, Enum):
    """Registration state of a binding slot."""

    EMPTY = "empty"
    SINGLE = "single"
    MULTIPLE = "multiple"

    def __str__(self) -> str:
        return self.value
