"""Tree model of tests and groups.

A tree is declared by calling the methods of a `Group` from plain Python
functions: `group()` creates a nested group and immediately calls the given
block with it, `test()` registers a test body for later, and the hook
methods register callables around tests and groups. Nothing registered
here is invoked by this module; bodies and hooks only run when the engine
walks the tree.

Example:
    def calculator(root: Group) -> None:
        calc = Late[Calculator]('calc')
        root.before_each(lambda: calc.set(Calculator()))

        @root.test('adds two numbers')
        def _() -> None:
            assert calc.value.plus(1, 2) == 3

        def negative(group: Group) -> None:
            group.test('subtracts', lambda: ...)

        root.group('negative numbers', negative)

    tree = build_tree('Calculator', calculator)

A tree is built in a single synchronous pass and then locked. Any attempt
to change a locked tree, for example calling `test()` from within a test
body, fails with `NotConstructingError`.
"""

from collections.abc import Callable, Iterator
from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar, overload

from pytest_dyna.errors import DuplicateNameError, DynaError, NotConstructingError
from pytest_dyna.locations import SourceLocation
from pytest_dyna.names import GROUP_KIND, TEST_KIND, NodeKind, validate_name

if TYPE_CHECKING:
    from pytest_dyna.outcomes import Outcome

#: Body of a test.
type TestBody = Callable[[], object]

#: Block building the contents of a group.
type GroupBlock = Callable[['Group'], object]

#: Hook running before a test or a group.
type BeforeHook = Callable[[], object]

#: Hook running after a test or a group; receives the outcome so far.
type AfterHook = Callable[['Outcome'], object]


class Phase(StrEnum):
    """Lifecycle phase of a group."""

    #: The tree is being built; groups may be mutated.
    CONSTRUCTING = 'constructing'
    #: The tree is complete; groups may only be executed.
    LOCKED = 'locked'


class Node:
    """Common part of tests and groups."""

    kind: ClassVar[NodeKind]

    def __init__(self, name: str, *,
                 parent: 'Group | None' = None,
                 enabled: bool = True,
                 location: SourceLocation | None = None) -> None:
        """Initialize a node.

        Args:
            name: Node name, unique among siblings.
            parent: Owning group; `None` for a root.
            enabled: Declared enabled flag; combined with the parent's.
            location: Where the node was declared.
        """
        self.name = name
        self.parent = parent
        self.location = location

        self.enabled = enabled and (parent is None or parent.enabled)

    def __repr__(self) -> str:
        """Debug representation."""
        state = '' if self.enabled else ', disabled'
        return f'{self.__class__.__name__}({self.name!r}{state})'

    @property
    def path(self) -> tuple['Node', ...]:
        """Nodes from the tree root down to this node, inclusive."""
        nodes: list[Node] = []
        node: Node | None = self
        while node is not None:
            nodes.append(node)
            node = node.parent

        return tuple(reversed(nodes))

    @property
    def names(self) -> tuple[str, ...]:
        """Names of the nodes from the tree root down to this node."""
        return tuple(node.name for node in self.path)

    @property
    def ancestors(self) -> tuple['Group', ...]:
        """Groups from the tree root down to the parent of this node."""
        return self.path[:-1]  # type: ignore[return-value]


class Test(Node):
    """A named leaf node with a single body callable."""

    __test__ = False

    kind = TEST_KIND

    def __init__(self, name: str, body: TestBody, **kwargs: object) -> None:
        """Initialize a test.

        Args:
            name: Test name.
            body: Callable run when the test is executed.
            **kwargs: Keyword `Node` arguments.
        """
        super().__init__(name, **kwargs)  # type: ignore[arg-type]

        self.body = body


class Group(Node):
    """A named scope holding tests, nested groups, and lifecycle hooks.

    Hooks registered on a group:
        - `before_group` / `after_group` run once around everything
          nested in the group, and only if the group is enabled;
        - `before_each` / `after_each` run around every test nested in
          the group or any of its subgroups.
    """

    kind = GROUP_KIND

    def __init__(self, name: str, **kwargs: object) -> None:
        """Initialize an empty group in the construction phase.

        Args:
            name: Group name.
            **kwargs: Keyword `Node` arguments.
        """
        super().__init__(name, **kwargs)  # type: ignore[arg-type]

        self.phase = Phase.CONSTRUCTING

        self.children: list[Node] = []

        self.before_groups: list[BeforeHook] = []
        self.after_groups: list[AfterHook] = []
        self.before_eaches: list[BeforeHook] = []
        self.after_eaches: list[AfterHook] = []

    @property
    def is_locked(self) -> bool:
        """True once the tree has been locked."""
        return self.phase is Phase.LOCKED

    @overload
    def test(self, name: str, body: None = None, *,
             enabled: bool = True) -> Callable[[TestBody], TestBody]:
        ...  # pragma: no cover

    @overload
    def test(self, name: str, body: TestBody, *,
             enabled: bool = True) -> Test:
        ...  # pragma: no cover

    def test(self, name: str, body: TestBody | None = None, *,
             enabled: bool = True) -> Test | Callable[[TestBody], TestBody]:
        """Register a test in this group.

        The body does not run now; it runs when the tree is executed.
        Without a body, returns a decorator registering the decorated
        function as the body.

        Args:
            name: Test name, unique within this group.
            body: Test implementation.
            enabled: If False, the test is reported as skipped.

        Returns:
            The created test, or a decorator.

        Raises:
            ConstructionError: If the name is invalid or already taken,
                or if the tree is already locked.
        """
        if body is None:
            def decorator(function: TestBody) -> TestBody:
                self._add_test(name, function, enabled=enabled)
                return function

            return decorator

        return self._add_test(name, body, enabled=enabled)

    def xtest(self, name: str, body: TestBody | None = None) -> Test | Callable[[TestBody], TestBody]:
        """Register a disabled test; see `test`."""
        return self.test(name, body, enabled=False)

    @overload
    def group(self, name: str, block: None = None, *,
              enabled: bool = True) -> Callable[[GroupBlock], GroupBlock]:
        ...  # pragma: no cover

    @overload
    def group(self, name: str, block: GroupBlock, *,
              enabled: bool = True) -> 'Group':
        ...  # pragma: no cover

    def group(self, name: str, block: GroupBlock | None = None, *,
              enabled: bool = True) -> 'Group | Callable[[GroupBlock], GroupBlock]':
        """Create a nested group and build it with the given block.

        The block runs immediately and receives the new group, so nested
        groups are built synchronously and depth-first. The group is
        linked into this one only after its block has completed.
        Without a block, returns a decorator applying the decorated
        function as the block.

        Args:
            name: Group name, unique within this group.
            block: Callable building the contents of the new group.
            enabled: If False, the group and everything nested in it
                are reported as skipped.

        Returns:
            The created group, or a decorator.

        Raises:
            ConstructionError: If the name is invalid or already taken,
                or if the tree is already locked.
        """
        if block is None:
            def decorator(function: GroupBlock) -> GroupBlock:
                self._add_group(name, function, enabled=enabled)
                return function

            return decorator

        return self._add_group(name, block, enabled=enabled)

    def xgroup(self, name: str, block: GroupBlock | None = None) -> 'Group | Callable[[GroupBlock], GroupBlock]':
        """Create a disabled nested group; see `group`."""
        return self.group(name, block, enabled=False)

    def before_group[T: BeforeHook](self, hook: T) -> T:
        """Register a hook run once before anything nested in this group.

        Raises:
            NotConstructingError: If the tree is already locked.
        """
        self._check_constructing('before_group')
        self.before_groups.append(hook)
        return hook

    def after_group[T: AfterHook](self, hook: T) -> T:
        """Register a hook run once after everything nested in this group.

        Runs even if `before_group` hooks or nested tests failed.

        Raises:
            NotConstructingError: If the tree is already locked.
        """
        self._check_constructing('after_group')
        self.after_groups.append(hook)
        return hook

    def before_each[T: BeforeHook](self, hook: T) -> T:
        """Register a hook run before every test nested in this group.

        Hooks of outer groups run before hooks of inner groups. If a hook
        fails, the remaining `before_each` hooks and the test body do not
        run, but all `after_each` hooks still do.

        Raises:
            NotConstructingError: If the tree is already locked.
        """
        self._check_constructing('before_each')
        self.before_eaches.append(hook)
        return hook

    def after_each[T: AfterHook](self, hook: T) -> T:
        """Register a hook run after every test nested in this group.

        Hooks of inner groups run before hooks of outer groups. Errors
        raised by these hooks are suppressed onto the primary failure
        of the test.

        Raises:
            NotConstructingError: If the tree is already locked.
        """
        self._check_constructing('after_each')
        self.after_eaches.append(hook)
        return hook

    def lock(self) -> None:
        """End the construction phase of this group and all nested groups."""
        self.phase = Phase.LOCKED
        for child in self.children:
            if isinstance(child, Group):
                child.lock()

    def walk(self) -> Iterator[Node]:
        """Iterate over this group and all nested nodes, depth-first."""
        yield self
        for child in self.children:
            if isinstance(child, Group):
                yield from child.walk()
            else:
                yield child

    def get(self, name: str) -> Node | None:
        """Return the child with the given name, if any."""
        for child in self.children:
            if child.name == name:
                return child

        return None

    def _add_test(self, name: str, body: TestBody, *, enabled: bool) -> Test:
        """Validate and link a new test."""
        location = SourceLocation.from_caller()
        name = self._check_new_child('test', name, location)

        test = Test(name, body, parent=self, enabled=enabled, location=location)
        self.children.append(test)

        return test

    def _add_group(self, name: str, block: GroupBlock, *, enabled: bool) -> 'Group':
        """Validate, build and link a new group."""
        location = SourceLocation.from_caller()
        name = self._check_new_child('group', name, location)

        group = Group(name, parent=self, enabled=enabled, location=location)
        block(group)

        # the block may have declared a same-named sibling through a closure
        self._check_new_child('group', name, location)
        self.children.append(group)

        return group

    def _check_new_child(self, operation: str, name: str,
                         location: SourceLocation | None) -> str:
        """Check that a child can be linked into this group.

        Raises:
            ConstructionError: If the tree is locked, the name is
                invalid, or a sibling already has the name.
        """
        self._check_constructing(operation, location)

        name = validate_name(name)
        if self.get(name) is not None:
            raise DuplicateNameError(
                name,
                [child.name for child in self.children],
                context=DynaError.make_context(location, self.names),
            )

        return name

    def _check_constructing(self, operation: str,
                            location: SourceLocation | None = None) -> None:
        """Fail if the tree has left the construction phase.

        Raises:
            NotConstructingError: If this group is locked.
        """
        if self.phase is Phase.LOCKED:
            raise NotConstructingError(
                operation,
                context=DynaError.make_context(
                    location or SourceLocation.from_caller(),
                    self.names,
                ),
            )


def build_tree(name: str, block: GroupBlock, *,
               enabled: bool = True,
               location: SourceLocation | None = None) -> Group:
    """Build a root group with the given block.

    The returned tree is still in the construction phase; the caller
    locks it before executing it.

    Args:
        name: Root group name.
        block: Callable building the contents of the root.
        enabled: If False, the whole tree is reported as skipped.
        location: Where the root was declared; defaults to the caller.

    Returns:
        The root group.

    Raises:
        ConstructionError: If the block declares an invalid tree.
        Exception: Any error raised by the block itself.
    """
    root = Group(
        validate_name(name),
        enabled=enabled,
        location=location or SourceLocation.from_caller(),
    )
    block(root)

    return root
