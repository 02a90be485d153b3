"""Discovery of root test definitions.

A root definition is a subclass of `DynaTest` implementing `build()`.
Discovery finds such classes in modules, builds and locks their trees,
and reports a root that fails to build as a `BuildError` in place of its
tree, so that one broken root never prevents the others from running.
"""

import inspect
import logging
from importlib import import_module
from typing import TYPE_CHECKING, ClassVar
from warnings import warn

from pytest_dyna.errors import BuildError, DynaError, DynaWarning
from pytest_dyna.locations import SourceLocation
from pytest_dyna.nodes import Group, build_tree

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from types import ModuleType

logger = logging.getLogger(__name__)


class DynaTest:
    """Base class of root test definitions.

    Subclasses declare their tests and groups in `build`, which receives
    the root group named after the class:

        class CalculatorTest(DynaTest):
            def build(self, root: Group) -> None:
                root.test('adds', lambda: ...)

    The pytest plugin collects every such class defined in a test module.
    Set `enabled = False` to report the whole tree as skipped, and
    `abstract = True` on intermediate base classes.
    """

    __test__ = False

    #: If False, the whole tree is reported as skipped.
    enabled: ClassVar[bool] = True

    #: If True, the class is a base for other definitions and is not collected.
    abstract: ClassVar[bool] = False

    def __init_subclass__(cls, **kwargs: object) -> None:
        """Reset `abstract` so that it is not inherited by subclasses."""
        super().__init_subclass__(**kwargs)

        if 'abstract' not in cls.__dict__:
            cls.abstract = False

    def build(self, root: Group) -> None:
        """Declare the tests and groups of this definition."""
        raise NotImplementedError

    @classmethod
    def create_root(cls) -> Group:
        """Build the tree of this definition.

        Returns:
            The root group, not yet locked.

        Raises:
            BuildError: If the class can not be instantiated or its
                `build` method fails.
        """
        location = SourceLocation.from_object(cls)

        try:
            instance = cls()
            return build_tree(
                cls.__name__,
                instance.build,
                enabled=cls.enabled,
                location=location,
            )

        except Exception as base:
            raise BuildError(
                cls.__name__,
                base,
                context=DynaError.make_context(location),
            ) from base

    @classmethod
    def is_root(cls, value: object) -> bool:
        """Check whether a value is a collectable root definition."""
        return (
            inspect.isclass(value)
            and issubclass(value, DynaTest)
            and value is not DynaTest
            and not value.abstract
        )


class RootBuild:
    """Result of building one root: a locked tree or a build error."""

    def __init__(self, name: str, *,
                 module: str | None = None,
                 tree: Group | None = None,
                 error: BuildError | None = None) -> None:
        """Initialize a build result.

        Args:
            name: Root name.
            module: Name of the module declaring the root, if known.
            tree: The built and locked tree.
            error: The error that prevented building the tree.
        """
        self.name = name
        self.module = module
        self.tree = tree
        self.error = error

    def __repr__(self) -> str:
        """Debug representation."""
        state = 'broken' if self.error else 'ok'
        return f'{self.__class__.__name__}({self.name!r}, {state})'

    @classmethod
    def from_definition(cls, definition: type[DynaTest]) -> 'RootBuild':
        """Build and lock the tree of a root definition."""
        try:
            tree = definition.create_root()
        except BuildError as error:
            logger.warning('%s', error)
            return cls(definition.__name__, module=definition.__module__, error=error)

        tree.lock()
        return cls(tree.name, module=definition.__module__, tree=tree)


def find_roots(module: 'ModuleType') -> list[type[DynaTest]]:
    """Find the root definitions declared in a module.

    Definitions imported from other modules are ignored.

    Args:
        module: Module to scan.

    Returns:
        Root definition classes in declaration order.
    """
    return [
        value
        for value in vars(module).values()
        if DynaTest.is_root(value) and value.__module__ == module.__name__
    ]


def discover(targets: 'Iterable[str]') -> 'Iterator[RootBuild]':
    """Discover and build root definitions.

    A definition reached through more than one target is built once.

    Args:
        targets: Module names, or `module:ClassName` references.

    Yields:
        One build result per root definition. A target that can not be
        imported or resolved yields one failed result named after it.
    """
    seen: set[type[DynaTest]] = set()

    for target in targets:
        module_name, _, attribute = target.partition(':')

        try:
            module = import_module(module_name)
            definitions = (
                [getattr(module, attribute)]
                if attribute else
                find_roots(module)
            )

        except Exception as base:
            error = BuildError(target, base)
            logger.warning('%s', error)
            yield RootBuild(target, module=module_name, error=error)
            continue

        if not definitions:
            warn(f'No test definitions found in {target!r}', category=DynaWarning, stacklevel=2)

        for definition in definitions:
            if not DynaTest.is_root(definition):
                yield RootBuild(target, module=module_name, error=BuildError(
                    target,
                    TypeError(_describe_invalid(definition)),
                ))
                continue

            if definition in seen:
                logger.debug('%r already discovered, skipping', definition)
                continue

            seen.add(definition)
            yield RootBuild.from_definition(definition)


def _describe_invalid(value: object) -> str:
    """Explain why a value is not a collectable root definition."""
    if inspect.isclass(value) and issubclass(value, DynaTest):
        if value is DynaTest:
            return f'{value!r} is the DynaTest base class, not a test definition'

        return f'{value!r} is abstract, set abstract = False on it to collect it'

    return f'{value!r} is not a DynaTest subclass'
