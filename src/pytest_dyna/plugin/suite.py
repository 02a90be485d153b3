"""Pytest collectors mirroring groups of a test tree.

A `DynaSuite` builds the tree of one `DynaTest` definition and mirrors
its root group; `DynaGroup` mirrors a nested group. pytest sets up
a collector before the first test below it runs and tears it down after
the last one, which is where `before_group` and `after_group` hooks run.
"""

import logging
from typing import TYPE_CHECKING

import pytest

from pytest_dyna.engine import TreeRunner
from pytest_dyna.errors import BuildError
from pytest_dyna.nodes import Group
from pytest_dyna.outcomes import Failure

from .item import BuildFailedItem, DynaItem

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

if TYPE_CHECKING:
    from _pytest.nodes import Node

if TYPE_CHECKING:
    from pytest_dyna.discovery import DynaTest
    from pytest_dyna.settings import DynaSettings

logger = logging.getLogger(__name__)


class DynaGroup(pytest.Collector):
    """Pytest collector of a group.

    Collects the children of the group in declaration order and runs the
    group hooks as pytest setup and teardown of the collector.
    """

    def __init__(self, *,
                 group: Group | None = None,
                 runner: TreeRunner | None = None,
                 **kwargs: 'Any') -> None:
        """Initialize a group collector.

        Args:
            group: The mirrored group.
            runner: Runner executing hooks and tests of the tree.
            **kwargs: Keyword pytest.Collector arguments.
        """
        super().__init__(**kwargs)

        self.group = group
        self.runner = runner

        self.setup_failure: Failure | None = None

    def collect(self) -> 'Iterable[Node]':
        """Collect collectors of nested groups and items of tests."""
        if self.group is None:
            return

        for child in self.group.children:
            if isinstance(child, Group):
                yield DynaGroup.from_parent(
                    self,
                    name=child.name,
                    group=child,
                    runner=self.runner,
                )
            else:
                yield DynaItem.from_parent(
                    self,
                    name=child.name,
                    test=child,
                    runner=self.runner,
                )

    def setup(self) -> None:
        """Run the `before_group` hooks.

        A failure is raised, so pytest reports every test below this
        group as an error in setup and runs none of them.
        """
        self.setup_failure = None
        if self.group is None or self.runner is None:
            return

        if (failure := self.runner.run_before_group(self.group)) is not None:
            self.setup_failure = failure
            failure.throw()

    def teardown(self) -> None:
        """Run the `after_group` hooks.

        Hook errors are suppressed onto the setup failure, if any.
        Errors not reported by the setup yet are raised.
        """
        if self.group is None or self.runner is None:
            return

        setup_failure = self.setup_failure
        reported = len(setup_failure.suppressed) if setup_failure else 0

        failure = self.runner.run_after_group(self.group, setup_failure)
        if failure is None:
            return

        errors = failure.errors if setup_failure is None else failure.suppressed[reported:]
        if errors:
            Failure(errors[0], errors[1:]).throw()

    def reportinfo(self) -> tuple[str, int | None, str]:
        """Report the location of the group declaration."""
        if self.group is not None and (location := self.group.location):
            lineno = location.lineno - 1 if location.lineno else None
            return location.filename, lineno, self.name

        return str(self.path), None, self.name


class DynaSuite(DynaGroup):
    """Pytest collector of a `DynaTest` definition and its root group."""

    def __init__(self, *, definition: type['DynaTest'], **kwargs: 'Any') -> None:
        """Initialize a suite collector.

        Args:
            definition: The `DynaTest` subclass to build.
            **kwargs: Keyword pytest.Collector arguments.
        """
        super().__init__(**kwargs)

        self.definition = definition

    @property
    def settings(self) -> 'DynaSettings':
        """Settings resolved by the plugin."""
        return self.config.dyna_settings  # type: ignore[attr-defined, no-any-return]

    def collect(self) -> 'Iterable[Node]':
        """Build and lock the tree, then collect its contents.

        A tree that fails to build is collected as a single failing item,
        or raised as a collection error in strict mode.

        Raises:
            CollectError: If the tree fails to build in strict mode.
        """
        try:
            tree = self.definition.create_root()

        except BuildError as error:
            if self.settings.strict:
                raise self.CollectError(str(error)) from error

            logger.warning('%s', error)
            yield BuildFailedItem.from_parent(
                self,
                name=self.definition.__name__,
                error=error,
            )
            return

        tree.lock()

        self.group = tree
        self.runner = TreeRunner(settings=self.settings)

        yield from super().collect()
