"""Pytest items executing tests of a test tree."""

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from typing import Any

if TYPE_CHECKING:
    from pytest_dyna.engine import TreeRunner
    from pytest_dyna.errors import BuildError
    from pytest_dyna.nodes import Test


class DynaItem(pytest.Item):
    """Pytest item executing a single test with its per-test hooks.

    The `before_each` hooks of all enclosing groups, the body, and the
    `after_each` hooks run within `runtest`, so that a failure of any of
    them is reported as the failure of this test.
    """

    __test__ = False

    def __init__(self, *, test: 'Test', runner: 'TreeRunner', **kwargs: 'Any') -> None:
        """Initialize a pytest item backed by a test.

        Args:
            test: The mirrored test.
            runner: Runner executing hooks and tests of the tree.
            **kwargs: Keyword pytest.Item arguments.
        """
        super().__init__(**kwargs)

        self.test = test
        self.runner = runner

    def setup(self) -> None:
        """Skip a disabled test."""
        if not self.test.enabled:
            pytest.skip(self.runner.settings.skip_reason)

    def runtest(self) -> None:
        """Execute the test.

        Raises:
            BaseException: The primary error of a failed test, with
                suppressed errors attached as notes.
        """
        if (failure := self.runner.run_test(self.test)) is not None:
            failure.throw()

    def reportinfo(self) -> tuple[str, int | None, str]:
        """Report the location of the test declaration."""
        if location := self.test.location:
            lineno = location.lineno - 1 if location.lineno else None
            return location.filename, lineno, self.name

        return str(self.path), None, self.name


class BuildFailedItem(pytest.Item):
    """Pytest item standing in for a tree that failed to build.

    Always fails with the build error, so that one broken definition is
    reported without preventing other trees from running.
    """

    __test__ = False

    def __init__(self, *, error: 'BuildError', **kwargs: 'Any') -> None:
        """Initialize a failing item.

        Args:
            error: The error that prevented building the tree.
            **kwargs: Keyword pytest.Item arguments.
        """
        super().__init__(**kwargs)

        self.error = error

    def runtest(self) -> None:
        """Fail with the build error.

        Raises:
            BuildError: Always.
        """
        raise self.error

    def reportinfo(self) -> tuple[str, int | None, str]:
        """Report the location of the broken definition."""
        context = self.error.context or {}
        if filename := context.get('filename'):
            line_num = context.get('line_num')
            return filename, line_num - 1 if line_num else None, self.name

        return str(self.path), None, self.name
