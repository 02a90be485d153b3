"""Execution of test trees.

This module walks a locked tree depth-first and runs its hooks and test
bodies in order, reporting every node to an event sink:

- groups run `before_group` hooks, then their children in declaration
  order, then `after_group` hooks (always, even after a failure);
- tests run the `before_each` hooks of all enclosing groups, outermost
  first, then the body, then the `after_each` hooks innermost first
  (always, even after a failure);
- disabled nodes are still visited and reported as skipped, so that the
  report always contains the complete tree.

A failure of one node never stops the walk. Errors raised by teardown
hooks after a first error are suppressed onto that first error.

The primitive steps (`run_before_group`, `run_after_group`, `run_test`)
are public, so that hosts with their own setup/teardown lifecycle can
drive them directly.
"""

import logging
from typing import TYPE_CHECKING, Literal, Protocol

import pytest
from pydantic import Field

from pytest_dyna.models import SchemaModel
from pytest_dyna.names import ENGINE_KIND
from pytest_dyna.nodes import Group, Node, Test
from pytest_dyna.outcomes import Failure, Outcome
from pytest_dyna.settings import DynaSettings

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from typing import Self

logger = logging.getLogger(__name__)

#: Errors that abort the whole run instead of failing a node.
FATAL_ERRORS = (KeyboardInterrupt, SystemExit, GeneratorExit, pytest.exit.Exception)

#: Raised by `pytest.skip()` from a test body or a `before_*` hook.
SkipRequest = pytest.skip.Exception


class NodeId(SchemaModel):
    """Hierarchical identifier of a node within one run.

    The first segment identifies the engine; every following segment
    carries the kind and the name of one node on the path from the root.
    """

    segments: tuple[tuple[str, str], ...] = Field(
        title='Segments',
        description='Ordered `(kind, name)` pairs.',
    )

    def __str__(self) -> str:
        """String representation, e.g. `[engine:dyna]/[group:Calc]/[test:adds]`."""
        return '/'.join(f'[{kind}:{name}]' for kind, name in self.segments)

    @classmethod
    def for_engine(cls, engine_id: str) -> 'Self':
        """Create the identifier of the engine itself."""
        return cls(segments=((ENGINE_KIND, engine_id),))

    @classmethod
    def for_node(cls, node: Node, engine_id: str) -> 'Self':
        """Create the identifier of a node from its path."""
        node_id = cls.for_engine(engine_id)
        for item in node.path:
            node_id = node_id.append(item)

        return node_id

    def append(self, node: Node) -> 'Self':
        """Create the identifier of a child node."""
        return self.child(node.kind, node.name)

    def child(self, kind: str, name: str) -> 'Self':
        """Create the identifier of a child by its kind and name."""
        return self.__class__(segments=(*self.segments, (kind, name)))

    @property
    def name(self) -> str:
        """Name in the last segment."""
        return self.segments[-1][1]


class ExecutionResult(SchemaModel):
    """Result of a finished test or group."""

    status: Literal['successful', 'failed'] = Field(
        title='Status',
    )

    failure: Failure | None = Field(
        default=None,
        title='Failure',
        description='Primary and suppressed errors of a failed node.',
    )

    @classmethod
    def from_failure(cls, failure: Failure | None) -> 'Self':
        """Create a result from an optional failure."""
        if failure is None:
            return cls(status='successful')

        return cls(status='failed', failure=failure)

    @property
    def is_success(self) -> bool:
        """True if the node has succeeded."""
        return self.status == 'successful'


class EventSink(Protocol):
    """Receiver of execution events.

    Every visited node produces `started` followed by exactly one of
    `finished` or `skipped`. Errors raised by a sink are not handled by
    the engine.
    """

    def started(self, node_id: NodeId, node: Node) -> None:
        """A node is about to be executed."""

    def finished(self, node_id: NodeId, node: Node, result: ExecutionResult) -> None:
        """A node has been executed."""

    def skipped(self, node_id: NodeId, node: Node, reason: str) -> None:
        """A node has not been executed."""


class NullSink:
    """Event sink discarding all events."""

    def started(self, node_id: NodeId, node: Node) -> None:
        """Ignore a started node."""

    def finished(self, node_id: NodeId, node: Node, result: ExecutionResult) -> None:
        """Ignore a finished node."""

    def skipped(self, node_id: NodeId, node: Node, reason: str) -> None:
        """Ignore a skipped node."""


class TreeRunner:
    """Runner executing trees and reporting to an event sink.

    The walk is synchronous and single-threaded; each hook and body runs
    to completion before the walk proceeds.
    """

    def __init__(self, sink: EventSink | None = None, *,
                 settings: DynaSettings | None = None) -> None:
        """Initialize a runner.

        Args:
            sink: Receiver of execution events; events are discarded
                if omitted, which suits hosts using only the primitive steps.
            settings: Runtime settings; resolved from the environment
                if omitted.
        """
        self.sink: EventSink = sink if sink is not None else NullSink()
        self.settings = settings or DynaSettings()

    def execute(self, root: Group, root_id: NodeId | None = None) -> None:
        """Lock a tree and execute it.

        Args:
            root: Root group of the tree.
            root_id: Identifier the root's identifier is appended to;
                defaults to the engine identifier.
        """
        root.lock()

        if root_id is None:
            root_id = NodeId.for_engine(self.settings.engine_id)

        self._visit(root, root_id.append(root))

    def run_before_group(self, group: Group) -> Failure | None:
        """Run the `before_group` hooks of an enabled group.

        Stops at the first failing hook.

        Args:
            group: Group to set up.

        Returns:
            Failure of the first failing hook, or `None`.

        Raises:
            Skipped: If a hook requests to skip the group.
        """
        if not group.enabled:
            return None

        for hook in group.before_groups:
            if (error := self.run_callable(hook, node=group)) is not None:
                return Failure(error)

        return None

    def run_after_group(self, group: Group, failure: Failure | None = None) -> Failure | None:
        """Run all `after_group` hooks of an enabled group.

        Every hook runs even if an earlier one fails. Each receives an
        outcome with the primary error so far.

        Args:
            group: Group to tear down.
            failure: Failure of the group so far (from `run_before_group`).

        Returns:
            Failure of the group: `failure` with hook errors suppressed
                onto it, or a new failure if `failure` was `None` and
                a hook failed.
        """
        if not group.enabled:
            return failure

        return self._run_after_hooks(group.after_groups, None, failure, node=group)

    def run_test(self, test: Test) -> Failure | None:
        """Run an enabled test with its `before_each` and `after_each` hooks.

        The `before_each` hooks of all enclosing groups run outermost
        first; the first failing hook stops them and the body does not
        run. The `after_each` hooks of all enclosing groups then run
        innermost first, regardless of what failed.

        Args:
            test: Test to execute.

        Returns:
            Failure of the test, or `None` if the test succeeded.

        Raises:
            Skipped: If the body or a `before_each` hook requested to skip
                the test and no hook failed afterwards.
        """
        if not test.enabled:
            return None

        failure: Failure | None = None
        skip: BaseException | None = None

        try:
            failure = self._run_before_each(test)
            if failure is None and (error := self.run_callable(test.body, node=test)) is not None:
                failure = Failure(error)
        except SkipRequest as request:
            skip = request

        hooks = [
            hook
            for group in reversed(test.ancestors)
            for hook in group.after_eaches
        ]
        failure = self._run_after_hooks(hooks, test.name, failure, node=test)

        if skip is not None and failure is None:
            raise skip

        return failure

    def run_callable(self, hook: 'Callable[..., object]', *args: object,
                     node: Node | None = None,
                     allow_skip: bool = True) -> BaseException | None:
        """Call a user callable and capture its error.

        Args:
            hook: Callable to run.
            *args: Positional arguments for the callable.
            node: Node the callable belongs to, for logging.
            allow_skip: If False, a skip request is captured as a failure
                (`pytest.fail.Exception`) caused by the request.

        Returns:
            The error raised by the callable, or `None`.

        Raises:
            BaseException: Fatal errors (see `FATAL_ERRORS`) and,
                if allowed, skip requests.
        """
        try:
            hook(*args)

        except FATAL_ERRORS:
            raise

        except BaseException as error:
            if isinstance(error, SkipRequest):
                if allow_skip:
                    raise

                failed = pytest.fail.Exception(f'skip requested in after hook: {error.msg}')
                failed.__cause__ = error
                error = failed

            logger.debug('%r raised in %r: %r', hook, node, error)
            return error

        return None

    def _run_before_each(self, test: Test) -> Failure | None:
        """Run `before_each` hooks of the enclosing groups, outermost first."""
        for group in test.ancestors:
            for hook in group.before_eaches:
                if (error := self.run_callable(hook, node=test)) is not None:
                    return Failure(error)

        return None

    def _run_after_hooks(self, hooks: 'Iterable[Callable[[Outcome], object]]',
                         subject_name: str | None,
                         failure: Failure | None, *,
                         node: Node) -> Failure | None:
        """Run every teardown hook, accumulating errors."""
        for hook in hooks:
            outcome = Outcome(
                subject_name=subject_name,
                failure_cause=failure.primary if failure else None,
            )
            if (error := self.run_callable(hook, outcome, node=node, allow_skip=False)) is not None:
                failure = Failure.accumulate(failure, error)

        return failure

    def _visit(self, node: Node, node_id: NodeId) -> None:
        """Execute and report a node."""
        self.sink.started(node_id, node)

        if isinstance(node, Group):
            self._visit_group(node, node_id)
        elif isinstance(node, Test):
            self._visit_test(node, node_id)
        else:  # pragma: no cover
            raise TypeError(f'Unknown node type {type(node)!r}')

    def _visit_group(self, group: Group, node_id: NodeId) -> None:
        """Execute and report a started group."""
        if not group.enabled:
            for child in group.children:
                self._visit(child, node_id.append(child))
            self._skip(node_id, group, self.settings.skip_reason)
            return

        try:
            failure = self.run_before_group(group)

        except SkipRequest as request:
            reason = request.msg
            for child in group.children:
                self._skip_subtree(child, node_id.append(child), reason)
            if (failure := self.run_after_group(group)) is None:
                self._skip(node_id, group, reason)
                return

        else:
            if failure is None:
                for child in group.children:
                    self._visit(child, node_id.append(child))
            else:
                reason = f'before_group of {group.name!r} failed: {failure.primary!r}'
                for child in group.children:
                    self._skip_subtree(child, node_id.append(child), reason)

            failure = self.run_after_group(group, failure)

        self._finish(node_id, group, failure)

    def _visit_test(self, test: Test, node_id: NodeId) -> None:
        """Execute and report a started test."""
        if not test.enabled:
            self._skip(node_id, test, self.settings.skip_reason)
            return

        try:
            failure = self.run_test(test)
        except SkipRequest as request:
            self._skip(node_id, test, request.msg)
            return

        self._finish(node_id, test, failure)

    def _skip_subtree(self, node: Node, node_id: NodeId, reason: str) -> None:
        """Report a node and everything nested in it as skipped."""
        self.sink.started(node_id, node)

        if isinstance(node, Group):
            for child in node.children:
                self._skip_subtree(child, node_id.append(child), reason)

        self._skip(node_id, node, reason)

    def _skip(self, node_id: NodeId, node: Node, reason: str) -> None:
        """Report a skipped node."""
        logger.debug('%s skipped: %s', node_id, reason)
        self.sink.skipped(node_id, node, reason)

    def _finish(self, node_id: NodeId, node: Node, failure: Failure | None) -> None:
        """Report a finished node."""
        result = ExecutionResult.from_failure(failure)
        logger.debug('%s finished: %s', node_id, result.status)
        self.sink.finished(node_id, node, result)
