"""Tests configurations and fixtures."""

from typing import TYPE_CHECKING

import pytest

from pytest_dyna.engine import TreeRunner
from pytest_dyna.report import ReportCollector
from pytest_dyna.settings import DynaSettings

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from pytest_dyna.engine import ExecutionResult, NodeId
    from pytest_dyna.nodes import Node
    from pytest_dyna.outcomes import Outcome


class RecordingSink:
    """Event sink recording every event as a plain tuple.

    Events are `(event, node id, detail)`, where detail is the status of
    a finished node or the reason of a skipped node.
    """

    def __init__(self) -> None:
        self.events: list[tuple[str, str, str | None]] = []

    def started(self, node_id: 'NodeId', node: 'Node') -> None:  # noqa: ARG002
        self.events.append(('started', str(node_id), None))

    def finished(self, node_id: 'NodeId', node: 'Node',  # noqa: ARG002
                 result: 'ExecutionResult') -> None:
        self.events.append(('finished', str(node_id), result.status))

    def skipped(self, node_id: 'NodeId', node: 'Node', reason: str) -> None:  # noqa: ARG002
        self.events.append(('skipped', str(node_id), reason))


@pytest.fixture
def settings() -> DynaSettings:
    """Provide settings independent of `DYNA_*` environment variables."""
    return DynaSettings(
        engine_id='dyna',
        skip_reason='disabled',
        keep_temp_dirs=True,
        strict=False,
    )


@pytest.fixture
def sink() -> RecordingSink:
    """Provide an event sink recording raw events."""
    return RecordingSink()


@pytest.fixture
def collector() -> ReportCollector:
    """Provide an empty report collector."""
    return ReportCollector()


@pytest.fixture
def runner(collector: ReportCollector, settings: DynaSettings) -> TreeRunner:
    """Provide a runner reporting to the `collector` fixture."""
    return TreeRunner(collector, settings=settings)


@pytest.fixture
def calls() -> list[str]:
    """Provide a log shared by bodies and hooks of a tree."""
    return []


@pytest.fixture
def record(calls: list[str]) -> 'Callable[[str], Callable[[], None]]':
    """Provide a factory of callables appending a label to `calls`.

    The created callables accept and ignore an optional outcome, so they
    can be registered as any hook or as a test body.
    """
    def factory(label: str) -> 'Callable[..., None]':
        def call(outcome: 'Outcome | None' = None) -> None:  # noqa: ARG001
            calls.append(label)

        return call

    return factory


@pytest.fixture
def fail() -> 'Callable[[BaseException], Callable[..., None]]':
    """Provide a factory of callables raising the given error."""
    def factory(error: BaseException) -> 'Callable[..., None]':
        def call(*args: object) -> None:  # noqa: ARG001
            raise error

        return call

    return factory
