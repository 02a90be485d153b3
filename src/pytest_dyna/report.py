"""In-process collection of execution events.

`ReportCollector` is the event sink used when a tree is executed without
a host test platform: by the command-line interface, by `run_tests`, and
by tests of trees. It keeps one report per node, the failures of failed
nodes, and summary statistics, and renders them as YAML.
"""

from typing import TYPE_CHECKING, Literal

from pydantic import Field
from yaml import dump

from pytest_dyna.engine import ExecutionResult, NodeId, TreeRunner
from pytest_dyna.errors import TestFailedError
from pytest_dyna.models import SchemaModel
from pytest_dyna.names import GROUP_KIND, TEST_KIND, NodeKind  # noqa: TC001
from pytest_dyna.nodes import build_tree
from pytest_dyna.outcomes import Failure

if TYPE_CHECKING:
    from pytest_dyna.errors import BuildError
    from pytest_dyna.nodes import GroupBlock, Node
    from pytest_dyna.settings import DynaSettings

type Status = Literal['started', 'successful', 'failed', 'skipped', 'broken']


class NodeReport(SchemaModel):
    """Report of a single node."""

    node_id: str = Field(title='Node identifier')
    kind: NodeKind = Field(title='Node kind')
    name: str = Field(title='Node name')

    status: Status = Field(
        title='Status',
        description=(
            'Last reported state; `broken` marks a root that failed to build.'
        ),
    )

    reason: str | None = Field(
        default=None,
        title='Skip reason',
    )

    error: str | None = Field(
        default=None,
        title='Primary error',
    )

    suppressed: tuple[str, ...] = Field(
        default=(),
        title='Suppressed errors',
    )

    location: str | None = Field(
        default=None,
        title='Source location',
    )


class RunStats(SchemaModel):
    """Summary of a run."""

    #: Number of tests that succeeded.
    succeeded: int = 0
    #: Number of tests and groups that failed, including broken roots.
    failed: int = 0
    #: Number of tests that were not executed.
    skipped: int = 0


class ReportCollector:
    """Event sink recording the results of a run."""

    def __init__(self) -> None:
        """Initialize an empty collector."""
        self.reports: dict[NodeId, NodeReport] = {}
        self.failures: dict[NodeId, Failure] = {}

    def started(self, node_id: NodeId, node: 'Node') -> None:
        """Record a started node."""
        self.reports[node_id] = NodeReport(
            node_id=str(node_id),
            kind=node.kind,
            name=node.name,
            status='started',
            location=str(node.location) if node.location else None,
        )

    def finished(self, node_id: NodeId, node: 'Node', result: ExecutionResult) -> None:  # noqa: ARG002
        """Record a finished node."""
        if result.failure is None:
            self._update(node_id, status='successful')
            return

        self.failures[node_id] = result.failure
        self._update(
            node_id,
            status='failed',
            error=repr(result.failure.primary),
            suppressed=tuple(repr(error) for error in result.failure.suppressed),
        )

    def skipped(self, node_id: NodeId, node: 'Node', reason: str) -> None:  # noqa: ARG002
        """Record a skipped node."""
        self._update(node_id, status='skipped', reason=reason)

    def add_build_failure(self, node_id: NodeId, error: 'BuildError') -> None:
        """Record a root that failed to build its tree.

        Args:
            node_id: Identifier the root would have had.
            error: The build error.
        """
        location = None
        if context := error.context:
            location = context.get('filename')

        self.failures[node_id] = Failure(error)
        self.reports[node_id] = NodeReport(
            node_id=str(node_id),
            kind=GROUP_KIND,
            name=error.root_name,
            status='broken',
            error=repr(error.cause),
            location=location,
        )

    @property
    def failed(self) -> bool:
        """True if at least one node failed or a root failed to build."""
        return bool(self.failures)

    @property
    def stats(self) -> RunStats:
        """Summary statistics of the run."""
        reports = self.reports.values()

        return RunStats(
            succeeded=sum(
                1 for item in reports
                if item.kind == TEST_KIND and item.status == 'successful'
            ),
            failed=sum(
                1 for item in reports
                if item.status in ('failed', 'broken')
            ),
            skipped=sum(
                1 for item in reports
                if item.kind == TEST_KIND and item.status == 'skipped'
            ),
        )

    def get_report(self, name: str) -> NodeReport:
        """Return the report of the only node with the given name.

        Raises:
            LookupError: If no node or more than one node has the name.
        """
        return self.reports[self._find(self.reports, name)]

    def get_failure(self, name: str) -> Failure:
        """Return the failure of the only failed node with the given name.

        Raises:
            LookupError: If no failed node or more than one has the name.
        """
        return self.failures[self._find(self.failures, name)]

    def to_yaml(self) -> str:
        """Render all reports as a YAML document."""
        return dump(
            {
                'stats': self.stats.model_dump(),
                'nodes': [
                    item.model_dump(mode='json', exclude_defaults=True)
                    for item in self.reports.values()
                ],
            },
            sort_keys=False,
            allow_unicode=True,
        )

    def _update(self, node_id: NodeId, **values: object) -> None:
        """Replace the report of a node with an updated copy."""
        self.reports[node_id] = self.reports[node_id].model_copy(update=values)

    @staticmethod
    def _find(items: dict[NodeId, object], name: str) -> NodeId:
        """Find the only identifier with the given node name."""
        found = [node_id for node_id in items if node_id.name == name]
        if len(found) != 1:
            raise LookupError(f'Expected one node named {name!r}, found {len(found)}')

        return found[0]


def run_tests(block: 'GroupBlock', *,
              name: str = 'root',
              settings: 'DynaSettings | None' = None,
              raise_on_failure: bool = True) -> ReportCollector:
    """Build a tree from a block and run it immediately.

    A simple embedded driver for trees that are not collected by pytest,
    for example to test reusable test batteries.

    Args:
        block: Callable building the contents of the root group.
        name: Root group name.
        settings: Runtime settings; resolved from the environment if omitted.
        raise_on_failure: Raise if any node fails.

    Returns:
        The collector holding the results.

    Raises:
        ConstructionError: If the block declares an invalid tree.
        TestFailedError: If a node failed and `raise_on_failure` is set.
    """
    root = build_tree(name, block)

    collector = ReportCollector()
    TreeRunner(collector, settings=settings).execute(root)

    if raise_on_failure and collector.failed:
        raise TestFailedError(collector)

    return collector
