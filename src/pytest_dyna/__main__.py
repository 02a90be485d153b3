"""CLI utilities for pytest-dyna test trees.

Trees are discovered in importable modules, so the commands are run from
the project directory (or with it on `PYTHONPATH`):

    pytest-dyna tree tests.test_calculator
    pytest-dyna run tests.test_calculator:CalculatorTest
"""

import logging
from typing import TYPE_CHECKING

from click import argument, echo, group, option
from yaml import dump

from pytest_dyna.discovery import discover
from pytest_dyna.engine import NodeId, TreeRunner
from pytest_dyna.names import GROUP_KIND, MODULE_KIND
from pytest_dyna.nodes import Group
from pytest_dyna.report import ReportCollector
from pytest_dyna.settings import DynaSettings

if TYPE_CHECKING:
    from pytest_dyna.nodes import Node


def _describe(node: 'Node') -> dict[str, object]:
    """Describe a node and everything nested in it.

    Args:
        node: Node to describe.

    Returns:
        Mapping with the name, kind, enabled flag and children.
    """
    description: dict[str, object] = {
        'name': node.name,
        'kind': node.kind,
        'enabled': node.enabled,
    }
    if isinstance(node, Group):
        description['children'] = [_describe(child) for child in node.children]

    return description


@group(help='Command-line utilities for pytest-dyna test trees.')
@option(
    '-v', '--verbose',
    is_flag=True,
    default=False,
    help='Log execution details to standard error.',
)
def cli(verbose: bool) -> None:
    """Root CLI group for pytest-dyna tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )


@cli.command(
    name='tree',
    help='Print the structure of discovered test trees as YAML.',
)
@argument('targets', nargs=-1, required=True)
def print_tree(targets: tuple[str, ...]) -> None:
    """Build trees without running them and print their structure.

    Args:
        targets: Module names, or `module:ClassName` references.
    """
    trees: list[dict[str, object]] = []
    for build in discover(targets):
        if build.tree is None:
            trees.append({'name': build.name, 'error': str(build.error)})
        else:
            trees.append(_describe(build.tree))

    echo(dump(trees, sort_keys=False, allow_unicode=True), nl=False)


@cli.command(
    name='run',
    help=(
        'Run discovered test trees outside of pytest and print a YAML '
        'report. Exits with status 1 if anything failed.'
    ),
)
@option(
    '--engine-id',
    default=None,
    help='Engine segment of node identifiers in the report.',
)
@argument('targets', nargs=-1, required=True)
def run_trees(engine_id: str | None, targets: tuple[str, ...]) -> None:
    """Run trees and print the collected report.

    Args:
        engine_id: Optional engine identifier override.
        targets: Module names, or `module:ClassName` references.
    """
    settings = DynaSettings(engine_id=engine_id) if engine_id else DynaSettings()

    collector = ReportCollector()
    runner = TreeRunner(collector, settings=settings)
    engine = NodeId.for_engine(settings.engine_id)

    for build in discover(targets):
        root_id = engine.child(MODULE_KIND, build.module) if build.module else engine

        if build.tree is None:
            if build.error is not None:
                collector.add_build_failure(root_id.child(GROUP_KIND, build.name), build.error)
            continue

        runner.execute(build.tree, root_id)

    echo(collector.to_yaml(), nl=False)

    if collector.failed:
        raise SystemExit(1)


if __name__ == '__main__':
    cli()
