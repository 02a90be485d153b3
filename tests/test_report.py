"""Tests for in-process reports and the embedded driver."""

import pytest
import yaml

from pytest_dyna.engine import NodeId
from pytest_dyna.errors import BuildError, DuplicateNameError, TestFailedError
from pytest_dyna.nodes import Group
from pytest_dyna.report import ReportCollector, run_tests


def calculator(root: Group) -> None:
    """Declare a small tree with one failure and one skipped test."""
    root.test('adds', lambda: None)

    def failing() -> None:
        raise AssertionError('1 + 1 != 3')

    def cleanup(_: object) -> None:
        raise RuntimeError('cleanup')

    def negative(group: Group) -> None:
        group.after_each(cleanup)
        group.test('subtracts', failing)
        group.xtest('divides', lambda: None)

    root.group('negative', negative)


def test_run_tests_raises_on_failure() -> None:
    """Raise with the collected report attached if a test failed."""
    with pytest.raises(TestFailedError) as error:
        run_tests(calculator, name='Calculator')

    report = error.value.report
    assert isinstance(report, ReportCollector)
    assert isinstance(error.value.__cause__, AssertionError)
    assert '[engine:dyna]/[group:Calculator]/[group:negative]/[test:subtracts]' in str(error.value)


def test_run_tests_without_raising() -> None:
    """Return the report of a failed run when asked not to raise."""
    report = run_tests(calculator, raise_on_failure=False)

    assert report.failed
    assert report.stats.model_dump() == {'succeeded': 1, 'failed': 1, 'skipped': 1}

    failure = report.get_failure('subtracts')
    assert str(failure.primary) == '1 + 1 != 3'
    assert [str(error) for error in failure.suppressed] == ['cleanup']

    subtracts = report.get_report('subtracts')
    assert subtracts.error == "AssertionError('1 + 1 != 3')"
    assert subtracts.suppressed == ("RuntimeError('cleanup')",)
    assert subtracts.location is not None
    assert subtracts.location.startswith(__file__)


def test_run_tests_success() -> None:
    """Return the report of a successful run."""
    report = run_tests(lambda root: root.test('passes', lambda: None))

    assert not report.failed
    assert report.get_report('root').status == 'successful'
    assert report.get_report('passes').node_id == '[engine:dyna]/[group:root]/[test:passes]'


def test_run_tests_construction_error() -> None:
    """Raise construction errors of the block directly."""
    def block(root: Group) -> None:
        root.test('x', lambda: None)
        root.test('x', lambda: None)

    with pytest.raises(DuplicateNameError):
        run_tests(block)


def test_to_yaml() -> None:
    """Render statistics and one entry per node."""
    report = run_tests(calculator, name='Calculator', raise_on_failure=False)

    content = yaml.safe_load(report.to_yaml())

    assert content['stats'] == {'succeeded': 1, 'failed': 1, 'skipped': 1}
    assert [node['name'] for node in content['nodes']] == [
        'Calculator', 'adds', 'negative', 'subtracts', 'divides',
    ]

    divides = content['nodes'][-1]
    assert divides['status'] == 'skipped'
    assert divides['reason'] == 'disabled'
    assert 'error' not in divides


@pytest.mark.parametrize('name', (
    pytest.param('missing', id='missing'),
    pytest.param('test', id='ambiguous'),
))
def test_get_failure_lookup_error(name: str) -> None:
    """Require exactly one failed node with the given name."""
    def block(root: Group) -> None:
        for group in ('a', 'b'):
            root.group(group, lambda group: group.test('test', lambda: pytest.fail('no')))

    report = run_tests(block, raise_on_failure=False)

    with pytest.raises(LookupError, match=rf'Expected one node named {name!r}'):
        report.get_failure(name)


def test_add_build_failure(collector: ReportCollector) -> None:
    """Record a root that failed to build as broken."""
    error = BuildError('Broken', ValueError('bad build'), context={'filename': 'test_x.py'})
    node_id = NodeId.for_engine('dyna').child('group', 'Broken')

    collector.add_build_failure(node_id, error)

    assert collector.failed
    assert collector.stats.failed == 1
    assert collector.get_failure('Broken').primary is error

    report = collector.get_report('Broken')
    assert report.status == 'broken'
    assert report.error == "ValueError('bad build')"
    assert report.location == 'test_x.py'
