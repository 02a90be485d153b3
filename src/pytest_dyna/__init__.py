"""Pytest plugin and runtime for nested, declaratively built test trees.

The `pytest_dyna` package lets tests be declared as a tree of named
groups and tests by calling plain Python functions, and runs them with
pytest or an embedded driver.

Key features:
- groups and tests declared from ordinary code, including loops and
  reusable functions building batteries of tests;
- group-scoped and per-test setup/teardown hooks with well-defined
  ordering across nested groups;
- disabled groups and tests reported as skipped, never omitted;
- failures of teardown hooks suppressed onto the first error.

The package keeps construction (building the tree) and execution (running
bodies and hooks) strictly apart: a tree is built once, locked, and only
then executed.
"""

from pytest_dyna.discovery import DynaTest
from pytest_dyna.engine import NodeId, TreeRunner
from pytest_dyna.errors import (
    BuildError,
    ConstructionError,
    DuplicateNameError,
    DynaError,
    DynaWarning,
    InvalidNameError,
    LateInitError,
    NotConstructingError,
    TestFailedError,
)
from pytest_dyna.fixtures import Late, with_temp_dir
from pytest_dyna.nodes import Group, Test, build_tree
from pytest_dyna.outcomes import Failure, Outcome
from pytest_dyna.report import ReportCollector, run_tests

__all__ = (
    'BuildError',
    'ConstructionError',
    'DuplicateNameError',
    'DynaError',
    'DynaTest',
    'DynaWarning',
    'Failure',
    'Group',
    'InvalidNameError',
    'Late',
    'LateInitError',
    'NodeId',
    'NotConstructingError',
    'Outcome',
    'ReportCollector',
    'Test',
    'TestFailedError',
    'TreeRunner',
    'build_tree',
    'run_tests',
    'with_temp_dir',
)
