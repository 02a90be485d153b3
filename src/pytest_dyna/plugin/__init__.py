"""Pytest plugin collecting and executing test trees.

This module integrates `pytest-dyna` with pytest by:
- registering custom command-line options;
- resolving shared runtime settings;
- collecting `DynaTest` subclasses declared in test modules as trees of
  pytest collectors (groups) and items (tests).

Group hooks run in pytest's setup and teardown of the group collectors,
per-test hooks run together with the test body.
"""

from typing import TYPE_CHECKING

import pytest

from pytest_dyna.discovery import DynaTest
from pytest_dyna.settings import DynaSettings

from .suite import DynaSuite

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.python import PyCollector


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest command-line options for pytest-dyna.

    Args:
        parser: Pytest argument parser.
    """
    parser.addoption(
        '--dyna-strict',
        action='store_true',
        dest='dyna_strict',
        default=False,
        help=(
            'Report a test tree that fails to build as a collection error. '
            'By default it is reported as a single failing test, so that '
            'other trees still run.'
        ),
    )
    parser.addoption(
        '--dyna-engine-id',
        action='store',
        dest='dyna_engine_id',
        default=None,
        metavar='ID',
        help='Engine segment of node identifiers shown in test reports.',
    )


def pytest_configure(config: 'Config') -> None:
    """Configure pytest-dyna integration.

    This hook resolves `DynaSettings` from the environment, applies the
    command-line overrides, and attaches the result to the pytest
    configuration object as `config.dyna_settings`.

    Args:
        config: Pytest configuration object.
    """
    overrides: dict[str, object] = {}
    if config.getoption('--dyna-strict', default=False):
        overrides['strict'] = True
    if engine_id := config.getoption('--dyna-engine-id', default=None):
        overrides['engine_id'] = engine_id

    config.dyna_settings = DynaSettings(**overrides)  # type: ignore[attr-defined, arg-type]


@pytest.hookimpl(tryfirst=True)
def pytest_pycollect_makeitem(collector: 'PyCollector', name: str,
                              obj: object) -> DynaSuite | None:
    """Collect test tree definitions from test modules.

    Every `DynaTest` subclass declared in a collected module becomes
    a `DynaSuite` collector. Definitions imported from other modules
    are left alone.

    Args:
        collector: Module or class collector being scanned.
        name: Attribute name.
        obj: Attribute value.

    Returns:
        A `DynaSuite` collector for a definition, otherwise `None`.
    """
    if not isinstance(collector, pytest.Module) or not DynaTest.is_root(obj):
        return None

    if obj.__module__ != collector.obj.__name__:  # type: ignore[attr-defined]
        return None

    return DynaSuite.from_parent(
        collector,
        name=name,
        definition=obj,
    )
