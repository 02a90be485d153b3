"""Tests for error formatting."""

import os

import pytest

from pytest_dyna.errors import DynaError, ErrorContext, ErrorFormatter
from pytest_dyna.locations import SourceLocation


@pytest.mark.parametrize('context, expected', (
    pytest.param(None, 'message', id='no context'),
    pytest.param(ErrorContext(), 'message', id='empty context'),
    pytest.param(
        ErrorContext(filename='test_x.py', line_num=3),
        f'message{os.linesep}    in "test_x.py", line 3{os.linesep}',
        id='file and line',
    ),
    pytest.param(
        ErrorContext(line_num=3),
        f'message{os.linesep}    in "<unknown source>", line 3{os.linesep}',
        id='line only',
    ),
    pytest.param(
        ErrorContext(node_path=('Root', 'group')),
        f"message{os.linesep}    at 'Root' / 'group'{os.linesep}",
        id='node path',
    ),
))
def test_format(context: ErrorContext | None, expected: str) -> None:
    """Append the source location and the node path to a message."""
    assert ErrorFormatter.format('message', context) == expected


def test_make_context() -> None:
    """Build a context from a location and a node path."""
    location = SourceLocation(filename='test_x.py', lineno=7, function='build')

    context = DynaError.make_context(location, ('Root',))

    assert context == {'filename': 'test_x.py', 'line_num': 7, 'node_path': ('Root',)}
    assert str(DynaError('failed', context=context)) == (
        f'failed{os.linesep}    in "test_x.py", line 7{os.linesep}'
        f"    at 'Root'{os.linesep}"
    )
