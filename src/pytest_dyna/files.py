"""Filesystem expectations for test bodies.

Every function raises `AssertionError` with a descriptive message when
the expectation is not met.
"""

import os
from pathlib import Path


def expect_exists(path: Path) -> None:
    """Expect that a file or a directory exists."""
    if not path.exists():
        raise AssertionError(f'file {path.absolute()} does not exist')


def expect_directory(path: Path) -> None:
    """Expect that a path exists and is a directory."""
    expect_exists(path)
    if not path.is_dir():
        raise AssertionError(f'file {path.absolute()} is not a directory')


def expect_file(path: Path) -> None:
    """Expect that a path exists and is a regular file."""
    expect_exists(path)
    if not path.is_file():
        raise AssertionError(f'file {path.absolute()} is not a file')


def expect_readable_file(path: Path) -> None:
    """Expect that a path is a readable file."""
    expect_file(path)
    if not os.access(path, os.R_OK):
        raise AssertionError(f'file {path.absolute()} is not readable')


def expect_writable_file(path: Path) -> None:
    """Expect that a path is a writable file."""
    expect_file(path)
    if not os.access(path, os.W_OK):
        raise AssertionError(f'file {path.absolute()} is not writable')


def expect_files(directory: Path, pattern: str,
                 count: range = range(1, 2)) -> list[Path]:
    """Find files matching a glob pattern in a directory.

    A leading `**/` matches at any depth, including the directory itself,
    so `**/*.py` also finds python files directly in `directory`.

    Args:
        directory: Directory to search in.
        pattern: Glob pattern relative to the directory, using forward slashes.
        count: Accepted number of matches; exactly one by default.

    Returns:
        The matching paths, sorted.

    Raises:
        AssertionError: If the directory is missing or the number of
            matches is not within `count`.
    """
    expect_directory(directory)

    found = sorted(directory.glob(pattern))
    if len(found) not in count:
        listing = os.linesep.join(str(item) for item in sorted(directory.rglob('*')))
        raise AssertionError(
            f'Expected {_describe(count)} {pattern} but found {len(found)}: '
            f'{[str(item) for item in found]}. Folder dump:{os.linesep}{listing}'
        )

    return found


def _describe(count: range) -> str:
    """Describe an accepted number of matches."""
    if len(count) == 1:
        return f'{count.start}'

    return f'{count.start}..{count.stop - 1}'
