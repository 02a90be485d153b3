"""Reusable per-test resources built from group hooks.

Resources are created by a `before_each` hook and released by an
`after_each` hook, and handed to test bodies through a `Late` holder that
is assigned at execution time.
"""

import logging
from pathlib import Path
from shutil import rmtree
from tempfile import mkdtemp
from typing import TYPE_CHECKING

from pytest_dyna.errors import LateInitError
from pytest_dyna.settings import DynaSettings

if TYPE_CHECKING:
    from pytest_dyna.nodes import Group
    from pytest_dyna.outcomes import Outcome

logger = logging.getLogger(__name__)

_UNSET = object()


class Late[T]:
    """Holder of a value assigned after the tree has been built.

    Hooks assign the value, test bodies read it:

        conn = Late[Connection]('conn')
        root.before_each(lambda: conn.set(connect()))
        root.test('queries', lambda: conn.value.execute('select 1'))
    """

    def __init__(self, name: str = 'value') -> None:
        """Initialize an unassigned holder.

        Args:
            name: Name used in error messages.
        """
        self.name = name
        self._value: object = _UNSET

    def __repr__(self) -> str:
        """Debug representation."""
        value = '<not initialized>' if self._value is _UNSET else repr(self._value)
        return f'{self.__class__.__name__}({self.name!r}, {value})'

    @property
    def value(self) -> T:
        """The assigned value.

        Raises:
            LateInitError: If no value has been assigned yet.
        """
        if self._value is _UNSET:
            raise LateInitError(f'{self!r}: not initialized')

        return self._value  # type: ignore[return-value]

    @value.setter
    def value(self, value: T) -> None:
        self._value = value

    @property
    def is_set(self) -> bool:
        """True if a value has been assigned."""
        return self._value is not _UNSET

    def set(self, value: T) -> T:
        """Assign the value and return it."""
        self._value = value
        return value

    def clear(self) -> None:
        """Forget the assigned value."""
        self._value = _UNSET


def with_temp_dir(group: 'Group', name: str = 'dir', *,
                  suffix: str | None = None,
                  keep_on_failure: bool | None = None,
                  base_dir: Path | str | None = None) -> Late[Path]:
    """Provide a fresh temporary directory to every test in a group.

    The directory is created before each test nested in the group and
    deleted after it. A directory of a failed test is kept for
    inspection if `keep_on_failure` is set.

        sources = with_temp_dir(root, 'sources')
        root.test('generates', lambda: generate(sources.value))

    Args:
        group: Group to register the hooks on.
        name: Directory name prefix and holder name.
        suffix: Optional directory name suffix.
        keep_on_failure: Keep the directory of a failed test;
            defaults to the `keep_temp_dirs` setting.
        base_dir: Parent directory; defaults to the system temp dir.

    Returns:
        Holder of the directory of the currently running test.
    """
    if keep_on_failure is None:
        keep_on_failure = DynaSettings().keep_temp_dirs

    directory = Late[Path](name)

    def create() -> None:
        directory.set(Path(mkdtemp(prefix=f'tmp-{name}', suffix=suffix, dir=base_dir)))

    def remove(outcome: 'Outcome') -> None:
        if not directory.is_set:
            return

        path = directory.value
        directory.clear()

        if keep_on_failure and outcome.is_failure:
            logger.warning('Test %r failed, keeping temporary dir %s', outcome.subject_name, path)
            return

        if path.exists():
            rmtree(path)

    group.before_each(create)
    group.after_each(remove)

    return directory
