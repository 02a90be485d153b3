"""Source locations of tree nodes.

Every test and group remembers where in the user's code it was declared,
so that hosts can point at it. The engine never inspects locations; they
are only displayed.
"""

import inspect
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import Field

from pytest_dyna.models import SchemaModel

if TYPE_CHECKING:
    from typing import Self

#: Frames from files below this directory belong to the library itself.
PACKAGE_DIR = Path(__file__).resolve().parent


class SourceLocation(SchemaModel):
    """Position of a declaration in a source file."""

    filename: str = Field(
        title='File name',
        description='Path of the source file.',
    )

    lineno: int | None = Field(
        default=None,
        title='Line number',
        description='1-based line number, if known.',
    )

    function: str | None = Field(
        default=None,
        title='Function',
        description='Name of the enclosing function or class, if known.',
    )

    def __str__(self) -> str:
        """String representation in the `path:line` form."""
        if self.lineno is None:
            return self.filename

        return f'{self.filename}:{self.lineno}'

    @classmethod
    def from_caller(cls) -> 'Self | None':
        """Locate the first caller outside of this package.

        Returns:
            Location of the user code that called into the library,
                or `None` if the stack holds no such frame.
        """
        frame = sys._getframe(1)  # noqa: SLF001
        while frame is not None:
            filename = frame.f_code.co_filename
            if not cls._is_internal(filename):
                return cls(
                    filename=filename,
                    lineno=frame.f_lineno,
                    function=frame.f_code.co_name,
                )
            frame = frame.f_back

        return None

    @classmethod
    def from_object(cls, value: object) -> 'Self | None':
        """Locate the source of a class or a function.

        Args:
            value: Class, function or method to locate.

        Returns:
            Location of the definition, or `None` if it can not be found
                (for example, for objects defined in an interactive session).
        """
        try:
            filename = inspect.getsourcefile(value)  # type: ignore[arg-type]
            _, lineno = inspect.getsourcelines(value)  # type: ignore[arg-type]
        except (OSError, TypeError):
            return None

        if not filename:
            return None

        return cls(
            filename=filename,
            lineno=lineno or None,
            function=getattr(value, '__qualname__', None),
        )

    @staticmethod
    def _is_internal(filename: str) -> bool:
        """Check whether a frame file name belongs to this package."""
        try:
            return Path(filename).resolve().is_relative_to(PACKAGE_DIR)
        except (OSError, ValueError):
            return False
