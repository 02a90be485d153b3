"""Core exception hierarchy.

This module defines base error and warning types used across the library
to report tree construction failures, root build failures, and failed
embedded runs in a structured and extensible way.
"""

from os import linesep
from typing import TYPE_CHECKING, TypedDict

if TYPE_CHECKING:
    from collections.abc import Iterable

if TYPE_CHECKING:
    from pytest_dyna.locations import SourceLocation
    from pytest_dyna.report import ReportCollector

FORMAT_FILENAME = '<unknown source>'
FORMAT_INDENT = 4


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Name of the source file where the error occurred.
    filename: str | None
    #: Line number in the source file (1-based).
    line_num: int | None

    #: Names of the nodes from the tree root down to the failing node.
    node_path: tuple[str, ...] | None


class ErrorFormatter:
    """Utility class for formatting tree-related errors.

    Produces human-readable error messages with optional source
    location and the path of the node the error is attributed to.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        location = cls.get_location_string(context, indent=FORMAT_INDENT)
        if not location:
            return message

        return f'{message}{linesep}{location}'

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format source and tree location information.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted location string including filename, line
            and node path when available.
        """
        indent = cls._ensure_indent(indent)
        message = ''

        filename = context.get('filename')
        line_num = context.get('line_num')
        if filename or line_num is not None:
            message += f'{indent}in "{filename or FORMAT_FILENAME}"'
            if line_num is not None:
                message += f', line {line_num}'
            message += linesep

        if node_path := context.get('node_path'):
            path = ' / '.join(repr(name) for name in node_path)
            message += f'{indent}at {path}{linesep}'

        return message

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation input.

        Args:
            indent: Indentation as string or number of spaces.

        Returns:
            A string consisting of spaces or the provided string.
        """
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class DynaWarning(UserWarning):
    """Warning emitted for non-fatal discovery issues.

    Used when a discovery target yields no root definitions, which
    is suspicious but does not prevent other roots from running.
    """


class DynaError(Exception, ErrorFormatter):
    """Base exception for all pytest-dyna errors.

    All custom exceptions raised by the library inherit from this
    class to allow unified error handling by callers.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context containing optional location values.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)

    @staticmethod
    def make_context(location: 'SourceLocation | None' = None,
                     node_path: tuple[str, ...] | None = None) -> ErrorContext:
        """Build an error context from a source location and a node path.

        Args:
            location: Optional source location of the offending call.
            node_path: Optional names from the root to the offending node.

        Returns:
            Error context suitable for the formatter.
        """
        context = ErrorContext(node_path=node_path)
        if location is not None:
            context['filename'] = location.filename
            context['line_num'] = location.lineno

        return context


class ConstructionError(DynaError):
    """Error raised when a test tree can not be constructed.

    Fatal to building the one root the offending call belongs to;
    other roots are unaffected.
    """


class InvalidNameError(ConstructionError):
    """Error raised for an empty or non-string node name."""


class DuplicateNameError(ConstructionError):
    """Error raised when a sibling with the same name already exists.

    The duplicate is rejected before it is linked into the tree, so
    the tree stays unchanged.
    """

    def __init__(self, name: str, existing: 'Iterable[str]' = (), *,
                 context: ErrorContext | None = None) -> None:
        """Initialize a duplicate name error.

        Args:
            name: The clashing node name.
            existing: Names of the siblings already present.
            context: Error context of the rejected call.
        """
        self.name = name
        self.existing = tuple(existing) or (name,)

        super().__init__(
            f'test/group with name {name!r} is already present: {", ".join(self.existing)}',
            context=context,
        )


class NotConstructingError(ConstructionError):
    """Error raised when a tree is mutated after it has been locked.

    Typically caused by calling `test()` or a hook registration from
    inside a test body or a hook, which run at execution time.
    """

    def __init__(self, operation: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize a locked-tree error.

        Args:
            operation: Name of the forbidden operation.
            context: Error context of the rejected call.
        """
        self.operation = operation

        super().__init__(
            f'It appears that you are attempting to call {operation}() from a test '
            'body or a hook. Tests and groups may only be created while the tree is '
            'being built, since tests and hooks run after construction has ended',
            context=context,
        )


class BuildError(DynaError):
    """Error raised when a root definition fails to build its tree.

    Carries the name of the root so that the failure can be reported
    in place of the tree it was supposed to produce.
    """

    def __init__(self, root_name: str, cause: BaseException, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize a build error.

        Args:
            root_name: Name of the root that failed to build.
            cause: The original exception.
            context: Error context with the root location.
        """
        self.root_name = root_name
        self.cause = cause

        super().__init__(
            f'Failed to build test tree {root_name!r}: {cause!r}',
            context=context,
        )
        self.__cause__ = cause


class TestFailedError(DynaError):
    """Error raised by an embedded run that produced failed outcomes.

    The collected report is attached so the caller can inspect the
    primary error and suppressed errors of every failed node.
    """

    __test__ = False

    def __init__(self, report: 'ReportCollector') -> None:
        """Initialize a failed-run error.

        Args:
            report: The collector holding the run results.
        """
        self.report = report

        failed = ', '.join(str(node_id) for node_id in report.failures)
        super().__init__(f'Test run failed: {failed}')

        if failures := list(report.failures.values()):
            self.__cause__ = failures[0].primary


class LateInitError(DynaError):
    """Error raised when a late-initialized value is read too early."""
