"""Outcomes and failures of executed tests and groups.

An `Outcome` is handed to every `after_each` and `after_group` hook and
tells it whether the test (or the group) has failed so far. A `Failure`
is what the engine reports for a failed node: one primary error plus the
ordered list of errors that occurred after it and were suppressed onto it.
"""

from typing import TYPE_CHECKING, NoReturn

from pydantic import Field

from pytest_dyna.models import SchemaModel

if TYPE_CHECKING:
    from collections.abc import Iterable


class Outcome(SchemaModel):
    """The outcome of a test or a group run so far."""

    subject_name: str | None = Field(
        default=None,
        title='Subject name',
        description='Name of the test; `None` when passed to `after_group` hooks.',
    )

    failure_cause: BaseException | None = Field(
        default=None,
        title='Failure cause',
        description=(
            'Primary error raised by a `before_*` hook, the test body, or a '
            'previously called `after_*` hook; `None` when all of them succeeded.'
        ),
    )

    @property
    def is_success(self) -> bool:
        """True if the subject and all hooks called so far have succeeded."""
        return self.failure_cause is None

    @property
    def is_failure(self) -> bool:
        """True if `is_success` is False."""
        return not self.is_success


class Failure:
    """A reported failure: a primary error with suppressed secondary errors.

    The first error of a test or group run becomes primary; every error
    raised afterwards by teardown hooks of the same run is attached to it
    rather than replacing it.
    """

    def __init__(self, primary: BaseException,
                 suppressed: 'Iterable[BaseException]' = ()) -> None:
        """Initialize a failure.

        Args:
            primary: The error that failed the node first.
            suppressed: Errors that occurred afterwards.
        """
        self.primary = primary
        self.suppressed: list[BaseException] = list(suppressed)

        self._noted = 0

    def __repr__(self) -> str:
        """Debug representation."""
        return f'{self.__class__.__name__}({self.primary!r}, suppressed={self.suppressed!r})'

    def suppress(self, error: BaseException) -> None:
        """Attach a secondary error to this failure."""
        self.suppressed.append(error)

    @classmethod
    def accumulate(cls, failure: 'Failure | None', error: BaseException) -> 'Failure':
        """Add an error to an accumulated failure.

        Args:
            failure: Failure accumulated so far, if any.
            error: Newly raised error.

        Returns:
            A new failure with `error` as primary if nothing failed so far,
                otherwise `failure` with `error` suppressed onto it.
        """
        if failure is None:
            return cls(error)

        failure.suppress(error)
        return failure

    @property
    def errors(self) -> tuple[BaseException, ...]:
        """All errors of this failure, primary first."""
        return (self.primary, *self.suppressed)

    def throw(self) -> NoReturn:
        """Raise the primary error.

        Every suppressed error not yet mentioned is added as a note
        to the primary error, so that it is displayed in tracebacks.

        Raises:
            BaseException: The primary error.
        """
        for error in self.suppressed[self._noted:]:
            self.primary.add_note(f'Suppressed: {error.__class__.__qualname__}: {error}')
        self._noted = len(self.suppressed)

        raise self.primary
