"""Tests for outcomes and failures."""

import pytest
from pydantic import ValidationError

from pytest_dyna.outcomes import Failure, Outcome


@pytest.mark.parametrize('cause, is_success', (
    pytest.param(None, True, id='success'),
    pytest.param(ValueError('boom'), False, id='failure'),
))
def test_outcome_state(cause: BaseException | None, is_success: bool) -> None:
    """Derive success and failure from the failure cause."""
    outcome = Outcome(subject_name='test', failure_cause=cause)

    assert outcome.is_success is is_success
    assert outcome.is_failure is not is_success


def test_outcome_is_immutable() -> None:
    """Reject changes of an outcome handed to hooks."""
    outcome = Outcome()

    with pytest.raises(ValidationError):
        outcome.subject_name = 'other'  # type: ignore[misc]


def test_accumulate() -> None:
    """Keep the first error as primary and suppress later ones."""
    first, second, third = ValueError('first'), KeyError('second'), OSError('third')

    failure = Failure.accumulate(None, first)
    same = Failure.accumulate(failure, second)
    Failure.accumulate(failure, third)

    assert same is failure
    assert failure.primary is first
    assert failure.suppressed == [second, third]
    assert failure.errors == (first, second, third)


def test_throw_adds_notes_once() -> None:
    """Raise the primary error with one note per suppressed error."""
    primary = AssertionError('body failed')
    failure = Failure(primary, [RuntimeError('cleanup failed')])

    for _ in range(2):
        with pytest.raises(AssertionError) as error:
            failure.throw()

        assert error.value is primary
        assert primary.__notes__ == ['Suppressed: RuntimeError: cleanup failed']

    failure.suppress(OSError('later'))
    with pytest.raises(AssertionError):
        failure.throw()

    assert primary.__notes__ == [
        'Suppressed: RuntimeError: cleanup failed',
        'Suppressed: OSError: later',
    ]
