"""Iteration protocol error types.

Exhaustion is not an error and has no exception here: it is signalled only by
returning ``EXHAUSTED``.  Errors raised by a subject's own step behaviour are
never wrapped either; they reach the loop's caller unchanged.
"""

from __future__ import annotations

from typing import Any


class IterProtocolError(Exception):
    """Base class for errors raised by the protocol machinery itself."""


class ProtocolMisuseError(IterProtocolError):
    """A subject broke the step contract.

    Examples:
    - A step behaviour returned a bare value, or a tuple that is not a pair.
    - A step behaviour produced ``EXHAUSTED`` or ``START`` as a value or as
      the next state.
    - A stepper factory returned something that is not callable.
    """

    def __init__(self, subject: Any, message: str) -> None:
        self.subject = subject
        super().__init__(f"{type(subject).__name__}: {message}")


class NotIterableError(ProtocolMisuseError, TypeError):
    """No step behaviour applies and the subject is not an indexable sequence."""

    def __init__(self, subject: Any) -> None:
        super().__init__(
            subject,
            "no step behaviour is registered and the value is not an "
            "indexable sequence (needs __len__ and __getitem__)",
        )


class AdapterAcquisitionError(IterProtocolError):
    """A foreign runtime failed to hand out an iterator for the subject.

    Raised before the first element is produced.  The runtime's own error is
    attached as ``__cause__``.
    """

    def __init__(self, subject: Any, runtime: Any) -> None:
        self.subject = subject
        self.runtime = runtime
        super().__init__(
            f"{type(runtime).__name__} could not acquire an iterator for "
            f"{type(subject).__name__}"
        )


class RegistrationError(IterProtocolError):
    """Invalid registry key or handler."""


class StepperCadenceWarning(RuntimeWarning):
    """A guarded callable was invoked re-entrantly or after exhaustion."""
