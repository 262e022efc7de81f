"""Structural protocols, the step result type, and the Stepper base class."""

from __future__ import annotations

import abc
from typing import Any, Callable, NamedTuple, Protocol, TypeVar, runtime_checkable

from .errors import ProtocolMisuseError
from .sentinel import EXHAUSTED, START

F = TypeVar("F", bound=Callable[[], Any])

_STEPPER_MARK = "__iterproto_stepper__"


class StepResult(NamedTuple):
    """One produced element plus the state to resume from.

    Being a tuple, it unpacks as ``value, state = result``; step behaviours
    may return a plain 2-tuple instead and the protocol normalises it.
    """

    value: Any
    state: Any


@runtime_checkable
class StepFunction(Protocol):
    """Pure step behaviour: ``(subject, state) -> StepResult | EXHAUSTED``.

    ``state`` is ``START`` on the first call and afterwards whatever the
    previous call returned as ``next_state``.
    """

    def __call__(self, subject: Any, state: Any) -> Any: ...


@runtime_checkable
class StepperLike(Protocol):
    """Zero-argument callable returning the next value or ``EXHAUSTED``."""

    def __call__(self) -> Any: ...


class Stepper(abc.ABC):
    """Base for stateful steppers.

    Subclasses bundle whatever mutable fields the traversal needs and
    implement ``advance()``.  ``__call__`` makes exhaustion sticky: once
    ``advance()`` has returned ``EXHAUSTED`` it is never called again.

    ``close()`` is the release hook.  The loop driver calls it when the loop
    ends, whether by exhaustion, ``BreakLoop``, or an error.  The default does
    nothing.
    """

    _exhausted: bool = False

    def __call__(self) -> Any:
        if self._exhausted:
            return EXHAUSTED
        value = self.advance()
        if value is EXHAUSTED:
            self._exhausted = True
        elif value is START:
            raise ProtocolMisuseError(self, "stepper produced the START marker")
        return value

    @abc.abstractmethod
    def advance(self) -> Any:
        """Produce the next value, or ``EXHAUSTED`` when done."""

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def close(self) -> None:
        """Release any resource held by this stepper."""


def stepper(fn: F) -> F:
    """Mark a zero-argument callable as a conforming stepper.

    Marked callables are handed to the loop unchanged by ``to_stepper``;
    unmarked plain callables get a call-cadence guard instead::

        def counter(n):
            i = 0

            @stepper
            def next_value():
                nonlocal i
                if i == n:
                    return EXHAUSTED
                i += 1
                return i

            return next_value
    """
    if not callable(fn):
        raise TypeError(f"stepper() expects a callable, got {type(fn).__name__}")
    setattr(fn, _STEPPER_MARK, True)
    return fn


def is_stepper(obj: Any) -> bool:
    """Return True for ``Stepper`` instances and ``@stepper``-marked callables."""
    return isinstance(obj, Stepper) or getattr(obj, _STEPPER_MARK, False) is True
