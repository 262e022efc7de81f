"""Default positional step behaviour for plain indexable sequences."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .errors import NotIterableError
from .protocol import StepResult
from .sentinel import EXHAUSTED, START

# Exact types only: subclasses may carry their own behaviour and go through
# the registry.
PLAIN_SEQUENCE_TYPES: frozenset[type] = frozenset(
    {list, tuple, str, bytes, bytearray, range}
)


def is_plain_sequence(subject: Any) -> bool:
    """Return True when *subject*'s exact type is a built-in sequence."""
    return type(subject) in PLAIN_SEQUENCE_TYPES


def is_indexable(subject: Any) -> bool:
    cls = type(subject)
    return hasattr(cls, "__len__") and hasattr(cls, "__getitem__")


def is_positional(subject: Any) -> bool:
    """Return True when *subject* should be stepped by position.

    Sequences qualify, and so do objects that offer only ``__len__`` and
    ``__getitem__``.  An indexable object that also defines ``__iter__``
    without being a ``Sequence`` (an Enum class, a keyed container) is
    iterated natively instead, since its ``__getitem__`` need not take
    positions.
    """
    if not is_indexable(subject):
        return False
    return isinstance(subject, Sequence) or not hasattr(type(subject), "__iter__")


def positional_step(subject: Any, state: Any) -> Any:
    """Step through *subject* by 1-based position.

    ``state`` is the position of the element produced last (``START`` counts
    as position 0).  The length is re-read on every step, so a sequence that
    shrinks mid-loop stops early instead of raising ``IndexError``.
    """
    if not is_indexable(subject):
        raise NotIterableError(subject)
    position = 1 if state is START else state + 1
    if position > len(subject):
        return EXHAUSTED
    return StepResult(subject[position - 1], position)
