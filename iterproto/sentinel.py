"""Protocol markers: the exhaustion signal and the start-of-iteration state."""

from __future__ import annotations

import enum
from typing import Any

__all__ = ["EXHAUSTED", "START", "Exhausted", "Start", "is_exhausted", "is_start"]


# Enum members are singletons that survive copy, deepcopy and pickle, so
# identity comparison stays valid across every way a value can be duplicated.
# https://www.python.org/dev/peps/pep-0484/#support-for-singleton-types-in-unions
class Exhausted(enum.Enum):
    token = 0

    def __repr__(self) -> str:
        return "EXHAUSTED"


class Start(enum.Enum):
    token = 0

    def __repr__(self) -> str:
        return "START"


EXHAUSTED = Exhausted.token
START = Start.token


def is_exhausted(value: Any) -> bool:
    """Return True iff *value* is the exhaustion signal itself."""
    return value is EXHAUSTED


def is_start(value: Any) -> bool:
    """Return True iff *value* is the start-of-iteration marker."""
    return value is START
