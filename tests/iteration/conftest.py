"""Shared fixtures and reusable dummy subjects for iteration protocol tests.

Every subject here is a small stand-in for a host-language value: pure
subjects declare ``__step__``, stateful ones are ``Stepper`` structs or
closures, and ``ForeignList`` plays a value owned by another runtime.
"""

from __future__ import annotations

from typing import Any

import pytest

from iterproto import EXHAUSTED, START, StepResult, Stepper, create_registry

# ---------------------------------------------------------------------------
# Pure subjects (state threaded by the caller)
# ---------------------------------------------------------------------------


class Squares:
    """Squares of a..b.  State is the next base."""

    def __init__(self, a: int, b: int) -> None:
        self.a = a
        self.b = b

    def __step__(self, state: Any) -> Any:
        base = self.a if state is START else state
        if base > self.b:
            return EXHAUSTED
        return StepResult(base * base, base + 1)


class Countdown:
    """n, n-1, ..., 1.  Behaviour is registered externally (``countdown_step``)."""

    def __init__(self, start: int) -> None:
        self.start = start
        self.calls = 0


def countdown_step(subject: Countdown, state: Any) -> Any:
    subject.calls += 1
    current = subject.start if state is START else state
    if current == 0:
        return EXHAUSTED
    return (current, current - 1)


class SubjectFailure(Exception):
    """Raised by FailsAt."""


class FailsAt:
    """Elements 1..n, raising ``SubjectFailure`` when element *fail_at* is due."""

    def __init__(self, n: int, fail_at: int) -> None:
        self.n = n
        self.fail_at = fail_at

    def __step__(self, state: Any) -> Any:
        position = 1 if state is START else state + 1
        if position > self.n:
            return EXHAUSTED
        if position == self.fail_at:
            raise SubjectFailure(f"element {position}")
        return (position, position)


class NoneState:
    """Uses ``None`` as a legitimate intermediate state."""

    def __step__(self, state: Any) -> Any:
        if state is START:
            return ("first", None)
        if state is None:
            return ("second", "end")
        return EXHAUSTED


class Traced:
    """Records each step call in a shared event log."""

    def __init__(self, n: int, log: list[str]) -> None:
        self.n = n
        self.log = log

    def __step__(self, state: Any) -> Any:
        self.log.append("step")
        position = 1 if state is START else state + 1
        if position > self.n:
            return EXHAUSTED
        return (position, position)


# ---------------------------------------------------------------------------
# Malformed subjects
# ---------------------------------------------------------------------------


class BareValue:
    def __step__(self, state: Any) -> Any:
        return 42


class Triple:
    def __step__(self, state: Any) -> Any:
        return (1, 2, 3)


class RestartsForever:
    def __step__(self, state: Any) -> Any:
        return (1, START)


class YieldsSentinel:
    def __step__(self, state: Any) -> Any:
        return (EXHAUSTED, 1)


# ---------------------------------------------------------------------------
# Stateful subjects
# ---------------------------------------------------------------------------


class Counter(Stepper):
    """1..n as an explicit mutable struct."""

    def __init__(self, n: int) -> None:
        self.n = n
        self.i = 0
        self.closed = False

    def advance(self) -> Any:
        if self.i == self.n:
            return EXHAUSTED
        self.i += 1
        return self.i

    def close(self) -> None:
        self.closed = True


class CounterBox:
    """Subject served by a stepper factory that hands out ``Counter``s."""

    def __init__(self, n: int) -> None:
        self.n = n
        self.handed_out: list[Counter] = []


def counter_box_stepper(subject: CounterBox) -> Counter:
    counter = Counter(subject.n)
    subject.handed_out.append(counter)
    return counter


def make_counter(n: int):
    """Unmarked closure counting 1..n."""
    i = 0

    def next_value() -> Any:
        nonlocal i
        if i == n:
            return EXHAUSTED
        i += 1
        return i

    return next_value


# ---------------------------------------------------------------------------
# Foreign runtime stand-in
# ---------------------------------------------------------------------------


class ForeignList:
    """A value owned by another runtime."""

    def __init__(self, items: list[Any]) -> None:
        self.items = items


class FakeRuntime:
    """Foreign runtime over ForeignList that counts every boundary call."""

    def __init__(self, fail_acquire: bool = False) -> None:
        self.fail_acquire = fail_acquire
        self.acquired = 0
        self.next_calls = 0
        self.markers: list[object] = []
        self.released: list[dict] = []

    def acquire_iterator(self, subject: ForeignList) -> dict:
        self.acquired += 1
        if self.fail_acquire:
            raise ConnectionError("runtime unavailable")
        return {"items": list(subject.items), "pos": 0}

    def next(self, handle: dict, completed: object) -> Any:
        self.next_calls += 1
        self.markers.append(completed)
        if handle["pos"] >= len(handle["items"]):
            return completed
        value = handle["items"][handle["pos"]]
        handle["pos"] += 1
        return value

    def release(self, handle: dict) -> None:
        self.released.append(handle)


class ScalingRuntime(FakeRuntime):
    """Translates foreign values by multiplying them by ten."""

    def to_host(self, value: Any) -> Any:
        return value * 10


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry():
    """A fresh registry with built-ins, so tests never touch the default one."""
    return create_registry()


@pytest.fixture
def runtime():
    return FakeRuntime()
