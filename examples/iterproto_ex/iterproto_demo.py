#!/usr/bin/env python3
# %% [markdown]
# # Iteration Protocol: Interactive Demo
#
# This notebook walks through every feature of the iteration protocol.
# Run the cells top to bottom.
#
# **Only the `iterproto/` package is needed** (plus pydantic, which it uses
# for loop outcomes).

# %% [markdown]
# ## Setup & Imports

# %%
import logging
import sys
from pathlib import Path

# Walk up from the script/notebook directory until we find the project root
# (identified by containing an `iterproto/` package directory).
_here = Path(__file__).resolve().parent if "__file__" in dir() else Path.cwd()
_root = _here
for _p in [_here] + list(_here.parents):
    if (_p / "iterproto" / "__init__.py").exists():
        _root = _p
        break
sys.path.insert(0, str(_root))

from iterproto import (
    EXHAUSTED,
    START,
    BreakLoop,
    ContinueLoop,
    LoopConfig,
    LoopDriver,
    NotIterableError,
    ProtocolMisuseError,
    Stepper,
    StepperCadenceWarning,
    Tagged,
    collect,
    create_registry,
    for_each,
    for_loop,
    iterate,
    register_foreign,
    step,
    stepper,
    to_stepper,
)

# %% [markdown]
# ## 1. Plain sequences
#
# Lists, tuples, strings, bytes and ranges iterate positionally.  Exact
# built-in types take a fast path with no dispatch at all.

# %%
scope = {}
for_loop("x", ["a", "b", "c"], lambda env: print("  x =", env["x"]), scope)
print("after the loop:", scope)

driver = LoopDriver()
driver.each("hi", print)
print(driver.last_outcome)

# %% [markdown]
# ## 2. Pure step behaviours
#
# A **step behaviour** maps `(subject, state)` to `(value, next_state)` or
# `EXHAUSTED`.  The first call receives `START`.  Declare it in the class
# as `__step__`, or register it for a type or tag.


# %%
class Squares:
    def __init__(self, a, b):
        self.a, self.b = a, b

    def __step__(self, state):
        base = self.a if state is START else state
        if base > self.b:
            return EXHAUSTED
        return (base * base, base + 1)


print(collect(Squares(1, 5)))

# Driving the protocol by hand threads state explicitly.
result = step(Squares(1, 2))
while result is not EXHAUSTED:
    print("  value", result.value, "next state", result.state)
    result = step(Squares(1, 2), result.state)

# %% [markdown]
# ## 3. Registering behaviours
#
# Use your own registry to keep experiments away from the default one.
# Tags (`__iter_tags__` or `Tagged`) are tried before types.

# %%
registry = create_registry()


@registry.register_step("evens")
def evens(subject, state):
    position = 0 if state is START else state
    items = subject.payload
    while position < len(items):
        if items[position] % 2 == 0:
            return (items[position], position + 1)
        position += 1
    return EXHAUSTED


print(collect(Tagged([1, 2, 3, 4, 6], "evens"), registry=registry))
print(collect(Tagged([1, 2, 3], "unknown"), registry=registry))
print(registry)

# %% [markdown]
# ## 4. Stateful steppers
#
# A **stepper** is a zero-argument callable returning the next value or
# `EXHAUSTED`.  Subclass `Stepper`, mark a closure with `@stepper`, or
# register a factory that builds one per loop.


# %%
class Countdown(Stepper):
    def __init__(self, n):
        self.n = n

    def advance(self):
        if self.n == 0:
            return EXHAUSTED
        self.n -= 1
        return self.n + 1

    def close(self):
        print("  countdown closed")


class Launch:
    def __init__(self, n):
        self.n = n


registry.register_stepper(Launch, lambda subject: Countdown(subject.n))


def body(value):
    if value == 1:
        raise BreakLoop
    print("  T minus", value)


for_each(Launch(3), body, registry=registry)


@stepper
def ticks():
    ticks.n = getattr(ticks, "n", 0) + 1
    return ticks.n if ticks.n <= 3 else EXHAUSTED


print(collect(ticks))

# %% [markdown]
# ## 5. Unmarked callables are guarded
#
# A plain callable is adapted with a guard that warns when it is called
# again after `EXHAUSTED` or re-entered.

# %%
import warnings


def once():
    once.done = getattr(once, "done", False)
    if once.done:
        return EXHAUSTED
    once.done = True
    return "only value"


guarded = to_stepper(once)
print(guarded(), guarded())
with warnings.catch_warnings(record=True) as caught:
    warnings.simplefilter("always", StepperCadenceWarning)
    guarded()
print("warnings:", [str(w.message) for w in caught])

# %% [markdown]
# ## 6. Foreign runtimes
#
# A **foreign runtime** exposes `acquire_iterator(subject)` and
# `next(handle, completed)`, returning `completed` when done.  Python
# generators and iterables use the built-in native runtime.


# %%
class RemoteList:
    def __init__(self, items):
        self.items = items


class RemoteRuntime:
    def acquire_iterator(self, subject):
        print("  acquire")
        return iter(subject.items)

    def next(self, handle, completed):
        return next(handle, completed)

    def release(self, handle):
        print("  release")


register_foreign(RemoteList, RemoteRuntime(), registry=registry)
for_each(RemoteList([1, None, 3]), print, registry=registry)

print(collect(x * 10 for x in range(3)))
print(collect({"k1": 1, "k2": 2}))

# %% [markdown]
# ## 7. Control flow and Python interop

# %%
def odd_only(env):
    if env["n"] % 2 == 0:
        raise ContinueLoop
    print("  odd", env["n"])


for_loop("n", range(6), odd_only)

for value in iterate(Squares(1, 10)):
    if value > 20:
        break
    print("  square", value)

# %% [markdown]
# ## 8. Errors
#
# Errors from behaviours and bodies propagate unchanged.  Malformed step
# results raise `ProtocolMisuseError`.

# %%
try:
    collect(42)
except NotIterableError as exc:
    print("NotIterableError:", exc)


class Broken:
    def __step__(self, state):
        return 42


try:
    collect(Broken())
except ProtocolMisuseError as exc:
    print("ProtocolMisuseError:", exc)

# %% [markdown]
# ## 9. Configuration and logging
#
# `LoopConfig` toggles the fast path, dispatch caching, callable guarding
# and release-on-exit.  `LoopConfig.from_env()` reads `ITERPROTO_*`
# variables.  Debug logging shows every dispatch decision.

# %%
logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
cfg = LoopConfig.from_env({"ITERPROTO_FAST_PATH": "false"})
driver = LoopDriver(config=cfg)
driver.each([1, 2], lambda value: None)
print(driver.last_outcome.model_dump())
