"""Foreign iterator adaptation.

A foreign runtime is anything that hands out iterator handles and advances
them with a caller-supplied "completed" marker::

    runtime.acquire_iterator(subject) -> handle
    runtime.next(handle, completed)   -> value | completed

Optional hooks: ``to_host(value)`` translates a foreign value into a host
value, ``release(handle)`` frees a handle early.  None of this vocabulary
leaks past ``ForeignStepper``; the driver only ever sees a stepper.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, runtime_checkable

from .errors import AdapterAcquisitionError, ProtocolMisuseError, RegistrationError
from .protocol import Stepper
from .registry import RegistryKey, StepRegistry, default_registry
from .sentinel import EXHAUSTED, START

logger = logging.getLogger(__name__)


@runtime_checkable
class ForeignRuntimeLike(Protocol):
    """Minimal interface a foreign runtime must satisfy."""

    def acquire_iterator(self, subject: Any) -> Any:
        """Return an iterator handle for *subject*."""
        ...

    def next(self, handle: Any, completed: Any) -> Any:
        """Advance *handle*; return *completed* itself when there is no more."""
        ...


class ForeignStepper(Stepper):
    """Stepper over a foreign iterator handle.

    The handle is acquired lazily on the first call.  Every call passes a
    fresh ``object()`` as the completed marker, so no foreign value can ever
    collide with it; identity with that marker means exhaustion.
    """

    def __init__(self, subject: Any, runtime: ForeignRuntimeLike) -> None:
        self.subject = subject
        self.runtime = runtime
        self.next_calls = 0
        self._handle: Any = None
        self._acquired = False
        self._released = False

    def advance(self) -> Any:
        if not self._acquired:
            self._acquire()
        completed = object()
        self.next_calls += 1
        value = self.runtime.next(self._handle, completed)
        if value is completed:
            return EXHAUSTED
        return self._to_host(value)

    def _acquire(self) -> None:
        try:
            self._handle = self.runtime.acquire_iterator(self.subject)
        except Exception as exc:
            raise AdapterAcquisitionError(self.subject, self.runtime) from exc
        self._acquired = True
        logger.debug(
            "Acquired %s handle for %s",
            type(self.runtime).__name__,
            type(self.subject).__name__,
        )

    def _to_host(self, value: Any) -> Any:
        translate = getattr(self.runtime, "to_host", None)
        if translate is not None:
            value = translate(value)
        if value is EXHAUSTED or value is START:
            raise ProtocolMisuseError(
                self.subject, f"foreign runtime produced the {value!r} marker"
            )
        return value

    @property
    def acquired(self) -> bool:
        return self._acquired

    def close(self) -> None:
        """Release the handle through the runtime's ``release`` hook.

        A handle that is the subject itself is borrowed, not owned, and is
        left alone.  Repeated calls are no-ops.
        """
        if not self._acquired or self._released:
            return
        self._released = True
        handle, self._handle = self._handle, None
        if handle is self.subject:
            return
        release = getattr(self.runtime, "release", None)
        if release is not None:
            release(handle)

    def __repr__(self) -> str:
        return (
            f"ForeignStepper({type(self.runtime).__name__}, "
            f"{type(self.subject).__name__}, next_calls={self.next_calls})"
        )


class NativeIteratorRuntime:
    """Python's own iterator protocol seen as a foreign runtime.

    ``next(handle, completed)`` is the built-in two-argument ``next``, which
    returns the default instead of raising ``StopIteration``.
    """

    def acquire_iterator(self, subject: Any) -> Any:
        return iter(subject)

    def next(self, handle: Any, completed: Any) -> Any:
        return next(handle, completed)

    def release(self, handle: Any) -> None:
        close = getattr(handle, "close", None)
        if callable(close):
            close()


native_runtime = NativeIteratorRuntime()


def register_foreign(
    key: RegistryKey,
    runtime: ForeignRuntimeLike,
    *,
    registry: Optional[StepRegistry] = None,
) -> None:
    """Serve subjects matching *key* through ``ForeignStepper`` over *runtime*."""
    if not isinstance(runtime, ForeignRuntimeLike):
        raise RegistrationError(
            f"{type(runtime).__name__} does not provide acquire_iterator() and next()"
        )

    def foreign_stepper(subject: Any) -> ForeignStepper:
        return ForeignStepper(subject, runtime)

    foreign_stepper.__qualname__ = f"foreign_stepper[{type(runtime).__name__}]"
    if registry is None:
        registry = default_registry
    registry.register_stepper(key, foreign_stepper)
