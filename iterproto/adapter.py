"""IteratorAdapter — turn any subject into a zero-argument stepper."""

from __future__ import annotations

import logging
import warnings
from typing import Any, Callable, Optional

from .config import LoopConfig
from .errors import NotIterableError, ProtocolMisuseError, StepperCadenceWarning
from .foreign import ForeignStepper, native_runtime
from .protocol import Stepper, is_stepper
from .registry import HandlerKind, Resolution, StepRegistry, default_registry
from .sentinel import EXHAUSTED, START
from .sequence import is_positional, positional_step
from .step import run_step

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Steppers
# ---------------------------------------------------------------------------


class ProtocolStepper(Stepper):
    """Drives a pure step behaviour, threading the state privately.

    The handler is resolved before construction and held for the stepper's
    lifetime, so per-element cost is one direct call plus validation.
    """

    def __init__(self, subject: Any, resolution: Resolution) -> None:
        self.subject = subject
        self.resolution = resolution
        self.steps = 0
        self._state: Any = START

    def advance(self) -> Any:
        result = run_step(self.resolution, self.subject, self._state)
        if result is EXHAUSTED:
            return EXHAUSTED
        self.steps += 1
        self._state = result.state
        return result.value

    def __repr__(self) -> str:
        return (
            f"ProtocolStepper({type(self.subject).__name__}, "
            f"{self.resolution.kind.value}, steps={self.steps})"
        )


class GuardedStepper(Stepper):
    """Wraps an unmarked plain callable and watches its call cadence.

    Re-entrant calls and calls after ``EXHAUSTED`` was returned each emit a
    ``StepperCadenceWarning`` plus a log record.  The call still goes through
    to the wrapped callable; the guard is a diagnostic, not a gate.
    """

    def __init__(self, fn: Callable[[], Any]) -> None:
        self.fn = fn
        self.calls = 0
        self.violations = 0
        self._active = False

    def __call__(self) -> Any:
        self.calls += 1
        if self._active:
            self._report(f"re-entrant call #{self.calls}")
        if self._exhausted:
            self._report(f"call #{self.calls} after it returned EXHAUSTED")

        outer = self._active
        self._active = True
        try:
            value = self.fn()
        finally:
            self._active = outer

        if value is EXHAUSTED:
            self._exhausted = True
        elif value is START:
            raise ProtocolMisuseError(self.fn, "stepper produced the START marker")
        return value

    def advance(self) -> Any:
        return self.fn()

    def _report(self, what: str) -> None:
        self.violations += 1
        name = getattr(self.fn, "__qualname__", type(self.fn).__name__)
        message = f"Stepper {name} received {what}"
        logger.warning(message)
        warnings.warn(message, StepperCadenceWarning, stacklevel=3)

    def __repr__(self) -> str:
        return f"GuardedStepper({self.fn!r}, calls={self.calls})"


def check_stepper(subject: Any, candidate: Any) -> Any:
    """Reject a stepper factory result that is not callable."""
    if not callable(candidate):
        raise ProtocolMisuseError(
            subject,
            f"stepper factory returned a non-callable {type(candidate).__name__}",
        )
    return candidate


# ---------------------------------------------------------------------------
# to_stepper
# ---------------------------------------------------------------------------


def to_stepper(
    subject: Any,
    *,
    registry: Optional[StepRegistry] = None,
    config: Optional[LoopConfig] = None,
) -> Any:
    """Return a zero-argument stepper over *subject*.

    - Steppers (``Stepper`` instances, ``@stepper`` callables) come back
      unchanged.
    - A registered stepper factory is called once and its result returned.
    - A registered step behaviour, or the default positional one, is wrapped
      in a ``ProtocolStepper``.
    - Other Python iterables with no registered behaviour go through the
      native iterator runtime.
    - A plain callable with no registered behaviour is treated as a raw
      stepper and wrapped in a ``GuardedStepper`` (unless
      ``config.guard_callables`` is off, in which case it is returned as is).

    Raises ``NotIterableError`` when nothing applies.
    """
    if is_stepper(subject):
        return subject

    cfg = config or LoopConfig()
    if registry is None:
        registry = default_registry
    resolution = registry.resolve(subject, cached=cfg.cache_dispatch)
    logger.debug(
        "Resolved %s for %s via %r",
        resolution.kind.value,
        type(subject).__name__,
        resolution.key,
    )
    return stepper_for(subject, resolution, cfg)


def stepper_for(subject: Any, resolution: Resolution, config: LoopConfig) -> Any:
    """Build the stepper for an already-resolved *subject*."""
    if resolution.kind is HandlerKind.STEPPER:
        if resolution.with_config:
            return check_stepper(subject, resolution.handler(subject, config))
        return check_stepper(subject, resolution.handler(subject))
    if resolution.kind is HandlerKind.STEP:
        return ProtocolStepper(subject, resolution)

    if resolution.handler is positional_step and not is_positional(subject):
        if hasattr(type(subject), "__iter__"):
            return ForeignStepper(subject, native_runtime)
        if callable(subject):
            return GuardedStepper(subject) if config.guard_callables else subject
        raise NotIterableError(subject)
    return ProtocolStepper(subject, resolution)
