"""The polymorphic ``step`` operation and strict step-result validation."""

from __future__ import annotations

from typing import Any, Optional

from .config import LoopConfig
from .errors import ProtocolMisuseError
from .protocol import StepResult, is_stepper
from .registry import HandlerKind, Resolution, StepRegistry, default_registry
from .sentinel import EXHAUSTED, START
from .sequence import is_positional, positional_step


def validate_step_result(subject: Any, result: Any) -> Any:
    """Return *result* as ``EXHAUSTED`` or a ``StepResult``; reject anything else.

    Accepted shapes are ``EXHAUSTED`` and 2-item tuples (``StepResult``
    included).  A pair whose value or next state is a protocol marker is
    rejected too: an ``EXHAUSTED`` value would be indistinguishable from the
    end, and a ``START`` next state would restart the traversal forever.
    """
    if result is EXHAUSTED:
        return result
    if not isinstance(result, tuple) or len(result) != 2:
        raise ProtocolMisuseError(
            subject,
            f"step behaviour must return (value, next_state) or EXHAUSTED, "
            f"got {_describe(result)}",
        )
    value, state = result
    if value is EXHAUSTED or value is START:
        raise ProtocolMisuseError(
            subject, f"step behaviour produced the {value!r} marker as a value"
        )
    if state is EXHAUSTED or state is START:
        raise ProtocolMisuseError(
            subject, f"step behaviour returned the {state!r} marker as next state"
        )
    if type(result) is StepResult:
        return result
    return StepResult(value, state)


def _describe(result: Any) -> str:
    if isinstance(result, tuple):
        return f"a {len(result)}-tuple"
    return f"a bare {type(result).__name__}"


def run_step(resolution: Resolution, subject: Any, state: Any) -> Any:
    """Invoke an already-resolved pure step handler and validate its result."""
    return validate_step_result(subject, resolution.handler(subject, state))


def step(
    subject: Any,
    state: Any = START,
    *,
    registry: Optional[StepRegistry] = None,
) -> Any:
    """Advance *subject* by one element.

    Returns ``StepResult(value, next_state)`` or ``EXHAUSTED``.  Pass
    ``START`` (the default) for the first element and afterwards the
    ``state`` of the previous result.  Calling again after ``EXHAUSTED``
    is undefined.

    The handler is resolved on every call.  Loops should use
    :func:`~iterproto.adapter.to_stepper`, which resolves once.

    For subjects served by a stepper (a registered factory, a native Python
    iterable, or a raw callable) the opaque state is the stepper itself,
    created on the ``START`` call.
    """
    if is_stepper(subject):
        return _step_via_stepper(None, subject, state)
    if registry is None:
        registry = default_registry
    resolution = registry.resolve(subject)
    if resolution.kind is HandlerKind.STEP or (
        resolution.kind is HandlerKind.DEFAULT
        and (resolution.handler is not positional_step or is_positional(subject))
    ):
        return run_step(resolution, subject, state)
    return _step_via_stepper(resolution, subject, state)


def _step_via_stepper(
    resolution: Optional[Resolution], subject: Any, state: Any
) -> Any:
    # Deferred: adapter imports this module.
    from .adapter import stepper_for

    if state is START:
        if resolution is None:
            state = subject
        else:
            state = stepper_for(subject, resolution, LoopConfig())
    value = state()
    if value is EXHAUSTED:
        return EXHAUSTED
    return validate_step_result(subject, (value, state))
