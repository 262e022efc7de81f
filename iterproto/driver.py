"""LoopDriver — the ``for``-style construct over any subject.

State machine::

    INIT -> STEPPING -> (RUNNING_BODY -> STEPPING)* -> DONE

Public surface::

    from iterproto import for_loop, for_each, iterate, collect

    scope = {}
    for_loop("x", Squares(1, 5), lambda env: print(env["x"]), scope)

The driver resolves the subject's behaviour once at INIT, then only calls
the stepper.  It never catches anything except its own control-flow
signals: errors from step behaviours and bodies reach the caller unchanged,
after the bodies for earlier elements have already run.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Iterator, MutableMapping, Optional

from .adapter import stepper_for
from .config import LoopConfig
from .errors import ProtocolMisuseError
from .outcome import LoopOutcome
from .protocol import is_stepper
from .registry import StepRegistry, default_registry
from .sentinel import EXHAUSTED, START
from .sequence import is_plain_sequence, positional_step

logger = logging.getLogger(__name__)


class LoopState(Enum):
    INIT = "init"
    STEPPING = "stepping"
    RUNNING_BODY = "running_body"
    DONE = "done"


class ControlFlowSignal(BaseException):
    """Loop-control signals raised by bodies; not errors."""


class BreakLoop(ControlFlowSignal):
    """Leave the loop now.  The stepper is released and discarded."""


class ContinueLoop(ControlFlowSignal):
    """Skip the rest of this body and step to the next element."""


def _positional(subject: Any) -> Callable[[], Any]:
    # Fast path: exact built-in sequences on the default behaviour, no stepper object.
    position = 0

    def next_value() -> Any:
        nonlocal position
        if position >= len(subject):
            return EXHAUSTED
        position += 1
        return subject[position - 1]

    return next_value


def _advance(next_value: Callable[[], Any], subject: Any) -> Any:
    value = next_value()
    if value is START:
        raise ProtocolMisuseError(subject, "stepper produced the START marker")
    return value


def _release(stepper: Any, subject: Any) -> None:
    # A stepper passed in as the subject is borrowed; only owned ones close.
    if stepper is subject:
        return
    close = getattr(stepper, "close", None)
    if callable(close):
        close()


class LoopDriver:
    """Runs loops over subjects using one registry and one config.

    A driver can run any number of loops, one at a time; every run gets its
    own stepper.  ``state`` tracks the current run's position in the state
    machine and ``last_outcome`` describes how the most recent run ended.
    """

    def __init__(
        self,
        registry: Optional[StepRegistry] = None,
        config: Optional[LoopConfig] = None,
    ) -> None:
        self.registry = default_registry if registry is None else registry
        self.config = config or LoopConfig()
        self.state = LoopState.INIT
        self.last_outcome: Optional[LoopOutcome] = None

    # ------------------------------------------------------------------
    # Caller-facing construct
    # ------------------------------------------------------------------

    def run(
        self,
        name: str,
        subject: Any,
        body: Callable[[MutableMapping[str, Any]], Any],
        scope: MutableMapping[str, Any],
    ) -> None:
        """Bind each element of *subject* to ``scope[name]`` and call ``body(scope)``.

        The binding is overwritten on every iteration and left holding the
        last element afterwards.  Returns ``None``.
        """
        if not isinstance(name, str) or not name.isidentifier():
            raise ValueError(f"loop variable must be an identifier, got {name!r}")

        def visit(value: Any) -> None:
            scope[name] = value
            body(scope)

        self._drive(subject, visit)

    def each(self, subject: Any, fn: Callable[[Any], Any]) -> None:
        """Call ``fn(value)`` for each element of *subject*.  Returns ``None``."""
        self._drive(subject, fn)

    # ------------------------------------------------------------------
    # INIT
    # ------------------------------------------------------------------

    def _prepare(self, subject: Any) -> tuple[Callable[[], Any], str]:
        """Resolve once; return the zero-arg stepper and how it was chosen."""
        if is_stepper(subject):
            return subject, "identity"
        resolution = self.registry.resolve(subject, cached=self.config.cache_dispatch)
        if (
            self.config.fast_path
            and resolution is self.registry.default
            and resolution.handler is positional_step
            and is_plain_sequence(subject)
        ):
            logger.debug("Fast path for %s", type(subject).__name__)
            return _positional(subject), "fast_path"
        logger.debug(
            "Resolved %s for %s via %r",
            resolution.kind.value,
            type(subject).__name__,
            resolution.key,
        )
        return stepper_for(subject, resolution, self.config), resolution.kind.value

    # ------------------------------------------------------------------
    # STEPPING / RUNNING_BODY / DONE
    # ------------------------------------------------------------------

    def _drive(self, subject: Any, visit: Callable[[Any], Any]) -> None:
        self.state = LoopState.INIT
        next_value: Optional[Callable[[], Any]] = None
        dispatch = "unresolved"
        steps = 0
        bodies = 0
        status = "failed"
        error: Optional[str] = None
        try:
            next_value, dispatch = self._prepare(subject)
            while True:
                self.state = LoopState.STEPPING
                value = _advance(next_value, subject)
                if value is EXHAUSTED:
                    status = "exhausted"
                    break
                steps += 1

                self.state = LoopState.RUNNING_BODY
                try:
                    visit(value)
                except ContinueLoop:
                    pass
                bodies += 1
        except BreakLoop:
            status = "broken"
        except BaseException as exc:
            error = type(exc).__name__
            raise
        finally:
            self.state = LoopState.DONE
            if next_value is not None and self.config.release_on_exit:
                _release(next_value, subject)
            self.last_outcome = LoopOutcome(
                status=status,
                steps=steps,
                bodies=bodies,
                dispatch=dispatch,
                error=error,
            )
            logger.debug(
                "Loop over %s %s after %d element(s)",
                type(subject).__name__,
                status,
                steps,
            )


# ---------------------------------------------------------------------------
# Module-level conveniences
# ---------------------------------------------------------------------------


def for_loop(
    name: str,
    subject: Any,
    body: Callable[[MutableMapping[str, Any]], Any],
    scope: Optional[MutableMapping[str, Any]] = None,
    *,
    registry: Optional[StepRegistry] = None,
    config: Optional[LoopConfig] = None,
) -> None:
    """``for name in subject: body(scope)`` over any subject.  Returns ``None``."""
    LoopDriver(registry, config).run(
        name, subject, body, {} if scope is None else scope
    )


def for_each(
    subject: Any,
    fn: Callable[[Any], Any],
    *,
    registry: Optional[StepRegistry] = None,
    config: Optional[LoopConfig] = None,
) -> None:
    """Call ``fn(value)`` for each element of *subject*.  Returns ``None``."""
    LoopDriver(registry, config).each(subject, fn)


def iterate(
    subject: Any,
    *,
    registry: Optional[StepRegistry] = None,
    config: Optional[LoopConfig] = None,
) -> Iterator[Any]:
    """Yield the elements of *subject* as a native Python generator.

    Steps lazily, one element per ``next()``.  Closing the generator early
    releases the stepper the same way ``BreakLoop`` does.
    """
    driver = LoopDriver(registry, config)
    next_value, _ = driver._prepare(subject)
    try:
        while True:
            value = _advance(next_value, subject)
            if value is EXHAUSTED:
                return
            yield value
    finally:
        if driver.config.release_on_exit:
            _release(next_value, subject)


def collect(
    subject: Any,
    *,
    registry: Optional[StepRegistry] = None,
    config: Optional[LoopConfig] = None,
) -> list[Any]:
    """Return every element of *subject* as a list."""
    return list(iterate(subject, registry=registry, config=config))
