"""Generic iteration protocol: open step dispatch, steppers, and a loop driver.

Public surface::

    from iterproto import (
        EXHAUSTED,
        START,
        is_exhausted,
        StepResult,
        Stepper,
        stepper,
        step,
        to_stepper,
        register_step,
        register_stepper,
        register_foreign,
        StepRegistry,
        Tagged,
        ForeignStepper,
        LoopDriver,
        LoopConfig,
        for_loop,
        for_each,
        iterate,
        collect,
        BreakLoop,
        ContinueLoop,
        ProtocolMisuseError,
        AdapterAcquisitionError,
    )
"""

from .adapter import GuardedStepper, ProtocolStepper, to_stepper
from .builtins import create_registry, install_builtins
from .config import LoopConfig
from .driver import (
    BreakLoop,
    ContinueLoop,
    ControlFlowSignal,
    LoopDriver,
    LoopState,
    collect,
    for_each,
    for_loop,
    iterate,
)
from .errors import (
    AdapterAcquisitionError,
    IterProtocolError,
    NotIterableError,
    ProtocolMisuseError,
    RegistrationError,
    StepperCadenceWarning,
)
from .foreign import (
    ForeignRuntimeLike,
    ForeignStepper,
    NativeIteratorRuntime,
    register_foreign,
)
from .outcome import LoopOutcome
from .protocol import (
    StepFunction,
    StepperLike,
    StepResult,
    Stepper,
    is_stepper,
    stepper,
)
from .registry import (
    HandlerKind,
    Resolution,
    StepRegistry,
    Tagged,
    default_registry,
    register_step,
    register_stepper,
    tags_of,
)
from .sentinel import EXHAUSTED, START, is_exhausted, is_start
from .step import step, validate_step_result

__all__ = [
    "EXHAUSTED",
    "START",
    "is_exhausted",
    "is_start",
    "StepResult",
    "StepFunction",
    "StepperLike",
    "Stepper",
    "stepper",
    "is_stepper",
    "step",
    "validate_step_result",
    "to_stepper",
    "ProtocolStepper",
    "GuardedStepper",
    "ForeignRuntimeLike",
    "ForeignStepper",
    "NativeIteratorRuntime",
    "register_foreign",
    "HandlerKind",
    "Resolution",
    "StepRegistry",
    "Tagged",
    "tags_of",
    "default_registry",
    "register_step",
    "register_stepper",
    "create_registry",
    "install_builtins",
    "LoopConfig",
    "LoopDriver",
    "LoopState",
    "LoopOutcome",
    "for_loop",
    "for_each",
    "iterate",
    "collect",
    "ControlFlowSignal",
    "BreakLoop",
    "ContinueLoop",
    "IterProtocolError",
    "ProtocolMisuseError",
    "NotIterableError",
    "AdapterAcquisitionError",
    "RegistrationError",
    "StepperCadenceWarning",
]
