"""Built-in step behaviours installed on every registry made by ``create_registry``.

- ``collections.abc.Iterator`` (generators, ``map``, file objects, ...) and
  ``collections.abc.Mapping`` (keys, like a native ``for``) go through the
  native iterator runtime.
- ``Tagged`` values whose tags are not registered fall through to their
  payload.

Plain sequences need nothing here: the registry default steps them
positionally.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from .adapter import to_stepper
from .config import LoopConfig
from .foreign import native_runtime, register_foreign
from .registry import StepRegistry, Tagged, default_registry


def install_builtins(registry: StepRegistry) -> StepRegistry:
    """Register the built-in behaviours on *registry* and return it."""
    register_foreign(Iterator, native_runtime, registry=registry)
    register_foreign(Mapping, native_runtime, registry=registry)

    def payload_stepper(subject: Tagged, config: LoopConfig) -> Any:
        return to_stepper(subject.payload, registry=registry, config=config)

    registry.register_stepper(Tagged, payload_stepper, with_config=True)
    return registry


def create_registry(*, cache: bool = True) -> StepRegistry:
    """Return a fresh registry with the built-in behaviours installed."""
    return install_builtins(StepRegistry(cache=cache))


install_builtins(default_registry)
