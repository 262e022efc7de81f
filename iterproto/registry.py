"""StepRegistry — open dispatch table from runtime tags to step behaviours.

A subject's dispatch chain is walked in this order:

1. its explicit string tags (``__iter_tags__``), first tag first;
2. the classes of its MRO, most specific first.  At each class a registry
   entry wins over an in-class ``__stepper__`` / ``__step__`` declaration;
3. registered abstract types, checked with ``isinstance`` in registration
   order (covers ABCs and virtual subclasses);
4. the default entry (positional sequence stepping).

Public surface::

    registry = StepRegistry()

    @registry.register_step(Squares)
    def squares_step(subject, state): ...

    @registry.register_stepper("lines")
    def lines_stepper(subject): ...
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Union

from .errors import RegistrationError
from .sequence import positional_step

logger = logging.getLogger(__name__)

RegistryKey = Union[str, type]


class HandlerKind(Enum):
    """How a resolved handler is driven."""

    STEP = "step"  # pure: (subject, state) -> StepResult | EXHAUSTED
    STEPPER = "stepper"  # factory: subject -> zero-arg stepper
    DEFAULT = "default"  # the fallback step behaviour


@dataclass(frozen=True)
class Resolution:
    """The handler chosen for a subject and the dispatch key that matched."""

    kind: HandlerKind
    handler: Callable[..., Any]
    key: Optional[RegistryKey] = None
    # Stepper factory takes the active LoopConfig as a second argument
    with_config: bool = False


# ---------------------------------------------------------------------------
# Runtime tags
# ---------------------------------------------------------------------------


def tags_of(subject: Any) -> tuple[str, ...]:
    """Return the explicit dispatch tags carried by *subject* (maybe empty)."""
    raw = getattr(subject, "__iter_tags__", ())
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, (tuple, list)):
        return tuple(raw)
    return ()


@dataclass(frozen=True)
class Tagged:
    """A payload carrying an explicit tag chain, most specific tag first.

    Lets plain values opt into a registered behaviour without defining a
    class::

        registry.register_step("evens", evens_step)
        for_each(Tagged([1, 2, 3, 4], ("evens",)), print)

    When none of the tags is registered, the payload is iterated with its
    own behaviour.
    """

    payload: Any
    tags: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if isinstance(self.tags, str):
            object.__setattr__(self, "tags", (self.tags,))
        elif not isinstance(self.tags, tuple):
            object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def __iter_tags__(self) -> tuple[str, ...]:
        return self.tags


# ---------------------------------------------------------------------------
# In-class declarations
# ---------------------------------------------------------------------------


def _method_step(subject: Any, state: Any) -> Any:
    return subject.__step__(state)


def _method_stepper(subject: Any) -> Any:
    return subject.__stepper__()


# ---------------------------------------------------------------------------
# StepRegistry
# ---------------------------------------------------------------------------


class StepRegistry:
    """Mapping from dispatch keys (tag strings or types) to step handlers.

    Registration is guarded by a lock; lookups are lock-free and memoised
    per subject type when *cache* is true.  Any registration change clears
    the memo, and a lookup that overlapped a registration is not memoised.
    """

    def __init__(
        self,
        default: Callable[[Any, Any], Any] = positional_step,
        *,
        cache: bool = True,
    ) -> None:
        if not callable(default):
            raise RegistrationError("default step behaviour must be callable")
        self.default = Resolution(HandlerKind.DEFAULT, default)
        self.cache = cache
        self._by_tag: dict[str, Resolution] = {}
        self._by_type: dict[type, Resolution] = {}
        self._type_cache: dict[type, Resolution] = {}
        self._generation = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_step(
        self, key: RegistryKey, fn: Optional[Callable[[Any, Any], Any]] = None
    ) -> Any:
        """Register a pure step behaviour for *key*.

        Usable directly (``register_step(key, fn)``) or as a decorator
        (``@register_step(key)``).  Returns *fn* unchanged.
        """
        if fn is None:
            return lambda f: self.register_step(key, f)
        self._add(key, Resolution(HandlerKind.STEP, fn, key))
        return fn

    def register_stepper(
        self,
        key: RegistryKey,
        factory: Optional[Callable[..., Any]] = None,
        *,
        with_config: bool = False,
    ) -> Any:
        """Register a stepper factory ``subject -> stepper`` for *key*.

        Same direct/decorator forms as :meth:`register_step`.  With
        *with_config* the factory is called as ``factory(subject, config)``
        and receives the ``LoopConfig`` of the loop being prepared.
        """
        if factory is None:
            return lambda f: self.register_stepper(key, f, with_config=with_config)
        self._add(
            key, Resolution(HandlerKind.STEPPER, factory, key, with_config=with_config)
        )
        return factory

    def unregister(self, key: RegistryKey) -> None:
        """Remove the entry for *key*.  Raises ``KeyError`` if absent."""
        with self._lock:
            table = self._table_for(key)
            del table[key]
            self._type_cache.clear()
            self._generation += 1
        logger.debug("Unregistered step handler for %r", key)

    def _add(self, key: RegistryKey, resolution: Resolution) -> None:
        if not callable(resolution.handler):
            raise RegistrationError(
                f"handler for {key!r} must be callable, got "
                f"{type(resolution.handler).__name__}"
            )
        with self._lock:
            self._table_for(key)[key] = resolution
            self._type_cache.clear()
            self._generation += 1
        logger.debug(
            "Registered %s handler %s for %r",
            resolution.kind.value,
            getattr(resolution.handler, "__qualname__", resolution.handler),
            key,
        )

    def _table_for(self, key: RegistryKey) -> dict:
        if isinstance(key, str):
            if not key:
                raise RegistrationError("tag keys must be non-empty strings")
            return self._by_tag
        if isinstance(key, type):
            return self._by_type
        raise RegistrationError(
            f"registry keys must be tag strings or types, got {type(key).__name__}"
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, subject: Any, *, cached: Optional[bool] = None) -> Resolution:
        """Return the handler that applies to *subject*.

        *cached* overrides the registry-wide ``cache`` setting for this lookup.
        """
        for tag in tags_of(subject):
            resolution = self._by_tag.get(tag)
            if resolution is not None:
                return resolution

        cls = type(subject)
        use_cache = self.cache if cached is None else cached
        if use_cache:
            resolution = self._type_cache.get(cls)
            if resolution is None:
                generation = self._generation
                resolution = self._resolve_type(cls)
                with self._lock:
                    # Skip the memo if a registration landed mid-lookup.
                    if generation == self._generation:
                        self._type_cache[cls] = resolution
            return resolution
        return self._resolve_type(cls)

    def _resolve_type(self, cls: type) -> Resolution:
        for klass in cls.__mro__:
            resolution = self._by_type.get(klass)
            if resolution is not None:
                return resolution
            own = vars(klass)
            if callable(own.get("__stepper__")):
                return Resolution(HandlerKind.STEPPER, _method_stepper, klass)
            if callable(own.get("__step__")):
                return Resolution(HandlerKind.STEP, _method_step, klass)

        for key, resolution in list(self._by_type.items()):
            if issubclass(cls, key):
                return resolution

        logger.debug("No step handler for %s; using default", cls.__name__)
        return self.default

    def has_exact(self, cls: type) -> bool:
        """Return True when *cls* itself (not a base) has a registry entry."""
        return cls in self._by_type

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __contains__(self, key: object) -> bool:
        return key in self._by_tag or key in self._by_type

    def __iter__(self) -> Iterator[RegistryKey]:
        yield from list(self._by_tag)
        yield from list(self._by_type)

    def __len__(self) -> int:
        return len(self._by_tag) + len(self._by_type)

    def copy(self) -> "StepRegistry":
        """Return an independent registry with the same entries."""
        clone = StepRegistry(self.default.handler, cache=self.cache)
        with self._lock:
            clone._by_tag = dict(self._by_tag)
            clone._by_type = dict(self._by_type)
        return clone

    def __repr__(self) -> str:
        return f"StepRegistry({len(self)} entries)"


default_registry = StepRegistry()

register_step = default_registry.register_step
register_stepper = default_registry.register_stepper
