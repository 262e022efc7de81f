"""Loop configuration."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Mapping, Optional

_TRUTHY = ("true", "1", "yes")
_FALSY = ("false", "0", "no")


def _env_flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name, "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


@dataclass
class LoopConfig:
    """Configuration for the loop driver and the iterator adapter."""

    # Iterate exact built-in sequences positionally, without building a stepper
    fast_path: bool = True

    # Memoise registry lookups per subject type (invalidated on registration)
    cache_dispatch: bool = True

    # Wrap unmarked plain callables in a call-cadence guard
    guard_callables: bool = True

    # Call the stepper's close() hook whenever a loop ends
    release_on_exit: bool = True

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "LoopConfig":
        """Build a config from ``ITERPROTO_*`` environment variables.

        Recognised values are ``true/1/yes`` and ``false/0/no``; anything
        else leaves the field at its default.
        """
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            **{
                f.name: _env_flag(
                    env, f"ITERPROTO_{f.name.upper()}", getattr(defaults, f.name)
                )
                for f in dataclasses.fields(cls)
            }
        )
