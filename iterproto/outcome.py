"""Outcome record for one loop run."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoopOutcome(BaseModel):
    """How the last loop driven by a ``LoopDriver`` ended.

    The loop construct itself returns ``None``; this record is kept on the
    driver (``driver.last_outcome``) for inspection and logging.
    """

    model_config = ConfigDict(frozen=True)

    status: Literal["exhausted", "broken", "failed"] = Field(
        ..., description="exhausted: EXHAUSTED observed; broken: BreakLoop; failed: error"
    )
    steps: int = Field(
        default=0, ge=0, description="Elements produced by the stepper"
    )
    bodies: int = Field(
        default=0, ge=0, description="Body executions that ran to completion"
    )
    dispatch: str = Field(
        ...,
        description=(
            "fast_path, identity, the resolved handler kind, or unresolved "
            "when dispatch itself failed"
        ),
    )
    error: Optional[str] = Field(
        default=None, description="Exception type name when status is 'failed'"
    )

    @property
    def fast_path(self) -> bool:
        return self.dispatch == "fast_path"
