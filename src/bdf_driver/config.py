# bdf_driver/src/bdf_driver/config.py
"""Run configuration for the integration driver.

The defaults of :class:`DriverConfig` are the fixed demonstration scenario
(harmonic oscillator from y = (1, 0) at t = 0 to t = 10, rtol = 1e-4,
atol = 1e-8, BDF with Newton iteration). The model is only constructed in
code; the driver reads no files, arguments or environment variables.
"""

from __future__ import annotations

from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .integrator import DEFAULT_MAX_NUM_STEPS

MethodName = Literal["bdf", "adams"]
IterationName = Literal["newton", "functional"]

STATE_SIZE = 2

_TOUT_BEFORE_T0_ERROR = "tout ({tout}) must not precede t0 ({t0})"


class DriverConfig(BaseModel):
    """Validated parameters of one driver run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    y0: tuple[float, float] = Field(
        default=(1.0, 0.0),
        description="Initial state (y1, y2)",
    )
    t0: float = Field(default=0.0, allow_inf_nan=False)
    tout: float = Field(
        default=10.0,
        allow_inf_nan=False,
        description="Output time the driver integrates to",
    )

    rtol: float = Field(default=1e-4, ge=0.0, allow_inf_nan=False)
    atol: float = Field(default=1e-8, ge=0.0, allow_inf_nan=False)

    method: MethodName = Field(default="bdf", description="Linear multistep family")
    iteration: IterationName = Field(
        default="newton",
        description="Nonlinear iteration used by each implicit step",
    )
    max_num_steps: int = Field(default=DEFAULT_MAX_NUM_STEPS, gt=0)

    @model_validator(mode="after")
    def _check_time_span(self) -> Self:
        if self.tout < self.t0:
            raise ValueError(_TOUT_BEFORE_T0_ERROR.format(tout=self.tout, t0=self.t0))
        return self
